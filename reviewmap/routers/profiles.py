from __future__ import annotations

from fastapi import APIRouter, Depends

from reviewmap.core.deps import get_engagement_cache
from reviewmap.schemas.profiles import AuthorRankResponse
from reviewmap.services.engagement_cache import EngagementCache

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/{author_id}/rank", response_model=AuthorRankResponse)
async def author_rank(
    author_id: str,
    cache: EngagementCache = Depends(get_engagement_cache),
) -> AuthorRankResponse:
    await cache.ensure_loaded()
    return AuthorRankResponse(
        author_id=author_id,
        total_likes=cache.likes_for_author(author_id),
        rank=cache.rank_for_author(author_id),
    )
