from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from reviewmap.core.errors import BackendError, RemoteReadError, ReviewNotFoundError
from reviewmap.schemas.profiles import Author
from reviewmap.schemas.reviews import Comment, Review
from reviewmap.services.media import MediaResolver

logger = logging.getLogger(__name__)


class ReviewSource(Protocol):
    async def fetch_review(self, review_id: str) -> Review | None: ...


async def resolve_author(author: Author | None, resolver: MediaResolver) -> Author | None:
    if author is None or not author.avatar_url:
        return author
    avatar = await resolver.resolve(author.avatar_url)
    return author.model_copy(update={"avatar_url": avatar or author.avatar_url})


async def _resolve_comment(comment: Comment, resolver: MediaResolver) -> Comment:
    author = await resolve_author(comment.author, resolver)
    if author is comment.author:
        return comment
    return comment.model_copy(update={"author": author})


async def fetch_review_snapshot(source: ReviewSource, review_id: str) -> Review:
    try:
        review = await source.fetch_review(review_id)
    except BackendError as e:
        raise RemoteReadError("Could not load the review.") from e
    if review is None:
        raise ReviewNotFoundError(review_id)
    return review


async def resolve_review_media(review: Review, resolver: MediaResolver) -> Review:
    """Sign the cover image and every avatar on a review snapshot."""
    cover, author = await asyncio.gather(
        resolver.resolve(review.cover_image),
        resolve_author(review.author, resolver),
    )
    comments = await asyncio.gather(*(_resolve_comment(c, resolver) for c in review.comments))

    images = list(review.images)
    if images and cover:
        images[0] = cover
    return review.model_copy(update={"images": images, "author": author, "comments": list(comments)})


async def load_review_detail(source: ReviewSource, resolver: MediaResolver, review_id: str) -> Review:
    """Full review with votes, comments and hashtags, media ready to render."""
    review = await fetch_review_snapshot(source, review_id)
    return await resolve_review_media(review, resolver)
