"""Supabase-backed reads and writes used by the engagement services."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

import httpx
from postgrest import AsyncPostgrestClient
from postgrest.constants import DEFAULT_POSTGREST_CLIENT_HEADERS
from postgrest.exceptions import APIError
from supabase import AsyncClient

from reviewmap.core.errors import BackendError
from reviewmap.schemas.places import Place
from reviewmap.schemas.profiles import Author
from reviewmap.schemas.reviews import Comment, Review, Vote, VoteType

logger = logging.getLogger(__name__)

AUTHOR_COLUMNS = "id, username, full_name, avatar_url"

FEED_SELECT = f"""
    id, content, rating, created_at,
    places:places!reviews_place_id_fkey (id, name, address, latitude, longitude),
    review_images (image_url),
    review_hashtags (hashtags (tag)),
    profiles:profiles!reviews_user_id_fkey ({AUTHOR_COLUMNS}),
    votes (type)
"""

DETAIL_SELECT = f"""
    id, user_id, rating, content, created_at,
    profiles:profiles!reviews_user_id_fkey ({AUTHOR_COLUMNS}),
    places:places!reviews_place_id_fkey (id, name, address, latitude, longitude),
    review_images (image_url),
    review_hashtags (hashtags (tag)),
    votes (id, type, user_id),
    review_comments (
        id, review_id, user_id, content, created_at,
        profiles:profiles!review_comments_user_id_fkey ({AUTHOR_COLUMNS})
    )
"""

PLACE_REVIEWS_SELECT = f"""
    id, rating, content, created_at,
    profiles:profiles!reviews_user_id_fkey ({AUTHOR_COLUMNS})
"""

COMMENT_SELECT = f"""
    id, review_id, user_id, content, created_at,
    profiles:profiles!review_comments_user_id_fkey ({AUTHOR_COLUMNS})
"""

VOTE_COLUMNS = "id, review_id, user_id, type"


def _str_id(value: Any) -> str | None:
    return None if value is None else str(value)


def _row_to_author(row: Dict[str, Any] | None) -> Author | None:
    if not row or row.get("id") is None:
        return None
    return Author(
        id=str(row["id"]),
        username=row.get("username"),
        full_name=row.get("full_name"),
        avatar_url=row.get("avatar_url"),
    )


def _row_to_place(row: Dict[str, Any] | None) -> Place | None:
    if not row:
        return None
    return Place(
        id=_str_id(row.get("id")) or "",
        name=row.get("name") or "",
        address=row.get("address"),
        latitude=row.get("latitude"),
        longitude=row.get("longitude"),
    )


def _row_to_vote(row: Dict[str, Any]) -> Vote:
    return Vote(
        id=_str_id(row.get("id")),
        review_id=_str_id(row.get("review_id")),
        user_id=_str_id(row.get("user_id")),
        type=VoteType(row["type"]),
    )


def _row_to_comment(row: Dict[str, Any]) -> Comment:
    return Comment(
        id=str(row["id"]),
        review_id=_str_id(row.get("review_id")),
        user_id=_str_id(row.get("user_id")),
        content=row.get("content") or "",
        created_at=row.get("created_at"),
        author=_row_to_author(row.get("profiles")),
    )


def _hashtags(entries: Iterable[Dict[str, Any]] | None) -> list[str]:
    tags = []
    for entry in entries or []:
        tag = (entry.get("hashtags") or {}).get("tag")
        if tag:
            tags.append(str(tag))
    return tags


def row_to_review(row: Dict[str, Any]) -> Review:
    """Map a relational projection of ``reviews`` to a snapshot."""
    images = [img["image_url"] for img in row.get("review_images") or [] if img.get("image_url")]
    comments = [_row_to_comment(c) for c in row.get("review_comments") or []]
    comments.sort(key=lambda c: (c.created_at is not None, c.created_at), reverse=True)
    return Review(
        id=str(row["id"]),
        content=row.get("content") or "",
        rating=min(5.0, max(0.0, float(row.get("rating") or 0))),
        created_at=row.get("created_at"),
        author=_row_to_author(row.get("profiles")),
        place=_row_to_place(row.get("places")),
        hashtags=_hashtags(row.get("review_hashtags")),
        images=images,
        votes=[_row_to_vote(v) for v in row.get("votes") or [] if v.get("type")],
        comments=comments,
    )


def _signed_url(data: Any) -> str:
    # storage3 has answered with both spellings across releases.
    if isinstance(data, dict):
        return data.get("signedURL") or data.get("signedUrl") or ""
    return ""


class SupabaseStore:
    """Typed access to the Supabase tables and storage buckets.

    Reads go through the shared client. ``as_user`` returns a store whose
    REST calls carry the member's access token so that row-level security
    applies to their writes.
    """

    def __init__(
        self,
        client: AsyncClient,
        *,
        url: str,
        key: str,
        rest: AsyncPostgrestClient | None = None,
    ) -> None:
        self.client = client
        self._url = url.rstrip("/")
        self._key = key
        self._rest = rest
        self._owns_rest = rest is not None

    def as_user(self, access_token: str) -> "SupabaseStore":
        rest = AsyncPostgrestClient(
            f"{self._url}/rest/v1",
            headers={
                **DEFAULT_POSTGREST_CLIENT_HEADERS,
                "apikey": self._key,
                "Authorization": f"Bearer {access_token}",
            },
        )
        return SupabaseStore(self.client, url=self._url, key=self._key, rest=rest)

    async def aclose(self) -> None:
        if self._owns_rest and self._rest is not None:
            await self._rest.aclose()

    def _table(self, name: str):
        if self._rest is not None:
            return self._rest.from_(name)
        return self.client.table(name)

    async def _execute(self, query, what: str) -> list[Dict[str, Any]]:
        try:
            res = await query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.warning("Supabase %s failed: %s", what, e)
            raise BackendError(f"{what} failed") from e
        return list(res.data or []) if res is not None else []

    # Reviews

    async def fetch_feed_reviews(self) -> list[Review]:
        query = self._table("reviews").select(FEED_SELECT).order("created_at", desc=True)
        rows = await self._execute(query, "feed read")
        return [row_to_review(r) for r in rows]

    async def fetch_review(self, review_id: str) -> Review | None:
        query = self._table("reviews").select(DETAIL_SELECT).eq("id", review_id).limit(1)
        rows = await self._execute(query, "review read")
        return row_to_review(rows[0]) if rows else None

    async def fetch_place_reviews(self, place_id: str) -> list[Review]:
        query = (
            self._table("reviews")
            .select(PLACE_REVIEWS_SELECT)
            .eq("place_id", place_id)
            .order("created_at", desc=True)
        )
        rows = await self._execute(query, "place reviews read")
        return [row_to_review(r) for r in rows]

    # Places

    async def fetch_places(self) -> list[Place]:
        query = self._table("places").select("id, name, address, latitude, longitude")
        rows = await self._execute(query, "places read")
        return [p for p in (_row_to_place(r) for r in rows) if p is not None]

    async def fetch_reviewed_place_ids(self) -> set[str]:
        query = self._table("reviews").select("place_id").not_.is_("place_id", "null")
        rows = await self._execute(query, "reviewed places read")
        return {str(r["place_id"]) for r in rows if r.get("place_id") is not None}

    # Votes

    async def find_vote(self, review_id: str, user_id: str) -> Vote | None:
        query = (
            self._table("votes")
            .select(VOTE_COLUMNS)
            .eq("review_id", review_id)
            .eq("user_id", user_id)
            .limit(1)
        )
        rows = await self._execute(query, "vote read")
        return _row_to_vote(rows[0]) if rows else None

    async def insert_vote(self, review_id: str, user_id: str, vote_type: VoteType) -> Vote:
        query = self._table("votes").insert(
            {"review_id": review_id, "user_id": user_id, "type": vote_type.value}
        )
        rows = await self._execute(query, "vote insert")
        if not rows:
            raise BackendError("vote insert returned no row")
        return _row_to_vote(rows[0])

    async def update_vote(self, vote_id: str, vote_type: VoteType) -> Vote:
        query = self._table("votes").update({"type": vote_type.value}).eq("id", vote_id)
        rows = await self._execute(query, "vote update")
        if not rows:
            raise BackendError("vote update matched no row")
        return _row_to_vote(rows[0])

    async def delete_vote(self, vote_id: str) -> None:
        rows = await self._execute(self._table("votes").delete().eq("id", vote_id), "vote delete")
        # Row-level security and concurrent deletes both answer with no rows.
        if not rows:
            raise BackendError("vote delete matched no row")

    # Comments

    async def insert_comment(self, review_id: str, user_id: str, content: str) -> Comment:
        query = self._table("review_comments").insert(
            {"review_id": review_id, "user_id": user_id, "content": content}
        )
        rows = await self._execute(query, "comment insert")
        if not rows:
            raise BackendError("comment insert returned no row")

        # Inserts cannot embed the author projection; read it back.
        query = self._table("review_comments").select(COMMENT_SELECT).eq("id", rows[0]["id"]).limit(1)
        full = await self._execute(query, "comment read")
        return _row_to_comment(full[0] if full else rows[0])

    # Storage

    async def create_signed_url(self, bucket: str, object_path: str, expires_in: int) -> str:
        data = await self.client.storage.from_(bucket).create_signed_url(object_path, expires_in)
        return _signed_url(data)
