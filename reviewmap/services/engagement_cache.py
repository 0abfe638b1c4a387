"""In-memory snapshot of enriched reviews backing search and author ranks."""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from reviewmap.core.config import settings
from reviewmap.core.errors import BackendError, RemoteReadError
from reviewmap.schemas.profiles import RankInfo
from reviewmap.schemas.reviews import EnrichedReview, Review, VoteType
from reviewmap.services.media import MediaResolver
from reviewmap.services.ranks import rank_for

logger = logging.getLogger(__name__)


class FeedSource(Protocol):
    async def fetch_feed_reviews(self) -> list[Review]: ...


def compute_profile_like_totals(reviews: list[Review]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for review in reviews:
        if review.author is None:
            continue
        likes = sum(1 for v in review.votes if v.type == VoteType.like)
        totals[review.author.id] = totals.get(review.author.id, 0) + likes
    return totals


def matches(review: Review, term: str) -> bool:
    """Case-insensitive match of an already lower-cased term."""
    place_name = (review.place.name if review.place else "").lower()
    content = (review.content or "").lower()
    tags = " ".join(review.hashtags).lower()
    return term in place_name or term in content or term in tags


class EngagementCache:
    def __init__(
        self,
        source: FeedSource,
        resolver: MediaResolver,
        *,
        concurrency: int | None = None,
    ) -> None:
        self.source = source
        self.resolver = resolver
        self.concurrency = max(1, concurrency or settings.enrichment_concurrency)
        self._reviews: list[EnrichedReview] = []
        self._like_totals: dict[str, int] = {}
        self._ready = False
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def reviews(self) -> list[EnrichedReview]:
        return list(self._reviews)

    @property
    def profile_like_totals(self) -> dict[str, int]:
        return dict(self._like_totals)

    async def load(self) -> list[EnrichedReview]:
        generation = self._generation
        try:
            raw = await self.source.fetch_feed_reviews()
        except BackendError as e:
            raise RemoteReadError("Could not load reviews.") from e

        semaphore = asyncio.Semaphore(self.concurrency)
        enriched = await asyncio.gather(*(self._enrich_bounded(semaphore, r) for r in raw))

        enriched = list(enriched)
        if generation != self._generation:
            # Invalidated mid-load; these rows may predate the change.
            logger.info("Engagement cache load discarded after invalidation")
            return enriched

        # Publish both views together so readers never see half a load.
        self._reviews = enriched
        self._like_totals = compute_profile_like_totals(raw)
        self._ready = True
        logger.info("Engagement cache loaded %s reviews (%s authors)", len(enriched), len(self._like_totals))
        return list(enriched)

    async def _enrich_bounded(self, semaphore: asyncio.Semaphore, review: Review) -> EnrichedReview:
        async with semaphore:
            try:
                return await enrich_review(review, self.resolver)
            except Exception:
                logger.exception("Enrichment failed for review %s; keeping raw media", review.id)
                return as_enriched(review)

    async def ensure_loaded(self) -> list[EnrichedReview]:
        if self._ready:
            return self.reviews
        async with self._lock:
            while not self._ready:
                await self.load()
        return self.reviews

    async def search(self, term: str) -> list[EnrichedReview]:
        needle = (term or "").strip().lower()
        if not needle:
            return []
        source = await self.ensure_loaded()
        return [r for r in source if matches(r, needle)]

    def likes_for_author(self, author_id: str) -> int:
        return self._like_totals.get(author_id, 0)

    def rank_for_author(self, author_id: str | None) -> RankInfo:
        return rank_for(self.likes_for_author(author_id) if author_id else 0)

    def invalidate(self) -> None:
        self._generation += 1
        self._reviews = []
        self._like_totals = {}
        self._ready = False
        logger.info("Engagement cache invalidated")


async def enrich_review(review: Review, resolver: MediaResolver) -> EnrichedReview:
    """Resolve cover image, then author avatar, into renderable URLs."""
    images = list(review.images)
    if images:
        images[0] = await resolver.resolve(images[0]) or images[0]

    author = review.author
    if author is not None and author.avatar_url:
        avatar = await resolver.resolve(author.avatar_url)
        author = author.model_copy(update={"avatar_url": avatar or author.avatar_url})

    return as_enriched(review, images=images, author=author)


def as_enriched(review: Review, **update) -> EnrichedReview:
    fields = dict(review)
    fields.update(update)
    return EnrichedReview(**fields)
