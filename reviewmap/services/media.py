"""Signed URL resolution for media stored in Supabase Storage.

Stored references are either absolute URLs (possibly pointing at the public
object endpoint of a bucket that is actually private) or bare
``<bucket>/<object-path>`` storage paths. Both are turned into short-lived
signed URLs. Failures degrade to the raw reference so rendering never waits
on, or breaks because of, the storage service.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Protocol

from reviewmap.core.config import settings

logger = logging.getLogger(__name__)


class UrlSigner(Protocol):
    async def create_signed_url(self, bucket: str, object_path: str, expires_in: int) -> str: ...


def extract_storage_path(raw: str, *, marker: str) -> str | None:
    """Return ``<bucket>/<object-path>`` for a stored reference, if it has one."""
    if raw.startswith(("http://", "https://")):
        clean = raw.split("?", 1)[0]
        idx = clean.find(marker)
        if idx == -1:
            return None
        return clean[idx + len(marker):]
    return raw.lstrip("/")


def split_storage_path(path: str) -> tuple[str, str] | None:
    bucket, _, object_path = path.partition("/")
    if not bucket or not object_path:
        return None
    return bucket, object_path


class MediaResolver:
    def __init__(
        self,
        signer: UrlSigner,
        *,
        ttl_seconds: int | None = None,
        marker: str | None = None,
    ) -> None:
        self.signer = signer
        self.ttl_seconds = ttl_seconds or settings.signed_url_ttl_seconds
        self.marker = marker or settings.storage_public_marker

    async def resolve(self, raw: str | None) -> str:
        if not raw:
            return ""

        path = extract_storage_path(raw, marker=self.marker)
        if path is None:
            return raw
        parts = split_storage_path(path)
        if parts is None:
            return raw
        bucket, object_path = parts

        try:
            signed = await self.signer.create_signed_url(bucket, object_path, self.ttl_seconds)
        except Exception as e:
            logger.warning("Could not sign %s/%s: %s", bucket, object_path, e)
            return raw

        if not signed:
            logger.warning("Storage returned no signed URL for %s/%s", bucket, object_path)
            return raw
        return signed

    async def resolve_many(self, raws: Iterable[str | None]) -> list[str]:
        return list(await asyncio.gather(*(self.resolve(r) for r in raws)))
