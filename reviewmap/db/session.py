from __future__ import annotations

import logging

from supabase import acreate_client

from reviewmap.core.config import settings
from reviewmap.db.crud import SupabaseStore

logger = logging.getLogger(__name__)


async def create_store() -> SupabaseStore | None:
    """Connect the shared Supabase client, or return None when not configured."""
    url = (settings.supabase_url or "").strip()
    key = (settings.supabase_anon_key or "").strip()
    if not url or not key:
        logger.warning("Supabase URL/key not configured; data endpoints will answer 503")
        return None

    client = await acreate_client(url, key)
    logger.info("Supabase client ready for %s", url)
    return SupabaseStore(client, url=url, key=key)
