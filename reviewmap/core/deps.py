from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from reviewmap.core.security import user_id_from_token
from reviewmap.db.crud import SupabaseStore
from reviewmap.services.engagement_cache import EngagementCache
from reviewmap.services.media import MediaResolver
from reviewmap.services.routing import RouteResolver
from reviewmap.services.votes import InFlightGate, VoteStateMachine

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    return credentials.credentials if credentials else None


def get_current_user_id(token: str | None = Depends(get_access_token)) -> str | None:
    """Acting user id, or None for anonymous callers."""
    return user_id_from_token(token)


def require_user_id(user_id: str | None = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="You must sign in to do that.")
    return user_id


def get_store(request: Request) -> SupabaseStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Data service not configured")
    return store


async def get_user_store(
    store: SupabaseStore = Depends(get_store),
    token: str | None = Depends(get_access_token),
) -> AsyncIterator[SupabaseStore]:
    """Store whose writes run under the caller's row-level permissions."""
    if not token:
        yield store
        return
    scoped = store.as_user(token)
    try:
        yield scoped
    finally:
        await scoped.aclose()


def get_media_resolver(store: SupabaseStore = Depends(get_store)) -> MediaResolver:
    return MediaResolver(store)


def get_engagement_cache(
    request: Request,
    store: SupabaseStore = Depends(get_store),
    resolver: MediaResolver = Depends(get_media_resolver),
) -> EngagementCache:
    cache = getattr(request.app.state, "engagement_cache", None)
    if cache is None:
        cache = EngagementCache(store, resolver)
        request.app.state.engagement_cache = cache
    return cache


def get_vote_machine(
    request: Request,
    store: SupabaseStore = Depends(get_user_store),
    resolver: MediaResolver = Depends(get_media_resolver),
) -> VoteStateMachine:
    gate = getattr(request.app.state, "mutation_gate", None)
    if gate is None:
        gate = InFlightGate()
        request.app.state.mutation_gate = gate
    return VoteStateMachine(store, resolver, gate)


def get_route_resolver() -> RouteResolver:
    return RouteResolver()
