from __future__ import annotations

from jose import JWTError, jwt

from reviewmap.core.config import settings

# Supabase Auth signs access tokens with the project's JWT secret.
ALGORITHM = "HS256"


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.supabase_jwt_secret,
        algorithms=[ALGORITHM],
        audience=settings.supabase_jwt_audience,
    )


def user_id_from_token(token: str | None) -> str | None:
    """Return the acting user id carried by a Supabase access token.

    Missing, expired or forged tokens all mean "anonymous".
    """
    if not token or not settings.supabase_jwt_secret:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None
