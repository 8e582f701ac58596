"""
Request dependencies shared by the card routes.

The Authorization header is optional: when present it must be a Gmail OAuth
bearer token, which switches the request to the caller's own inbox.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status


def _extract_bearer_token(authorization: str) -> str:
    """Extract token from Authorization header."""
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return parts[1]


async def get_optional_access_token(request: Request) -> str | None:
    """
    FastAPI dependency returning the caller's bearer token, or None.

    Usage:
        @router.get("/endpoint")
        async def endpoint(access_token: str | None = Depends(get_optional_access_token)):
            ...
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    return _extract_bearer_token(authorization)
