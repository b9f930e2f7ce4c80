import logging
from typing import Optional

from fastapi import Header, HTTPException, Request

from game_student.security import decode_access_token

logger = logging.getLogger(__name__)


def verify_token(request: Request, authorization: Optional[str] = Header(None)) -> str:
    """Bearer-token gate for protected routes. Returns the authenticated email."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing token")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid token")

    settings = request.app.state.settings
    claims = decode_access_token(token, settings.jwt_secret, settings.jwt_algorithm)
    if not claims or not claims.get("email"):
        logger.warning("Rejected bearer token for %s %s", request.method, request.url.path)
        raise HTTPException(status_code=401, detail="Invalid token")

    return claims["email"]
