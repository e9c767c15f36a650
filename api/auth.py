import hmac
import hashlib
import time
from typing import Optional

import structlog
from fastapi import Header, HTTPException, Request

from core.config import settings

logger = structlog.get_logger()


def create_token(user_id: int, timestamp: Optional[int] = None) -> str:
    """Signed token in the form {user_id}:{timestamp}:{signature}."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    data = f"{user_id}:{timestamp}"
    signature = hmac.new(settings.SECRET_KEY.encode(), data.encode(), hashlib.sha256).hexdigest()
    return f"{data}:{signature}"


def verify_token(token: str) -> Optional[int]:
    """
    Verify a signed token issued by the identity service.
    Format: {user_id}:{timestamp}:{signature}
    """
    if not token:
        return None

    parts = token.split(':')
    if len(parts) != 3:
        return None

    user_id_str, timestamp_str, signature = parts
    try:
        issued_at = int(timestamp_str)
        user_id = int(user_id_str)
    except ValueError:
        return None

    # Check expiration
    if int(time.time()) - issued_at > settings.TOKEN_TTL_SECONDS:
        logger.warning("Token expired", user_id=user_id_str)
        return None

    data = f"{user_id_str}:{timestamp_str}"
    expected_signature = hmac.new(settings.SECRET_KEY.encode(), data.encode(), hashlib.sha256).hexdigest()

    if hmac.compare_digest(expected_signature, signature):
        return user_id

    logger.warning("Token signature mismatch", user_id=user_id_str)
    return None


def get_current_user(
    request: Request,
    x_auth_token: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> int:
    """Resolve the caller's user id from X-Auth-Token or Authorization: Bearer."""
    if authorization and authorization.lower().startswith('bearer '):
        user_id = verify_token(authorization.split(' ', 1)[1].strip())
        if user_id:
            return user_id

    if x_auth_token:
        user_id = verify_token(x_auth_token)
        if user_id:
            return user_id

    logger.warning("Auth failed: Missing or invalid credentials", path=request.url.path)
    raise HTTPException(status_code=401, detail="Unauthorized")
