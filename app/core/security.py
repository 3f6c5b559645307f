"""
Token handling for requests authenticated by the external auth service.

Login, password storage and SSO live outside this service; it only verifies the
bearer token and reads the employee id from the ``sub`` claim.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token. Used by tooling and tests to mint tokens the
    way the auth service does.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=120))
    to_encode.update({"exp": expire})
    if "sub" in to_encode:
        # jose requires sub to be a string
        to_encode["sub"] = str(to_encode["sub"])
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict:
    """
    Decode and verify a JWT token

    Raises:
        ValueError: if the token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.debug("Token rejected: %s", e)
        raise ValueError("Invalid token") from e
