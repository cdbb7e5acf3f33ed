"""
Bearer token handling.

Tokens are issued by the surrounding identity system; this service only
verifies them. Two token shapes are accepted:
- employee tokens: ``sub`` is the employee id
- admin-only account tokens: ``kind == "admin"`` and ``sub`` is the account
  login (no employee profile behind it)
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

ADMIN_TOKEN_KIND = "admin"
EMPLOYEE_TOKEN_KIND = "employee"


def create_access_token(data: Dict, expires_minutes: Optional[int] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()

    if expires_minutes is None:
        expires_minutes = settings.JWT_EXPIRE_MINUTES

    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    to_encode.setdefault("kind", EMPLOYEE_TOKEN_KIND)

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def decode_token(token: str) -> Dict:
    """Decode and verify a JWT token"""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        logger.debug("Rejected bearer token", exc_info=True)
        raise ValueError("Invalid token")
