"""
JWT helpers.

Tokens are issued by the identity provider in front of this service; we
only verify them and read the subject (profile id). `create_access_token`
exists for service-to-service calls and the test suite.

SECURITY REQUIREMENTS:
- SECRET_KEY must be set via environment variable
- SECRET_KEY must be cryptographically secure (32+ characters)
- SECRET_KEY must NEVER be committed to source control
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from jose import JWTError, jwt
from core.config import settings

# JWT settings - SECRET_KEY is required by config.py, will fail at startup if not set
SECRET_KEY = settings.SECRET_KEY

# Validate SECRET_KEY strength at module load
if len(SECRET_KEY) < 32:
    raise ValueError(
        "SECRET_KEY must be at least 32 characters. "
        "Generate with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )

ALGORITHM = "HS256"


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_user_id_from_token(token: str) -> Optional[str]:
    """Extract user ID from JWT token."""
    payload = decode_access_token(token)
    if payload:
        return payload.get("sub")  # Standard JWT claim for subject (user ID)
    return None
