"""
Tiffin Response Engine - Authentication Utilities
JWT bearer tokens and provider auth dependencies.
Login and registration live in the provider account service.
"""
import os
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from .models.db_models import ProviderDB

# Configuration
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "tiffin-responses-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 24

# Bearer token security
security = HTTPBearer()


def create_access_token(provider_id: str, role: str = "provider") -> str:
    """Create a JWT access token for a provider."""
    expire = datetime.utcnow() + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "sub": provider_id,
        "role": role,
        "exp": expire
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None


async def get_current_provider(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> ProviderDB:
    """
    Dependency to get the current authenticated provider.
    Validates JWT token and fetches provider from database.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    provider_id: str = payload.get("sub")
    if provider_id is None:
        raise credentials_exception

    provider = db.query(ProviderDB).filter(ProviderDB.id == provider_id).first()
    if provider is None:
        raise credentials_exception

    return provider


def ensure_provider_access(provider: ProviderDB, provider_id: Optional[str]) -> str:
    """
    A providerId sent in a query or body must be the caller's own.
    Returns the effective provider id.
    """
    if provider_id and provider_id != provider.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access another provider's responses"
        )
    return provider.id
