"""Caller identity from bearer tokens. Token issuance lives in the account service."""
import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from config import JWT_SECRET_KEY, JWT_ALGORITHM

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def decode_user_id(token: Optional[str]) -> Optional[str]:
    """Return the `sub` claim of a valid token, or None."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        return None
    user_id = payload.get("sub") or payload.get("id")
    return str(user_id) if user_id else None


def get_current_user_id(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """FastAPI dependency resolving the authenticated caller id."""
    if credentials is None:
        raise HTTPException(status_code=401, detail={"error": "Access denied. No token provided."})
    user_id = decode_user_id(credentials.credentials)
    if not user_id:
        raise HTTPException(status_code=401, detail={"error": "Invalid token."})
    return user_id
