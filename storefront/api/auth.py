# storefront/api/auth.py
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.domain.identity import CurrentUser
from storefront.utils.settings import JWT_SECRET, JWT_ALGORITHM
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> CurrentUser:
    """Verify a bearer token and return the identity it carries.

    Tokens are issued by the auth service with ``id`` (or ``sub``) and ``role`` claims.
    Raises ``jwt.PyJWTError`` for bad signatures/expired tokens and ``ValueError``
    when the user id claim is missing or not an integer.
    """
    payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    user_id = payload.get("id", payload.get("sub"))
    if user_id is None:
        raise ValueError("Token has no user id")
    return CurrentUser(id=int(user_id), role=str(payload.get("role") or "user"))


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="No token provided")
    try:
        return decode_token(credentials.credentials)
    except (jwt.PyJWTError, ValueError) as e:
        logger.info(f"Auth error: {e}")
        raise HTTPException(status_code=401, detail="Unauthorized")
