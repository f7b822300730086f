import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.db import get_db
from app.models.person import Person
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message, "details": None},
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(person_id, expires_in: timedelta = timedelta(days=30)) -> str:
    """Sign a token the way the auth service does; used by tooling and tests."""
    now = datetime.now(timezone.utc)
    claims = {"sub": str(person_id), "iat": now, "exp": now + expires_in}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def require_user_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> Person:
    """Resolve the bearer token to the acting person."""
    if credentials is None:
        raise _unauthorized("Not authorized, no token")
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise _unauthorized("Not authorized, token failed")
    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Not authorized, token failed")
    try:
        person = db.get(Person, coerce_uuid(subject))
    except HTTPException:
        raise _unauthorized("Not authorized, token failed")
    if not person or not person.is_active:
        logger.warning("Rejected token for unknown or inactive person %s", subject)
        raise _unauthorized("Not authorized, user not found")
    return person
