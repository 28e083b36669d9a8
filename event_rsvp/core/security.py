from datetime import datetime, timedelta, timezone

import jwt

from event_rsvp.core.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_SECRET, USER_ID_MAX_LENGTH
from event_rsvp.services.errors import UnauthenticatedError


def create_access_token(subject: str, expires_minutes: int = JWT_EXPIRE_MINUTES) -> str:
    """Mint a bearer token for ``subject``. Used by tooling and tests; login lives elsewhere."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode({"sub": str(subject), "exp": expire}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the caller identity carried by ``token``."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthenticatedError("Token has expired") from exc
    except jwt.PyJWTError as exc:
        raise UnauthenticatedError("Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise UnauthenticatedError("Token has no subject")
    subject = str(subject)
    if len(subject) > USER_ID_MAX_LENGTH:
        raise UnauthenticatedError("Token subject is too long")
    return subject
