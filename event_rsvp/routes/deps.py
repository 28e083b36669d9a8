from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from event_rsvp.core.security import decode_access_token
from event_rsvp.services.errors import UnauthenticatedError

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Resolve the caller's stable identity from the bearer token."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthenticatedError()
    return decode_access_token(credentials.credentials)
