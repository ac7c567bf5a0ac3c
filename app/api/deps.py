"""AdWizard — Shared API Dependencies."""

from typing import Optional

import httpx
from fastapi import Header, HTTPException

from app.connectors.meta.client import FacebookAPIError
from app.core.errors import (
    AdWizardError,
    NotConnected,
    PersistenceError,
    RemotePublishError,
    ValidationFailed,
)


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Session accessor — the identity provider puts the user id in X-User-Id."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound HTTP transport; None means the real network."""
    return None


def http_error(error: Exception) -> HTTPException:
    """Map a domain error to an HTTP error carrying its message unmodified."""
    if isinstance(error, NotConnected):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, ValidationFailed):
        return HTTPException(status_code=422, detail=error.message)
    if isinstance(error, (RemotePublishError, FacebookAPIError)):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=500, detail=error.message)
    if isinstance(error, AdWizardError):
        return HTTPException(status_code=400, detail=error.message)
    return HTTPException(status_code=500, detail=str(error))
