"""AdWizard — Facebook Credential Resolver.

Looks up the stored access token and ad account for a user. No token refresh:
an expired token surfaces later as a Graph API error.
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.config import settings
from app.core.errors import NotConnected, PersistenceError
from app.core.logging import get_logger
from app.models.connection_models import OAuthState, PlatformConnection

logger = get_logger("campaigns.credentials")

PLATFORM = "facebook"
_ACT_PREFIX = re.compile(r"^act_", re.IGNORECASE)


@dataclass(frozen=True)
class FacebookCredentials:
    access_token: str
    ad_account_id: str
    page_id: Optional[str] = None


def clean_account_id(account_id: str) -> str:
    """Strip the ``act_`` prefix; Graph paths add it back."""
    return _ACT_PREFIX.sub("", account_id.strip())


def connection_metadata(connection: PlatformConnection) -> Dict[str, Any]:
    try:
        return json.loads(connection.metadata_json or "{}")
    except json.JSONDecodeError:
        logger.warning(f"Corrupt metadata on connection {connection.id}")
        return {}


def default_page_id(metadata: Dict[str, Any]) -> Optional[str]:
    """Selected page, else the first page the token can manage."""
    if metadata.get("selected_page_id"):
        return str(metadata["selected_page_id"])
    pages = metadata.get("pages") or []
    if pages and pages[0].get("id"):
        return str(pages[0]["id"])
    return None


class CredentialResolver:
    """Read/write access to a user's Facebook connection row."""

    def __init__(self, session: Session):
        self.session = session

    def get_connection(self, user_id: str) -> Optional[PlatformConnection]:
        statement = select(PlatformConnection).where(
            PlatformConnection.user_id == user_id,
            PlatformConnection.platform == PLATFORM,
        )
        return self.session.exec(statement).first()

    def resolve(self, user_id: str, page_id: Optional[str] = None) -> FacebookCredentials:
        """Return usable credentials or raise ``NotConnected``."""
        connection = self.get_connection(user_id)
        if connection is None or not connection.access_token:
            raise NotConnected()
        if not connection.account_id:
            raise NotConnected(
                "Facebook access token or ad account not found. "
                "Please select an ad account."
            )
        metadata = connection_metadata(connection)
        return FacebookCredentials(
            access_token=connection.access_token,
            ad_account_id=clean_account_id(connection.account_id),
            page_id=page_id or default_page_id(metadata),
        )

    def resolve_token(self, user_id: str) -> str:
        """Access token only; enough for account-independent calls."""
        connection = self.get_connection(user_id)
        if connection is None or not connection.access_token:
            raise NotConnected()
        return connection.access_token

    # ── Writes ──

    def _commit(self, connection: Optional[PlatformConnection] = None) -> None:
        try:
            self.session.commit()
            if connection is not None:
                self.session.refresh(connection)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Error saving Facebook connection: {e}") from e

    def save_connection(
        self,
        user_id: str,
        access_token: str,
        expires_at: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
        account_id: Optional[str] = None,
    ) -> PlatformConnection:
        """Insert or replace the user's Facebook connection."""
        connection = self.get_connection(user_id)
        if connection is None:
            connection = PlatformConnection(user_id=user_id, platform=PLATFORM)
        connection.access_token = access_token
        connection.expires_at = expires_at
        connection.metadata_json = json.dumps(metadata or {})
        if account_id:
            connection.account_id = clean_account_id(account_id)
        connection.updated_at = datetime.now(timezone.utc)
        self.session.add(connection)
        self._commit(connection)
        logger.info("Facebook connection saved", extra={"user_id": user_id})
        return connection

    def select_account(
        self,
        user_id: str,
        account_id: Optional[str] = None,
        page_id: Optional[str] = None,
    ) -> PlatformConnection:
        """Choose which ad account and page publishing uses."""
        connection = self.get_connection(user_id)
        if connection is None:
            raise NotConnected()
        if account_id:
            connection.account_id = clean_account_id(account_id)
        if page_id:
            metadata = connection_metadata(connection)
            metadata["selected_page_id"] = page_id
            connection.metadata_json = json.dumps(metadata)
        connection.updated_at = datetime.now(timezone.utc)
        self.session.add(connection)
        self._commit(connection)
        return connection

    def delete_connection(self, user_id: str) -> bool:
        connection = self.get_connection(user_id)
        if connection is None:
            return False
        self.session.delete(connection)
        self._commit()
        logger.info("Facebook connection removed", extra={"user_id": user_id})
        return True

    # ── OAuth state ──

    def issue_state(self, user_id: str, state: str) -> OAuthState:
        """Remember a login-dialog state for this user until it expires."""
        issued = OAuthState(
            state=state,
            user_id=user_id,
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=settings.oauth_state_ttl_seconds),
        )
        self.session.add(issued)
        self._commit(issued)
        return issued

    def consume_state(self, user_id: str, state: Optional[str]) -> bool:
        """True when ``state`` was issued to ``user_id`` and has not expired.

        A matching state is deleted, so each one is accepted at most once.
        """
        if not state:
            return False
        issued = self.session.get(OAuthState, state)
        if issued is None or issued.user_id != user_id:
            return False
        expires_at = issued.expires_at
        self.session.delete(issued)
        self._commit()
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at > datetime.now(timezone.utc)
