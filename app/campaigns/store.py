"""AdWizard — Local Campaign Record Lifecycle.

draft ──► active   (remote ids attached)
  └─────► failed   (error message stored)

Records are never deleted here.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.errors import PersistenceError
from app.core.logging import get_logger
from app.models.campaign_models import AdCampaign, CampaignStatus
from app.models.campaign_schemas import CampaignRecordOut, CampaignRequest, PublishedAd

logger = get_logger("campaigns.store")


def platform_data(record: AdCampaign) -> Dict[str, Any]:
    if not record.platform_data_json:
        return {}
    return json.loads(record.platform_data_json)


def to_record_out(record: AdCampaign) -> CampaignRecordOut:
    data = platform_data(record)
    return CampaignRecordOut(
        id=record.id,
        user_id=record.user_id,
        project_id=record.project_id,
        platform=record.platform,
        name=record.name,
        status=record.status.value if isinstance(record.status, CampaignStatus) else record.status,
        external_id=record.external_id,
        ad_set_id=data.get("ad_set_id"),
        ads=[PublishedAd(**pair) for pair in data.get("ads", [])],
        error_message=record.error_message,
        remote_status=record.remote_status,
        campaign_config=json.loads(record.campaign_config_json or "{}"),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class CampaignStore:
    """Create/read/update of ``AdCampaign`` rows."""

    def __init__(self, session: Session):
        self.session = session

    def _save(self, record: AdCampaign, action: str) -> AdCampaign:
        record.updated_at = datetime.now(timezone.utc)
        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                f"Failed to {action} campaign record: {e}",
                extra={"record_id": record.id},
            )
            raise PersistenceError(f"Error saving campaign record: {e}") from e
        return record

    def create_draft(self, user_id: str, request: CampaignRequest) -> AdCampaign:
        record = AdCampaign(
            user_id=user_id,
            project_id=request.project_id,
            name=request.name,
            campaign_config_json=request.model_dump_json(by_alias=True),
            status=CampaignStatus.DRAFT,
        )
        record = self._save(record, "insert")
        logger.info(
            f"Draft campaign '{record.name}' recorded",
            extra={"record_id": record.id, "user_id": user_id},
        )
        return record

    def mark_active(
        self,
        record: AdCampaign,
        external_id: str,
        ad_set_id: str,
        ads: List[PublishedAd],
    ) -> AdCampaign:
        record.status = CampaignStatus.ACTIVE
        record.external_id = external_id
        record.platform_data_json = json.dumps(
            {"ad_set_id": ad_set_id, "ads": [ad.model_dump() for ad in ads]}
        )
        record.error_message = None
        return self._save(record, "activate")

    def mark_failed(
        self,
        record: AdCampaign,
        message: str,
        external_id: Optional[str] = None,
        ad_set_id: Optional[str] = None,
        ads: Optional[List[PublishedAd]] = None,
    ) -> AdCampaign:
        """Store the failure; ids of remote objects already created are kept."""
        record.status = CampaignStatus.FAILED
        record.error_message = message or "Unknown error"
        if external_id:
            record.external_id = external_id
        if ad_set_id or ads:
            record.platform_data_json = json.dumps(
                {"ad_set_id": ad_set_id, "ads": [ad.model_dump() for ad in ads or []]}
            )
        return self._save(record, "mark failed")

    def set_remote_status(self, record: AdCampaign, remote_status: str) -> AdCampaign:
        record.remote_status = remote_status
        return self._save(record, "update remote status of")

    def get(self, record_id: str, user_id: Optional[str] = None) -> Optional[AdCampaign]:
        record = self.session.get(AdCampaign, record_id)
        if record is None or (user_id is not None and record.user_id != user_id):
            return None
        return record

    def find_by_external_id(self, user_id: str, external_id: str) -> List[AdCampaign]:
        statement = select(AdCampaign).where(
            AdCampaign.user_id == user_id, AdCampaign.external_id == external_id
        )
        return list(self.session.exec(statement).all())

    def list_for_user(
        self, user_id: str, project_id: Optional[str] = None
    ) -> List[AdCampaign]:
        statement = select(AdCampaign).where(AdCampaign.user_id == user_id)
        if project_id:
            statement = statement.where(AdCampaign.project_id == project_id)
        statement = statement.order_by(AdCampaign.created_at.desc())
        return list(self.session.exec(statement).all())
