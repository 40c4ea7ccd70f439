import logging
from typing import Any, Optional, Protocol

from sqlalchemy.orm import Session

from hris.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def record(self, event_type: str, entity_kind: str, entity_id: Optional[int], detail: dict, actor: Any = None) -> None: ...


class AuditService:
    """
    Writes activity rows to `audit_logs`.
    Called after the audited change has committed, in its own commit, so an
    audit failure can never undo the change itself.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(self, event_type: str, entity_kind: str, entity_id: Optional[int], detail: dict, actor: Any = None) -> Optional[AuditLog]:
        try:
            def sanitize(obj):
                if hasattr(obj, "model_dump"):
                    return obj.model_dump(mode="json")
                if isinstance(obj, dict):
                    return {k: sanitize(v) for k, v in obj.items()}
                if isinstance(obj, (list, tuple)):
                    return [sanitize(i) for i in obj]
                if hasattr(obj, "value"):  # enums
                    return obj.value
                if isinstance(obj, (str, int, float, bool)) or obj is None:
                    return obj
                return str(obj)

            role = getattr(actor, "role", None)
            db_log = AuditLog(
                action=event_type,
                entity_type=entity_kind,
                entity_id=entity_id,
                user_id=getattr(actor, "id", None),
                user_role=role.value if hasattr(role, "value") else role,
                details=sanitize(detail or {}),
            )
            self.db.add(db_log)
            self.db.commit()
            return db_log
        except Exception as e:
            self.db.rollback()
            logger.error(f"FAILED TO AUDIT LOG: {e}", exc_info=True)
            return None  # Never break the main app flow because of a logging failure
