import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from hris.core.config import settings
from hris.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def dispatch(self, recipient_id: int, template_key: str, context: Dict[str, Any]) -> None: ...


# template_key -> (title, message, type); messages are str.format templates
TEMPLATES = {
    "performance.submitted": (
        "{label} submitted",
        "{subject_name} submitted the {label} for {cycle_name}. It is waiting for your action.",
        "info",
    ),
    "performance.reviewed": (
        "{label} reviewed",
        "Your {label} for {cycle_name} has been reviewed and forwarded for final rating.",
        "info",
    ),
    "performance.finalized": (
        "{label} finalized",
        "Your {label} for {cycle_name} has been finalized with a rating of {rating} ({adjectival}).",
        "success",
    ),
    "performance.approved": (
        "{label} approved",
        "The {label} for {cycle_name} has been approved by the {office_name} with a rating of {rating} ({adjectival}).",
        "success",
    ),
    "performance.returned": (
        "{label} returned",
        "Your {label} for {cycle_name} was returned for revision. Remarks: {remarks}",
        "warning",
    ),
}


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def render(template_key: str, context: Dict[str, Any]) -> Optional[tuple]:
        template = TEMPLATES.get(template_key)
        if template is None:
            return None
        title, message, type_ = template
        values = {"office_name": settings.office_name, **context}
        return title.format(**values), message.format(**values), type_

    def dispatch(self, recipient_id: int, template_key: str, context: Dict[str, Any]) -> Optional[Notification]:
        """
        Renders the template into an in-app notification for the recipient.
        """
        if not settings.enable_notifications:
            return None
        rendered = self.render(template_key, context)
        if rendered is None:
            logger.warning(f"Unknown notification template: {template_key}")
            return None
        title, message, type_ = rendered
        notification = Notification(
            user_id=recipient_id,
            template_key=template_key,
            title=title,
            message=message,
            type=type_,
            link=context.get("link"),
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return notification
