import logging
from typing import Callable, List, Protocol

logger = logging.getLogger(__name__)


class InvalidationHook(Protocol):
    def invalidate(self, *keys: str) -> None: ...


class CacheInvalidator:
    """
    Fans changed read-model paths out to subscribers (page caches, list
    caches). A subscriber that fails is logged and skipped.
    """

    def __init__(self):
        self._subscribers: List[Callable[[str], None]] = []

    def subscribe(self, callback: Callable[[str], None]) -> None:
        self._subscribers.append(callback)

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            logger.debug(f"Invalidating {key}")
            for callback in self._subscribers:
                try:
                    callback(key)
                except Exception as e:
                    logger.warning(f"Invalidation subscriber failed for {key}: {e}", exc_info=True)


# Process-wide hook used by the HTTP layer
invalidator = CacheInvalidator()


def form_paths(kind_value: str, form_id: int) -> List[str]:
    return [
        f"/performance/{kind_value}/forms/{form_id}",
        f"/performance/{kind_value}/forms",
        "/performance/approvals",
    ]
