"""
Outbound events for the workspace (in-app notifications are delivered by
another service). Emission is fire-and-forget: a failing port never fails
the quiz operation that emitted the event.
"""

import logging
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationPort(Protocol):
    def emit_workspace(self, workspace_id: str, event: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotificationPort:
    """Default port: records the event in the service log."""

    def emit_workspace(self, workspace_id: str, event: str, payload: Dict[str, Any]) -> None:
        logger.info("event %s for workspace %s: %s", event, workspace_id, payload)


def notify_safely(
    port: Optional[NotificationPort],
    workspace_id: Optional[str],
    event: str,
    payload: Dict[str, Any],
) -> None:
    if port is None or not workspace_id:
        return
    try:
        port.emit_workspace(workspace_id, event, payload)
    except Exception:
        logger.exception("Failed to emit %s for workspace %s", event, workspace_id)
