# File: wpstudio/infrastructure/logging/action_logger.py
# Purpose: Audit trail of domain actions written to the "action" log channel
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from wpstudio.infrastructure.logging.formatters import SensitiveDataFilter

logger = structlog.get_logger("action")


class ActionLogger:
    """Records who changed what, with before/after snapshots."""

    channel = "action"

    def log(
        self,
        operation: str,
        actor: Optional[str] = None,
        before: Optional[dict[str, Any]] = None,
        after: Optional[dict[str, Any]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Record a domain action.

        Args:
            operation: Dotted operation name, e.g. "wordpress.category.updated"
            actor: Identifier of the user or system performing the action
            before: State prior to the action
            after: State after the action
            metadata: Extra key/value pairs
        """
        logger.info(
            "domain_action_recorded",
            channel=self.channel,
            operation=operation,
            actor=actor,
            occurred_at=datetime.now(timezone.utc).isoformat(),
            before=SensitiveDataFilter.redact(before or {}),
            after=SensitiveDataFilter.redact(after or {}),
            metadata=SensitiveDataFilter.redact(metadata or {}),
        )
