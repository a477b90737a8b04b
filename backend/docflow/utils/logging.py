"""Structured audit logging for document state transitions."""

import logging
from typing import Any
from uuid import UUID

from backend.docflow.db.context import Principal

logger = logging.getLogger(__name__)

SUCCESS_OUTCOMES = frozenset({"success", "noop"})


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the application process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


class StructuredAuditLogger:
    """Structured logger for version, change and link transitions."""

    def log_transition(
        self,
        principal: Principal,
        action: str,
        outcome: str,
        *,
        document_id: UUID | None = None,
        **fields: Any,
    ) -> None:
        """Log a state transition with structured data."""
        log_data: dict[str, Any] = {
            "action": action,
            "outcome": outcome,
            "user_id": str(principal.user_id) if principal.user_id else None,
            "org_id": str(principal.org_id) if principal.org_id else None,
        }

        if document_id is not None:
            log_data["document_id"] = str(document_id)

        for key, value in fields.items():
            log_data[key] = str(value) if isinstance(value, UUID) else value

        log_msg = f"Document transition: {action} - {outcome}"

        if outcome in SUCCESS_OUTCOMES:
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})


audit_log = StructuredAuditLogger()
