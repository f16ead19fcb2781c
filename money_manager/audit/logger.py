"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of edits and deletions
2. Debugging capability when a write fails
3. A trail of destructive actions (clear, restore)

The audit logger:
- Is async so it can be awaited from the same flows it observes
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

import logging
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from money_manager.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at `log_level`.

    structlog's level filter defers to stdlib, so without this only
    warnings and errors would be emitted.
    """
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    logging.getLogger().setLevel(log_level.upper())


class AuditLogger:
    """Central audit logging service."""

    def __init__(self, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self._logger = logger or structlog.get_logger("money_manager.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written. Never raises.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity.value == "error":
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Logging must never break a ledger write
            return False

        return True

    async def _build_and_log(self, build: Callable[..., AuditEvent], **kwargs) -> bool:
        """Build an event from caller data and log it. Never raises."""
        try:
            event = build(**kwargs)
        except ValidationError as e:
            self._logger.warning("audit_event_invalid", builder=build.__name__, error=str(e))
            return False
        return await self.log(event)

    async def log_person_saved(self, person_id: str, name: str) -> None:
        await self._build_and_log(AuditEventBuilder.person_saved, person_id=person_id, name=name)

    async def log_person_deleted(self, person_id: str) -> None:
        await self._build_and_log(AuditEventBuilder.person_deleted, person_id=person_id)

    async def log_transaction_saved(
        self,
        transaction_id: str,
        person_id: str,
        amount: float,
        transaction_type: str,
    ) -> None:
        await self._build_and_log(
            AuditEventBuilder.transaction_saved,
            transaction_id=transaction_id,
            person_id=person_id,
            amount=amount,
            transaction_type=transaction_type,
        )

    async def log_transaction_deleted(self, transaction_id: str) -> None:
        await self._build_and_log(AuditEventBuilder.transaction_deleted, transaction_id=transaction_id)

    async def log_validation_failed(self, entity_type: str, issues: list[dict]) -> None:
        await self._build_and_log(
            AuditEventBuilder.validation_failed,
            entity_type=entity_type,
            issues=issues,
        )
