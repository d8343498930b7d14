"""
Audit Logger

DESIGN DECISION: Every reconciliation check and report build is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A visible trail of every record a computation had to leave out

The audit logger:
- Is async so it fits the store-facing flows
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from profiteer.models.audit import AuditEvent, AuditEventBuilder
from profiteer.models.report import DataAnomaly, DiscrepancyReport, PortfolioReport
from profiteer.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_discrepancy_check(
        self,
        user_id: str,
        report: DiscrepancyReport,
        correlation_id: UUID,
    ) -> None:
        """Log a completed check, plus a warning event if it found a discrepancy."""
        await self.log(AuditEventBuilder.discrepancy_check_completed(
            user_id=user_id,
            report=report,
            correlation_id=correlation_id,
        ))
        if report.has_discrepancy:
            await self.log(AuditEventBuilder.discrepancy_detected(
                user_id=user_id,
                report=report,
                correlation_id=correlation_id,
            ))

    async def log_report_generated(
        self,
        user_id: str,
        report: PortfolioReport,
        correlation_id: UUID,
    ) -> None:
        """Log a portfolio report build."""
        event = AuditEventBuilder.report_generated(
            user_id=user_id,
            report=report,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_export(
        self,
        user_id: str,
        count: int,
        destination: str,
        correlation_id: UUID,
    ) -> None:
        """Log a finished transaction export."""
        event = AuditEventBuilder.transactions_exported(
            user_id=user_id,
            count=count,
            destination=destination,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_anomalies(
        self,
        user_id: str,
        anomalies: list[DataAnomaly],
        correlation_id: UUID,
    ) -> None:
        """Persist every anomaly a computation reported."""
        for anomaly in anomalies:
            event = AuditEventBuilder.data_anomaly(
                user_id=user_id,
                anomaly=anomaly,
                correlation_id=correlation_id,
            )
            await self.log(event)

    async def log_validation_failed(
        self,
        user_id: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a rejected report request."""
        event = AuditEventBuilder.validation_failed(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_store_error(
        self,
        store: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a store failure."""
        event = AuditEventBuilder.store_error(
            store=store,
            error_message=error_message,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a check or report build and pass it
    through all subsequent operations.
    """
    return uuid4()
