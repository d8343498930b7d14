"""
Audit Models for Profiteer

Every reconciliation check and report build is logged for audit purposes.
This provides:
1. A history of when the ledger was found balanced or not
2. A durable record of every data anomaly that changed an answer
3. Debugging information when a store fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from profiteer.models.report import DataAnomaly, DiscrepancyReport, PortfolioReport


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Reconciliation
    DISCREPANCY_CHECK_COMPLETED = "discrepancy_check_completed"
    DISCREPANCY_DETECTED = "discrepancy_detected"

    # Reporting
    REPORT_GENERATED = "report_generated"
    TRANSACTIONS_EXPORTED = "transactions_exported"

    # Data quality
    DATA_ANOMALY = "data_anomaly"

    # Input
    VALIDATION_FAILED = "validation_failed"

    # System events
    STORE_ERROR = "store_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="User whose ledger was examined"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'wallet', 'report')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one check and its anomalies)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.discrepancy_check_completed(user_id, report, cid)
        event = AuditEventBuilder.data_anomaly(user_id, anomaly, cid)
    """

    @staticmethod
    def discrepancy_check_completed(
        user_id: str,
        report: DiscrepancyReport,
        correlation_id: UUID
    ) -> AuditEvent:
        state = "discrepancy found" if report.has_discrepancy else "balanced"
        return AuditEvent(
            event_type=AuditEventType.DISCREPANCY_CHECK_COMPLETED,
            user_id=user_id,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Discrepancy check completed: {state}",
            details={
                "transactions_replayed": report.transactions_replayed,
                "skipped_transactions": len(report.skipped_transaction_ids),
                "anomalies": len(report.anomalies),
            },
        )

    @staticmethod
    def discrepancy_detected(
        user_id: str,
        report: DiscrepancyReport,
        correlation_id: UUID
    ) -> AuditEvent:
        first_id = report.first_discrepancy_transaction_id
        return AuditEvent(
            event_type=AuditEventType.DISCREPANCY_DETECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="transaction" if first_id else "ledger",
            entity_id=first_id,
            correlation_id=correlation_id,
            description=(
                f"Physical and Logical totals differ by {report.discrepancy_amount}"
            ),
            details={
                "physical_total": str(report.physical_total),
                "logical_total": str(report.logical_total),
                "discrepancy_amount": str(report.discrepancy_amount),
                "first_discrepancy_transaction_id": first_id,
            },
        )

    @staticmethod
    def report_generated(
        user_id: str,
        report: PortfolioReport,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            user_id=user_id,
            entity_type="report",
            correlation_id=correlation_id,
            description=(
                f"Report generated: {report.period_label} / {report.wallet_filter_label}"
            ),
            details={
                "period": report.period_label,
                "wallet_filter": report.wallet_filter_label,
                "categories": len(report.portfolio_composition),
                "anomalies": len(report.anomalies),
            },
        )

    @staticmethod
    def transactions_exported(
        user_id: str,
        count: int,
        destination: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_EXPORTED,
            user_id=user_id,
            entity_type="export",
            entity_id=destination,
            correlation_id=correlation_id,
            description=f"Exported {count} transactions",
            details={"transactions": count, "destination": destination},
        )

    @staticmethod
    def data_anomaly(
        user_id: str,
        anomaly: DataAnomaly,
        correlation_id: UUID
    ) -> AuditEvent:
        if anomaly.transaction_id:
            entity_type, entity_id = "transaction", anomaly.transaction_id
        else:
            entity_type, entity_id = "wallet", anomaly.wallet_id
        return AuditEvent(
            event_type=AuditEventType.DATA_ANOMALY,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=anomaly.message[:500],
            details=anomaly.to_log_dict(),
        )

    @staticmethod
    def validation_failed(
        user_id: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="report_request",
            correlation_id=correlation_id,
            description=f"Report request rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def store_error(
        store: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Store error: {store}",
            error_message=error_message,
            details={"store": store},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
