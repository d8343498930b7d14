"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the reconciliation code decoupled from storage implementation

The ledger stores are read-only from this package's point of view; wallets
and transactions are written by the surrounding application.

IMPORTANT: Every ledger store scopes its results to ONE user. Returning
another user's records is a store bug, never something the algorithms
are expected to filter out.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from profiteer.models.audit import AuditEvent
from profiteer.models.ledger import CurrencyRate, Transaction, Wallet


class WalletStoreInterface(ABC):
    """Read access to a user's wallets."""

    @abstractmethod
    async def list_wallets(self, user_id: str) -> list[Wallet]:
        """
        List every wallet owned by a user.

        Args:
            user_id: Owner whose wallets to return

        Returns:
            The user's wallets, in storage order

        Raises:
            StorageError: If the store cannot be read
        """
        pass


class TransactionStoreInterface(ABC):
    """Read access to a user's transactions."""

    @abstractmethod
    async def list_transactions(self, user_id: str) -> list[Transaction]:
        """
        List every transaction owned by a user.

        Storage (insertion) order is preserved; the discrepancy replay uses
        it to order transactions that share a date.

        Raises:
            StorageError: If the store cannot be read
        """
        pass


class CurrencyRateStoreInterface(ABC):
    """Read access to a user's conversion rates."""

    @abstractmethod
    async def list_rates(self, user_id: str) -> list[CurrencyRate]:
        """List every conversion rate a user has defined."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one discrepancy check).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'wallet')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
