"""
Result Models for Reconciliation and Reporting

Everything the analysis layer hands back to a caller. These are plain
results: computing them has no side effects and they carry enough context
(anomalies, skipped ids) for the caller to show what was excluded.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from profiteer.models.ledger import PhysicalForm, Transaction


class AnomalyType(str, Enum):
    """Data problems that change an answer without stopping it."""
    MISSING_DATE = "missing_date"
    UNKNOWN_WALLET = "unknown_wallet"
    PREDATES_WALLET_CREATION = "predates_wallet_creation"
    CROSS_KIND_TRANSFER = "cross_kind_transfer"


class DataAnomaly(BaseModel):
    """
    A non-fatal data problem found during a computation.

    Anomalies are reported, never raised. `excluded` tells the caller
    whether the record was left out of the result.
    """
    model_config = ConfigDict(frozen=True)

    anomaly_type: AnomalyType
    message: str
    transaction_id: Optional[str] = None
    wallet_id: Optional[str] = None
    excluded: bool = Field(
        default=False,
        description="Was the record left out of the computation?"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        return {
            "anomaly_type": self.anomaly_type.value,
            "transaction_id": self.transaction_id,
            "wallet_id": self.wallet_id,
            "excluded": self.excluded,
            "message": self.message,
            "details": self.details,
        }


class TransactionWithBalances(BaseModel):
    """One replay step: a transaction and the kind totals right after it."""
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    physical_balance_after: Decimal
    logical_balance_after: Decimal
    is_first_discrepancy: bool = False

    @property
    def difference_after(self) -> Decimal:
        return self.physical_balance_after - self.logical_balance_after


class DiscrepancyReport(BaseModel):
    """
    Outcome of a full discrepancy check.

    `has_discrepancy` and `discrepancy_amount` compare the LIVE wallet
    balances. `first_discrepancy_transaction_id` comes from the replay and
    may be None while a discrepancy exists (there is no history to replay,
    or only the stored balances drifted).
    """

    checked_at: datetime = Field(default_factory=datetime.utcnow)

    physical_total: Decimal
    logical_total: Decimal
    has_discrepancy: bool
    discrepancy_amount: Optional[Decimal] = Field(
        default=None,
        description="physical - logical; None when balanced"
    )

    replayed_physical_total: Decimal
    replayed_logical_total: Decimal
    first_discrepancy_transaction_id: Optional[str] = None

    transactions_replayed: int = Field(default=0, ge=0)
    skipped_transaction_ids: list[str] = Field(default_factory=list)
    anomalies: list[DataAnomaly] = Field(default_factory=list)

    @property
    def is_balanced(self) -> bool:
        return not self.has_discrepancy

    @property
    def replay_matches_live(self) -> bool:
        """Do the replayed totals agree with the stored balances?"""
        return (
            self.replayed_physical_total == self.physical_total
            and self.replayed_logical_total == self.logical_total
        )


class PortfolioReport(BaseModel):
    """
    Everything the reports screen shows for one window and wallet filter.

    Wallet balances and composition are CUMULATIVE to the window's cutoff.
    Tag totals are PERIOD-LOCAL to the window.
    """

    generated_at: datetime = Field(default_factory=datetime.utcnow)
    period_label: str
    wallet_filter_label: str
    cutoff: Optional[datetime] = None

    portfolio_composition: dict[PhysicalForm, Decimal] = Field(default_factory=dict)
    physical_wallet_balances: dict[str, Decimal] = Field(default_factory=dict)
    logical_wallet_balances: dict[str, Decimal] = Field(default_factory=dict)
    expense_totals_by_tag: dict[str, Decimal] = Field(default_factory=dict)
    income_totals_by_tag: dict[str, Decimal] = Field(default_factory=dict)

    default_currency: str = "USD"
    display_currency: str = "USD"
    display_rate: Decimal = Decimal("1")

    anomalies: list[DataAnomaly] = Field(default_factory=list)

    @property
    def total_portfolio_value(self) -> Decimal:
        return sum(self.portfolio_composition.values(), Decimal("0"))

    @property
    def total_expenses(self) -> Decimal:
        return sum(self.expense_totals_by_tag.values(), Decimal("0"))

    @property
    def total_income(self) -> Decimal:
        return sum(self.income_totals_by_tag.values(), Decimal("0"))

    def to_display(self, amount: Decimal) -> Decimal:
        """Convert a default-currency amount to the display currency."""
        return amount * self.display_rate

    def composition_percentage(self, form: PhysicalForm) -> float:
        total = self.total_portfolio_value
        if total <= 0:
            return 0.0
        amount = self.portfolio_composition.get(form, Decimal("0"))
        return float(amount / total * 100)
