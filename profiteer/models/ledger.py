"""
Core Ledger Models for Profiteer

Wallets and transactions as they come out of the stores.

These models are snapshots: the reconciliation code only READS them.
Nothing in this package mutates a wallet balance.

DESIGN DECISION: Amounts are Decimal everywhere. Balances are summed many
times during a replay and float drift would show up as fake discrepancies.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from profiteer.models.tags import normalize_tags


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as naive UTC so comparisons never mix kinds."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# =============================================================================
# ENUMS
# =============================================================================

class WalletKind(str, Enum):
    """
    Wallet kinds.

    Physical wallets are real-world accounts. Logical wallets are budget
    allocations layered over them; both kinds must sum to the same total.
    """
    PHYSICAL = "Physical"
    LOGICAL = "Logical"


class TransactionKind(str, Enum):
    """Transaction kinds."""
    INCOME = "Income"
    EXPENSE = "Expense"
    TRANSFER = "Transfer"


_FIAT = frozenset({"USD", "EUR", "GBP", "JPY", "CAD", "AUD", "IDR"})
_MARKET = frozenset({"USD", "EUR", "GBP", "JPY", "CAD", "AUD"})
_CRYPTO = frozenset({"BTC", "ETH", "ADA", "DOT", "SOL", "MATIC"})
_METALS = frozenset({"GOLD", "SILVER", "PLATINUM", "PALLADIUM"})


class PhysicalForm(str, Enum):
    """
    Asset category of a Physical wallet.

    Portfolio composition reports group Physical wallets by this value.
    """
    FIAT_CURRENCY = "fiat_currency"
    CRYPTOCURRENCY = "cryptocurrency"
    PRECIOUS_METALS = "precious_metals"
    STOCKS = "stocks"
    ETFS = "etfs"
    BONDS = "bonds"
    MUTUAL_FUNDS = "mutual_funds"
    REAL_ESTATE = "real_estate"
    COMMODITIES = "commodities"
    CASH_EQUIVALENT = "cash_equivalent"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        if self is PhysicalForm.ETFS:
            return "ETFs"
        return self.value.replace("_", " ").title()

    @property
    def allowed_currencies(self) -> Optional[frozenset[str]]:
        """Currencies this form can hold. None means any currency."""
        return _ALLOWED_CURRENCIES.get(self)

    def is_currency_allowed(self, currency: str) -> bool:
        allowed = self.allowed_currencies
        return allowed is None or currency.upper() in allowed

    @classmethod
    def default_for_currency(cls, currency: str) -> "PhysicalForm":
        """Best-guess form for a currency code (used when a row has none)."""
        code = currency.upper()
        if code in _CRYPTO:
            return cls.CRYPTOCURRENCY
        if code in _METALS:
            return cls.PRECIOUS_METALS
        return cls.FIAT_CURRENCY


_ALLOWED_CURRENCIES = {
    PhysicalForm.FIAT_CURRENCY: _FIAT,
    PhysicalForm.CRYPTOCURRENCY: _CRYPTO,
    PhysicalForm.PRECIOUS_METALS: _METALS,
    PhysicalForm.STOCKS: _MARKET,
    PhysicalForm.ETFS: _MARKET,
    PhysicalForm.BONDS: _MARKET,
    PhysicalForm.MUTUAL_FUNDS: _MARKET,
    PhysicalForm.REAL_ESTATE: _FIAT,
    PhysicalForm.COMMODITIES: _MARKET,
    PhysicalForm.CASH_EQUIVALENT: _FIAT,
}


# =============================================================================
# WALLET
# =============================================================================

class Wallet(BaseModel):
    """
    A wallet snapshot.

    `balance` is the live stored balance. It is expected to equal
    `initial_balance` plus the signed sum of every transaction affecting the
    wallet, but that is assumed, not re-derived. The discrepancy detector
    exists precisely to surface drift in aggregate.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique wallet identifier"
    )
    name: str = Field(
        default="",
        description="Display name"
    )
    user_id: str = Field(
        default="",
        description="Owner of the wallet"
    )
    kind: WalletKind = Field(
        default=WalletKind.PHYSICAL,
        description="Physical (real account) or Logical (budget allocation)"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current stored balance"
    )
    initial_balance: Decimal = Field(
        default=Decimal("0"),
        description="Balance set at wallet creation"
    )
    physical_form: PhysicalForm = Field(
        default=PhysicalForm.FIAT_CURRENCY,
        description="Asset category used by portfolio reports"
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v)

    @property
    def is_physical(self) -> bool:
        return self.kind is WalletKind.PHYSICAL

    @property
    def is_logical(self) -> bool:
        return self.kind is WalletKind.LOGICAL

    @property
    def transaction_balance(self) -> Decimal:
        """Net change from transactions only (excludes the initial balance)."""
        return self.balance - self.initial_balance


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A transaction snapshot.

    Income and Expense apply `amount` to every wallet in
    `affected_wallet_ids` (in practice one Physical plus one Logical).
    Transfer moves `amount` from `source_wallet_id` to
    `destination_wallet_id`.

    Tags are normalized on construction: trimmed, lowercased, deduplicated,
    and the reserved "untagged" placeholder removed.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique transaction identifier"
    )
    title: str = Field(
        default="",
        description="Short description"
    )
    user_id: str = Field(
        default="",
        description="Owner of the transaction"
    )
    kind: TransactionKind = Field(
        ...,
        description="Income, Expense or Transfer"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative magnitude; the kind decides the sign"
    )
    affected_wallet_ids: list[str] = Field(
        default_factory=list,
        description="Wallets an Income/Expense applies to"
    )
    source_wallet_id: Optional[str] = Field(
        default=None,
        description="Transfer source (Transfer only)"
    )
    destination_wallet_id: Optional[str] = Field(
        default=None,
        description="Transfer destination (Transfer only)"
    )
    tags: list[str] = Field(
        default_factory=list,
        description="Normalized lowercase tags"
    )

    # Dates
    transaction_date: Optional[datetime] = Field(
        default=None,
        description="User-specified effective date"
    )
    created_at: Optional[datetime] = Field(
        default=None,
        description="Record creation timestamp (date fallback)"
    )
    updated_at: Optional[datetime] = None
    unreadable_date: Optional[str] = Field(
        default=None,
        description="Stored transaction date that could not be parsed"
    )

    @field_validator("tags")
    @classmethod
    def normalize_tag_list(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)

    @field_validator("transaction_date", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v)

    @field_validator("source_wallet_id", "destination_wallet_id")
    @classmethod
    def blank_wallet_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def validate_transfer_endpoints(self) -> "Transaction":
        """Transfers need two distinct endpoints; nothing else may have them."""
        if self.kind is TransactionKind.TRANSFER:
            if not self.source_wallet_id or not self.destination_wallet_id:
                raise ValueError("Transfer requires source and destination wallets")
            if self.source_wallet_id == self.destination_wallet_id:
                raise ValueError("Transfer source and destination must differ")
        elif self.source_wallet_id or self.destination_wallet_id:
            raise ValueError(
                f"{self.kind.value} transactions cannot have transfer endpoints"
            )
        return self

    @property
    def referenced_wallet_ids(self) -> list[str]:
        """Every wallet id this transaction touches, in application order."""
        if self.kind is TransactionKind.TRANSFER:
            return [self.source_wallet_id, self.destination_wallet_id]
        return list(self.affected_wallet_ids)


# =============================================================================
# CURRENCY RATES
# =============================================================================

class CurrencyRate(BaseModel):
    """
    A user-defined conversion rate.

    `month` ("YYYY-MM") scopes the rate to one month; None is the default
    rate used whenever no monthly rate exists.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = ""
    user_id: str = ""
    from_currency: str = Field(..., min_length=1, max_length=10)
    to_currency: str = Field(..., min_length=1, max_length=10)
    rate: Decimal = Field(..., gt=0)
    month: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="Month this rate applies to; None for the default rate"
    )

    @field_validator("from_currency", "to_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()
