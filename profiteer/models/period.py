"""
Report Window and Wallet Filter Models

Both are discriminated unions: one tag field, a small payload, dispatched
once per computation.

    DateFilterPeriod = AllTime | Month(year, month) | Year(year)
    WalletFilter     = AllWallets | SpecificWallet(wallet_id, wallet_name)

Ranges are inclusive on both ends. A Month ends on its last day at
23:59:59.999999, a Year on December 31st at the same instant.
"""

import calendar
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

_DAY_END = dict(hour=23, minute=59, second=59, microsecond=999999)


# =============================================================================
# DATE WINDOWS
# =============================================================================

class _Period(BaseModel, ABC):
    model_config = ConfigDict(frozen=True)

    @abstractmethod
    def date_range(self) -> tuple[Optional[datetime], Optional[datetime]]:
        """(start, end), either end None when unbounded."""

    @abstractmethod
    def display_text(self) -> str:
        ...

    @property
    def cutoff(self) -> Optional[datetime]:
        """Latest instant (inclusive) considered "happened" for this window."""
        return self.date_range()[1]

    def contains(self, moment: Optional[datetime]) -> bool:
        """Is `moment` inside the window? Undated moments never are."""
        if moment is None:
            return False
        start, end = self.date_range()
        if start is not None and moment < start:
            return False
        if end is not None and moment > end:
            return False
        return True


class AllTime(_Period):
    """No date restriction."""
    mode: Literal["all_time"] = "all_time"

    def date_range(self) -> tuple[Optional[datetime], Optional[datetime]]:
        return None, None

    def display_text(self) -> str:
        return "All Time"


class Month(_Period):
    """One calendar month."""
    mode: Literal["month"] = "month"
    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12, description="1 = January")

    def date_range(self) -> tuple[Optional[datetime], Optional[datetime]]:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return (
            datetime(self.year, self.month, 1),
            datetime(self.year, self.month, last_day, **_DAY_END),
        )

    def display_text(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    @property
    def month_key(self) -> str:
        """Key ("YYYY-MM") that monthly currency rates are stored under."""
        return f"{self.year:04d}-{self.month:02d}"


class Year(_Period):
    """One calendar year."""
    mode: Literal["year"] = "year"
    year: int = Field(..., ge=1, le=9999)

    def date_range(self) -> tuple[Optional[datetime], Optional[datetime]]:
        return (
            datetime(self.year, 1, 1),
            datetime(self.year, 12, 31, **_DAY_END),
        )

    def display_text(self) -> str:
        return str(self.year)


DateFilterPeriod = Annotated[
    Union[AllTime, Month, Year],
    Field(discriminator="mode"),
]

period_adapter = TypeAdapter(DateFilterPeriod)


# =============================================================================
# WALLET FILTERS
# =============================================================================

class AllWallets(BaseModel):
    """No wallet restriction."""
    model_config = ConfigDict(frozen=True)

    scope: Literal["all"] = "all"

    def includes(self, wallet_id: Optional[str]) -> bool:
        return wallet_id is not None

    def display_text(self) -> str:
        return "All Wallets"


class SpecificWallet(BaseModel):
    """Restrict a report to one wallet."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    scope: Literal["wallet"] = "wallet"
    wallet_id: str = Field(..., min_length=1)
    wallet_name: str = Field(..., min_length=1)

    def includes(self, wallet_id: Optional[str]) -> bool:
        return wallet_id == self.wallet_id

    def display_text(self) -> str:
        return self.wallet_name


WalletFilter = Annotated[
    Union[AllWallets, SpecificWallet],
    Field(discriminator="scope"),
]
