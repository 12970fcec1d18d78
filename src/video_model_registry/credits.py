"""Credits conversion, price formatting and the credit balance view."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Optional

from .errors import InsufficientCreditsError
from .logging import LogEvent, log_info
from .pricing import to_money

CREDITS_PER_DOLLAR = 100

LOW_BALANCE_THRESHOLD = Decimal("1.00")


class PriceDisplayMode(str, Enum):
    """How prices are shown to the user."""

    DOLLARS = "dollars"
    CREDITS = "credits"

    @classmethod
    def parse(cls, value: str) -> "PriceDisplayMode":
        """Parse a mode name case-insensitively.

        Raises:
            ValueError: If ``value`` is not a known mode
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown price display mode {value!r} (expected one of: {choices})") from None


def dollars_to_credits(amount: Any) -> int:
    """Convert a dollar amount to whole credits, rounding half up."""
    credits = to_money(amount) * CREDITS_PER_DOLLAR
    return int(credits.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_dollars(amount: Any) -> str:
    """Format as dollars with at least two decimal places, e.g. "$0.50"."""
    value = to_money(amount)
    if value == value.quantize(Decimal("0.01")):
        value = value.quantize(Decimal("0.01"))
    else:
        value = value.normalize()
    return f"${value:,f}"


def format_credits(amount: Any) -> str:
    """Format a dollar amount as a credit count, e.g. "50"."""
    return str(dollars_to_credits(amount))


def format_price(amount: Optional[Any], mode: PriceDisplayMode) -> str:
    """Format a price without a unit label. None formats as zero."""
    if amount is None:
        return "$0" if mode is PriceDisplayMode.DOLLARS else "0"
    if mode is PriceDisplayMode.DOLLARS:
        return format_dollars(amount)
    return format_credits(amount)


def format_price_with_unit(amount: Optional[Any], mode: PriceDisplayMode) -> str:
    """Format a price with its unit, e.g. "50 credits" or "$0.50"."""
    if mode is PriceDisplayMode.DOLLARS:
        return format_price(amount, mode)
    return f"{format_price(amount, mode)} credits"


@dataclass(frozen=True)
class CreditBalance:
    """A snapshot of the user's balance, in dollars.

    Attributes:
        balance: Current balance
        pending: Amount reserved by generations still in flight
    """

    balance: Decimal
    pending: Decimal = Decimal("0")

    @property
    def available(self) -> Decimal:
        return self.balance - self.pending

    def has_enough_credits(self, required: Any) -> bool:
        return self.available >= to_money(required)

    def low_credits_warning(self) -> Optional[str]:
        """User-facing warning about a low balance, or None."""
        if self.balance <= 0:
            return "You have no credits remaining. Please purchase credits to continue."
        if self.balance < LOW_BALANCE_THRESHOLD:
            return f"You're running low on credits ({format_dollars(self.balance)}). Consider purchasing more."
        return None

    def require(self, required: Any) -> None:
        """Check that ``required`` dollars are available.

        Raises:
            InsufficientCreditsError: If the available balance is too low
            ValueError: If ``required`` is negative
        """
        amount = to_money(required)
        if amount < 0:
            raise ValueError(f"Required amount must be non-negative, got {amount}")
        if self.available < amount:
            log_info(
                LogEvent.CREDITS,
                "Insufficient credits",
                required=str(amount),
                available=str(self.available),
            )
            raise InsufficientCreditsError(
                f"Insufficient credits: this generation costs {format_price_with_unit(amount, PriceDisplayMode.CREDITS)} "
                f"but only {format_price_with_unit(max(self.available, Decimal('0')), PriceDisplayMode.CREDITS)} "
                "are available. Please purchase more credits.",
                required=amount,
                available=self.available,
            )
