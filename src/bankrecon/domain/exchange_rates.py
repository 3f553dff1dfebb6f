"""Exchange rate domain service."""

from datetime import date
from decimal import Decimal

from bankrecon.database.base import Database
from bankrecon.domain.errors import ValidationError
from bankrecon.utils.amount_parser import parse_amount
from bankrecon.utils.date_parser import parse_date


class ExchangeRateService:
    """Service for the USD sell rates used to match USD invoices."""

    def __init__(self, db: Database):
        """Initialize exchange rate service.

        Args:
            db: Database instance
        """
        self.db = db

    def set_rate(self, rate_date: str, sell_rate: str) -> tuple[date, Decimal]:
        """Store the sell rate (ARS per USD) for a day.

        Args:
            rate_date: Day the rate applies to
            sell_rate: Rate as text, e.g. "1.050,50"

        Returns:
            The stored (day, rate)

        Raises:
            ValidationError: If the date or rate is invalid, or the rate is not positive
        """
        try:
            day = parse_date(rate_date)
            rate = parse_amount(sell_rate)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if rate <= 0:
            raise ValidationError(f"Exchange rate must be positive, got {sell_rate}")
        self.db.set_exchange_rate(day, rate)
        return day, rate

    def list_rates(self) -> list[tuple[date, Decimal]]:
        """List stored rates ordered by day."""
        return sorted(self.db.get_exchange_rates().items())
