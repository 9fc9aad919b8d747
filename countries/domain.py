"""
Plain value types passed between the fetch, reconcile and summary steps.

None of these touch the database; a refresh builds them from the external
payloads and throws them away when it finishes.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Currency:
    code: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None


@dataclass(frozen=True)
class RawCountry:
    """A country as the countries API describes it."""

    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int = 0
    currencies: Tuple[Currency, ...] = ()
    flag: Optional[str] = None

    @property
    def currency_code(self) -> Optional[str]:
        """Code of the first listed currency, if any."""
        if not self.currencies:
            return None
        return self.currencies[0].code or None


@dataclass(frozen=True)
class ExchangeRateTable:
    """Rates in local currency per unit of ``base_code``."""

    rates: Dict[str, float] = field(default_factory=dict)
    base_code: Optional[str] = None
    time_last_update_utc: Optional[str] = None
    time_next_update_utc: Optional[str] = None

    @classmethod
    def empty(cls) -> "ExchangeRateTable":
        return cls()

    def get(self, code: Optional[str]) -> Optional[float]:
        if not code:
            return None
        return self.rates.get(code)


@dataclass(frozen=True)
class SummaryProjection:
    total_countries: int
    top_countries: Tuple[Tuple[str, float], ...]
    last_refreshed_at: str


@dataclass(frozen=True)
class RefreshResult:
    inserted: int
    updated: int
    refreshed_at: str
    duration_seconds: float
