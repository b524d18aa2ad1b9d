"""
app/domain/metrics.py

Domain models for earnings metrics and multi-account aggregation results.

All currency amounts are carried as integer micros. One currency unit is
``MICROS_PER_UNIT`` micros; currency-denominated ratios (CPM, RPM, CPC) are
expressed in whole units.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")

MICROS_PER_UNIT = 1_000_000


@dataclass(frozen=True)
class MetricRecord:
    """
    Absolute metrics for one account or domain over one reporting period.
    """

    identifier: str
    earnings_micros: int = 0
    clicks: int = 0
    impressions: int = 0
    page_views: int = 0

    @property
    def earnings(self) -> float:
        """Earnings in whole currency units."""
        return self.earnings_micros / MICROS_PER_UNIT


@dataclass(frozen=True)
class DerivedRatios:
    """
    Ratios recomputed from one record's summed numerators and denominators.
    """

    ctr: float = 0.0
    """clicks / impressions * 100"""

    cpm: float = 0.0
    """earnings per 1,000 impressions, currency units"""

    rpm: float = 0.0
    """earnings per 1,000 page views, currency units"""

    page_ctr: float = 0.0
    """clicks / page_views * 100"""

    cpc: float = 0.0
    """earnings per click, currency units"""

    earnings_per_page: float = 0.0
    """earnings per page view, currency units"""

    impressions_per_page: float = 0.0


@dataclass(frozen=True)
class MetricSummary:
    """
    A metric record paired with the ratios derived from it.
    """

    record: MetricRecord
    ratios: DerivedRatios


@dataclass(frozen=True)
class AggregationResult:
    """
    Combined view over several independently fetched records.

    ``breakdown`` maps each contributing identifier to its own summary, in
    first-seen order.
    """

    total: MetricSummary
    breakdown: dict[str, MetricSummary] = field(default_factory=dict)
    included_count: int = 0


@dataclass(frozen=True)
class FetchFailure:
    """
    One fan-out fetch that did not produce a payload.
    """

    key: str
    kind: str
    message: str


class FetchFailureKind:
    TIMEOUT = "timeout"
    REQUEST = "request"
    PAYLOAD = "payload"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FanOutResult(Generic[T]):
    """
    Successful payloads in input-key order plus the keys that failed.
    """

    successes: list[T]
    failures: list[FetchFailure]

    @property
    def failed_keys(self) -> list[str]:
        return [failure.key for failure in self.failures]
