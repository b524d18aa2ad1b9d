"""
app/services/aggregation_service.py

Deterministic multi-account aggregation for the "all accounts" view.

All functions operate on already-fetched, typed records; no I/O happens
here. Absolute metrics are summed with exact integer arithmetic and every
ratio is recomputed from the summed numerator and denominator. Per-entity
ratios are never averaged.

Formulas
--------
CTR                  = clicks / impressions * 100
CPM                  = earnings / impressions * 1000
RPM                  = earnings / page_views * 1000
Page CTR             = clicks / page_views * 100
CPC                  = earnings / clicks
Earnings per page    = earnings / page_views
Impressions per page = impressions / page_views

Every ratio is ``0.0`` when its denominator is zero.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from app.domain.metrics import (
    MICROS_PER_UNIT,
    AggregationResult,
    DerivedRatios,
    MetricRecord,
    MetricSummary,
)

logger = logging.getLogger(__name__)

ALL_ACCOUNTS_IDENTIFIER = "all"

CTR_EXCELLENT = 2.0
CTR_GOOD = 1.0
CTR_AVERAGE = 0.5


class AggregationInputError(ValueError):
    """
    Raised for records whose counts cannot be aggregated meaningfully.
    """


class CTRCategory:
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    BELOW_AVERAGE = "below_average"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _validate_counts(record: MetricRecord) -> None:
    for name in ("clicks", "impressions", "page_views"):
        value = getattr(record, name)
        if value < 0:
            raise AggregationInputError(
                f"Record '{record.identifier}' has negative {name}: {value}."
            )


def _ratio(numerator: int, denominator: int, scale: int = 1) -> float:
    if denominator == 0:
        return 0.0
    return numerator * scale / denominator


def _merge(left: MetricRecord, right: MetricRecord) -> MetricRecord:
    return MetricRecord(
        identifier=left.identifier,
        earnings_micros=left.earnings_micros + right.earnings_micros,
        clicks=left.clicks + right.clicks,
        impressions=left.impressions + right.impressions,
        page_views=left.page_views + right.page_views,
    )


def _group_by_identifier(records: Iterable[MetricRecord]) -> dict[str, MetricRecord]:
    """
    Fold records into a fresh insertion-ordered map keyed by identifier.
    """

    groups: dict[str, MetricRecord] = {}
    for record in records:
        _validate_counts(record)
        existing = groups.get(record.identifier)
        groups[record.identifier] = record if existing is None else _merge(existing, record)
    return groups


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def derive_ratios(record: MetricRecord) -> DerivedRatios:
    """
    Recompute every ratio from one record's absolute metrics.

    Currency ratios are converted from micros to whole units in the same
    division so no intermediate rounding occurs.
    """

    _validate_counts(record)
    micros = record.earnings_micros
    return DerivedRatios(
        ctr=_ratio(record.clicks, record.impressions, 100),
        cpm=_ratio(micros * 1000, record.impressions * MICROS_PER_UNIT),
        rpm=_ratio(micros * 1000, record.page_views * MICROS_PER_UNIT),
        page_ctr=_ratio(record.clicks, record.page_views, 100),
        cpc=_ratio(micros, record.clicks * MICROS_PER_UNIT),
        earnings_per_page=_ratio(micros, record.page_views * MICROS_PER_UNIT),
        impressions_per_page=_ratio(record.impressions, record.page_views),
    )


def summarize(record: MetricRecord) -> MetricSummary:
    """Pair a record with its derived ratios."""
    return MetricSummary(record=record, ratios=derive_ratios(record))


def sum_records(
    records: Iterable[MetricRecord],
    *,
    identifier: str = ALL_ACCOUNTS_IDENTIFIER,
) -> MetricRecord:
    """
    Sum absolute metrics of *records* into one record named *identifier*.
    """

    total = MetricRecord(identifier=identifier)
    for record in records:
        _validate_counts(record)
        total = _merge(total, record)
    return total


def aggregate_accounts(
    records: Sequence[MetricRecord],
    *,
    identifier: str = ALL_ACCOUNTS_IDENTIFIER,
) -> AggregationResult:
    """
    Combine per-account records into one "all accounts" result.

    Parameters
    ----------
    records:
        One record per successfully fetched account. May be empty when every
        fetch failed; the result is then all zeros, not an error.
    identifier:
        Identifier given to the synthetic total record.

    Returns
    -------
    AggregationResult
        Summed totals with recomputed ratios, a per-account breakdown in
        first-seen order and the number of records included.

    Raises
    ------
    AggregationInputError
        When any record carries a negative count.
    """

    breakdown = _group_by_identifier(records)
    total = sum_records(breakdown.values(), identifier=identifier)
    logger.debug(
        "Aggregated accounts records=%d groups=%d impressions=%d",
        len(records),
        len(breakdown),
        total.impressions,
    )
    return AggregationResult(
        total=summarize(total),
        breakdown={key: summarize(record) for key, record in breakdown.items()},
        included_count=len(records),
    )


def aggregate_domains(
    per_account_domain_lists: Sequence[Sequence[MetricRecord]],
) -> list[MetricSummary]:
    """
    Group domain records from every account by exact domain name.

    Domain names are matched case-sensitively with no normalisation. A
    domain repeated inside one account's list is summed with the rest of its
    group. Output follows the order in which each domain was first seen.
    """

    groups = _group_by_identifier(
        record for domain_list in per_account_domain_lists for record in domain_list
    )
    logger.debug(
        "Aggregated domains accounts=%d domains=%d",
        len(per_account_domain_lists),
        len(groups),
    )
    return [summarize(record) for record in groups.values()]


def classify_ctr(ctr: float) -> str:
    """
    Bucket a CTR percentage into a performance category.
    """

    if ctr >= CTR_EXCELLENT:
        return CTRCategory.EXCELLENT
    if ctr >= CTR_GOOD:
        return CTRCategory.GOOD
    if ctr >= CTR_AVERAGE:
        return CTRCategory.AVERAGE
    return CTRCategory.BELOW_AVERAGE
