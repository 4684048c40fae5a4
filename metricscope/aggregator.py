"""Derived views over parsed samples: group sums, ratios, rankings, rollups."""
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Tuple, TypeVar
import math

from metricscope.series import Sample

T = TypeVar("T")

STATUS_DOMAIN = ("success", "failed", "notfound")
UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProviderFailureRate:
    """Status counts and failure rate for one provider."""
    provider: str
    failure_rate: float
    success: float
    failed: float
    notfound: float


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 for a zero denominator."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def _matches(sample: Sample, name: str, label_filters: Mapping[str, str]) -> bool:
    if sample.name != name:
        return False
    return all(sample.labels.get(k) == v for k, v in label_filters.items())


def select(samples: Iterable[Sample], name: str, **label_filters: str) -> List[Sample]:
    """Samples with the given name whose labels match every filter, in order."""
    return [s for s in samples if _matches(s, name, label_filters)]


def first_n(samples: Iterable[Sample], name: str, n: int = 10) -> List[Sample]:
    """The first `n` samples with the given name, in source order."""
    return select(samples, name)[:n]


def group_sum_by_label(
    samples: Iterable[Sample],
    name: str,
    group_label: str = "provider_id",
    status_label: str = "status",
    statuses: Sequence[str] = STATUS_DOMAIN
) -> Dict[str, Dict[str, float]]:
    """
    Sum sample values per group and status.

    Every group gets every status in `statuses`, defaulting to zero. Samples
    with a status outside the domain still register their group but add
    nothing. Groups with a missing or empty group label fall under "unknown".

    Args:
        samples: Samples to aggregate
        name: Metric name to select
        group_label: Label whose value names the group
        status_label: Label whose value names the status
        statuses: Full status domain

    Returns:
        Mapping of group to a dense status→sum mapping, in first-seen order
    """
    groups: Dict[str, Dict[str, float]] = {}
    for sample in select(samples, name):
        group = sample.labels.get(group_label) or UNKNOWN
        totals = groups.setdefault(group, {status: 0.0 for status in statuses})
        status = sample.labels.get(status_label) or UNKNOWN
        if status in totals:
            totals[status] += sample.value
    return groups


def failure_rate(counts: Mapping[str, float]) -> float:
    """failed / (success + failed + notfound) * 100, 0.0 when there are none."""
    total = sum(counts.get(status, 0.0) for status in STATUS_DOMAIN)
    return safe_divide(counts.get("failed", 0.0), total) * 100


def provider_failure_rates(
    samples: Iterable[Sample],
    name: str = "mw_provider_status_count",
    group_label: str = "provider_id",
    status_label: str = "status"
) -> List[ProviderFailureRate]:
    """Failure rate of every provider, in first-seen order."""
    groups = group_sum_by_label(samples, name, group_label, status_label)
    return [
        ProviderFailureRate(
            provider=provider,
            failure_rate=failure_rate(counts),
            success=counts["success"],
            failed=counts["failed"],
            notfound=counts["notfound"],
        )
        for provider, counts in groups.items()
    ]


def average_from_sum_count(
    samples: Iterable[Sample],
    base: str,
    key_labels: Sequence[str] = ("method", "route"),
    scale: float = 1.0
) -> Dict[Tuple[str, ...], float]:
    """
    Average `<base>_sum / <base>_count` per label combination.

    Samples missing any of `key_labels`, or carrying one empty, are ignored.
    A combination with only one half present treats the other as zero.
    """
    sum_name = f"{base}_sum"
    count_name = f"{base}_count"
    pairs: Dict[Tuple[str, ...], Tuple[float, float]] = {}

    for sample in samples:
        if sample.name not in (sum_name, count_name):
            continue
        if any(not sample.labels.get(label) for label in key_labels):
            continue
        key = tuple(sample.labels[label] for label in key_labels)
        total, count = pairs.get(key, (0.0, 0.0))
        if sample.name == sum_name:
            pairs[key] = (sample.value, count)
        else:
            pairs[key] = (total, sample.value)

    return {
        key: safe_divide(total, count) * scale
        for key, (total, count) in pairs.items()
    }


def _rank_key(key: Callable[[T], float]) -> Callable[[T], float]:
    def ranked(item: T) -> float:
        value = key(item)
        # NaN never compares, so rank it below everything
        return -math.inf if math.isnan(value) else value
    return ranked


def top_n(items: Iterable[T], key: Callable[[T], float], n: int = 10) -> List[T]:
    """Sort descending by `key`, keeping input order among ties, then cut to `n`."""
    return sorted(items, key=_rank_key(key), reverse=True)[:n]


def total_value(samples: Iterable[Sample], name: str, **label_filters: str) -> float:
    """Sum of values of matching samples; 0.0 when nothing matches."""
    return sum((s.value for s in select(samples, name, **label_filters)), 0.0)


def distinct_label_count(samples: Iterable[Sample], name: str, label: str) -> int:
    """
    Number of distinct values of `label` across samples named `name`.

    Samples without the label are left out rather than counted as one more value.
    """
    return len({s.labels[label] for s in select(samples, name) if label in s.labels})


def value_of(samples: Iterable[Sample], name: str, default: float = 0.0) -> float:
    """Value of the first sample named `name`, or `default`."""
    for sample in samples:
        if sample.name == name:
            return sample.value
    return default


def label_totals(samples: Iterable[Sample], name: str, label: str) -> Dict[str, float]:
    """Sum of values per value of `label`, in first-seen order."""
    totals: Dict[str, float] = {}
    for sample in select(samples, name):
        key = sample.labels.get(label) or UNKNOWN
        totals[key] = totals.get(key, 0.0) + sample.value
    return totals
