"""Dashboard views computed from a snapshot."""
from typing import Callable, Dict, List, Optional, Sequence
from pydantic import BaseModel, Field
import logging

from metricscope import aggregator
from metricscope.config import DashboardConfig
from metricscope.series import Snapshot

logger = logging.getLogger(__name__)


class OverviewStats(BaseModel):
    """Headline counters."""
    total_requests: float = 0.0
    unique_hosts: int = 0
    active_users: float = 0.0
    event_loop_lag_seconds: float = 0.0
    total_failures: float = 0.0


class ProviderStatus(BaseModel):
    """Dense status counts of one provider."""
    provider: str
    success: float = 0.0
    failed: float = 0.0
    notfound: float = 0.0
    failure_rate: float = 0.0


class LabeledValue(BaseModel):
    """A chart entry: a display label and its value."""
    label: str
    value: float


class StatusTotals(BaseModel):
    """Status counts summed across all providers."""
    success: float = 0.0
    failed: float = 0.0
    notfound: float = 0.0


class DashboardReport(BaseModel):
    """All requested views; views that were not requested stay None."""
    overview: Optional[OverviewStats] = None
    provider_status: Optional[List[ProviderStatus]] = None
    top_failing_providers: Optional[List[ProviderStatus]] = None
    status_totals: Optional[StatusTotals] = None
    tool_usage: Optional[List[LabeledValue]] = None
    request_counts: Optional[List[LabeledValue]] = None
    response_times: Optional[List[LabeledValue]] = None
    hostname_stats: Optional[List[LabeledValue]] = None
    bucket_sizes: Dict[str, int] = Field(default_factory=dict)


def _route_label(labels, cfg: DashboardConfig) -> str:
    return f"{labels.get(cfg.method_label, '')} {labels.get(cfg.route_label, '')}"


def overview(snapshot: Snapshot, cfg: DashboardConfig) -> OverviewStats:
    """Totals, unique counts and single-value lookups for the header cards."""
    return OverviewStats(
        total_requests=aggregator.total_value(
            snapshot.server_request, f"{cfg.request_duration_base}_count"
        ),
        unique_hosts=aggregator.distinct_label_count(
            snapshot.custom, cfg.provider_hostname_metric, cfg.hostname_label
        ),
        active_users=aggregator.value_of(snapshot.custom, cfg.user_count_metric),
        event_loop_lag_seconds=aggregator.value_of(
            snapshot.runtime, cfg.event_loop_lag_metric
        ),
        total_failures=aggregator.total_value(
            snapshot.custom,
            cfg.provider_status_metric,
            **{cfg.status_label: "failed"}
        ),
    )


def provider_status(snapshot: Snapshot, cfg: DashboardConfig) -> List[ProviderStatus]:
    """Every provider with dense status counts and failure rate."""
    rates = aggregator.provider_failure_rates(
        snapshot.custom,
        cfg.provider_status_metric,
        cfg.provider_label,
        cfg.status_label
    )
    return [
        ProviderStatus(
            provider=r.provider,
            success=r.success,
            failed=r.failed,
            notfound=r.notfound,
            failure_rate=r.failure_rate,
        )
        for r in rates
    ]


def top_failing_providers(snapshot: Snapshot, cfg: DashboardConfig) -> List[ProviderStatus]:
    """Providers ranked by failure rate, rounded to one decimal for display."""
    ranked = aggregator.top_n(
        provider_status(snapshot, cfg),
        key=lambda p: p.failure_rate,
        n=cfg.top_n
    )
    return [p.model_copy(update={"failure_rate": round(p.failure_rate, 1)}) for p in ranked]


def status_totals(snapshot: Snapshot, cfg: DashboardConfig) -> StatusTotals:
    """Status counts summed across every provider."""
    groups = aggregator.group_sum_by_label(
        snapshot.custom,
        cfg.provider_status_metric,
        cfg.provider_label,
        cfg.status_label
    )
    totals = {
        status: sum(counts[status] for counts in groups.values())
        for status in aggregator.STATUS_DOMAIN
    }
    return StatusTotals(**totals)


def tool_usage(snapshot: Snapshot, cfg: DashboardConfig) -> List[LabeledValue]:
    """First N tool usage samples in exposition order."""
    return [
        LabeledValue(label=s.labels.get(cfg.tool_label) or aggregator.UNKNOWN, value=s.value)
        for s in aggregator.first_n(snapshot.custom, cfg.provider_tool_metric, cfg.top_n)
    ]


def request_counts(snapshot: Snapshot, cfg: DashboardConfig) -> List[LabeledValue]:
    """First N request counters, labelled "METHOD route"."""
    samples = aggregator.first_n(
        snapshot.server_request, f"{cfg.request_duration_base}_count", cfg.top_n
    )
    return [LabeledValue(label=_route_label(s.labels, cfg), value=s.value) for s in samples]


def response_times(snapshot: Snapshot, cfg: DashboardConfig) -> List[LabeledValue]:
    """Slowest routes by average response time (milliseconds by default)."""
    averages = aggregator.average_from_sum_count(
        snapshot.server_request,
        cfg.request_duration_base,
        key_labels=(cfg.method_label, cfg.route_label),
        scale=cfg.duration_scale
    )
    entries = [
        LabeledValue(label=f"{method} {route}", value=avg)
        for (method, route), avg in averages.items()
    ]
    return aggregator.top_n(entries, key=lambda e: e.value, n=cfg.top_n)


def hostname_stats(snapshot: Snapshot, cfg: DashboardConfig) -> List[LabeledValue]:
    """Per-hostname totals in first-seen order."""
    totals = aggregator.label_totals(
        snapshot.custom, cfg.provider_hostname_metric, cfg.hostname_label
    )
    return [LabeledValue(label=host, value=value) for host, value in totals.items()]


VIEWS: Dict[str, Callable[[Snapshot, DashboardConfig], object]] = {
    "overview": overview,
    "provider_status": provider_status,
    "top_failing_providers": top_failing_providers,
    "status_totals": status_totals,
    "tool_usage": tool_usage,
    "request_counts": request_counts,
    "response_times": response_times,
    "hostname_stats": hostname_stats,
}


def build_report(
    snapshot: Snapshot,
    cfg: Optional[DashboardConfig] = None,
    views: Optional[Sequence[str]] = None
) -> DashboardReport:
    """
    Compute the requested dashboard views.

    Args:
        snapshot: Parsed and classified samples
        cfg: Metric/label names and ranking size (defaults if omitted)
        views: View names to compute; all views when None

    Returns:
        DashboardReport with unrequested views left as None
    """
    cfg = cfg or DashboardConfig()
    names = list(VIEWS) if views is None else list(views)

    unknown = [name for name in names if name not in VIEWS]
    if unknown:
        raise ValueError(f"Unknown view(s): {', '.join(unknown)}. Available: {', '.join(VIEWS)}")

    computed = {name: VIEWS[name](snapshot, cfg) for name in names}
    logger.debug(f"Built report views: {names}")

    return DashboardReport(
        bucket_sizes={name: len(samples) for name, samples in snapshot.buckets()},
        **computed
    )
