#!/usr/bin/env python3
"""Tests for the dashboard views."""
import pytest

from metricscope.config import DashboardConfig
from metricscope.parser import parse
from metricscope.report import (
    VIEWS, build_report, hostname_stats, overview, provider_status,
    request_counts, response_times, status_totals, tool_usage,
    top_failing_providers
)


@pytest.fixture
def snapshot(dashboard_text):
    return parse(dashboard_text)


@pytest.fixture
def cfg():
    return DashboardConfig()


def test_overview(snapshot, cfg):
    """Headline counters come from all three buckets."""
    stats = overview(snapshot, cfg)

    assert stats.total_requests == 3.0
    assert stats.unique_hosts == 2
    assert stats.active_users == 42.0
    assert stats.event_loop_lag_seconds == pytest.approx(0.0123)
    assert stats.total_failures == 3.0


def test_provider_status(snapshot, cfg):
    """Every provider, dense, in first-seen order."""
    rows = provider_status(snapshot, cfg)

    assert [r.provider for r in rows] == ["p1", "p2", "p3"]
    assert (rows[0].success, rows[0].failed, rows[0].notfound) == (10.0, 2.0, 0.0)
    assert rows[0].failure_rate == pytest.approx(16.6667, rel=1e-4)
    assert (rows[1].success, rows[1].failed, rows[1].notfound) == (5.0, 0.0, 5.0)
    assert rows[1].failure_rate == 0.0
    assert rows[2].failure_rate == 100.0


def test_top_failing_providers(snapshot, cfg):
    """Ranked by failure rate, rounded for display."""
    ranked = top_failing_providers(snapshot, cfg)

    assert [(p.provider, p.failure_rate) for p in ranked] == [
        ("p3", 100.0), ("p1", 16.7), ("p2", 0.0)
    ]


def test_status_totals(snapshot, cfg):
    """Totals per status across providers."""
    totals = status_totals(snapshot, cfg)
    assert (totals.success, totals.failed, totals.notfound) == (15.0, 3.0, 5.0)


def test_tool_usage_and_request_counts(snapshot, cfg):
    """First-N chart series keep exposition order."""
    assert [(t.label, t.value) for t in tool_usage(snapshot, cfg)] == [
        ("search", 7.0), ("stream", 3.0)
    ]
    assert [(r.label, r.value) for r in request_counts(snapshot, cfg)] == [
        ("GET /a", 2.0), ("POST /b", 1.0)
    ]


def test_response_times(snapshot, cfg):
    """Average milliseconds per route, slowest first."""
    rows = response_times(snapshot, cfg)
    assert [(r.label, r.value) for r in rows] == [
        ("POST /b", 3000.0), ("GET /a", 2500.0)
    ]


def test_hostname_stats(snapshot, cfg):
    """Hostname totals add up repeated hostnames."""
    rows = hostname_stats(snapshot, cfg)
    assert [(r.label, r.value) for r in rows] == [
        ("a.example", 5.0), ("b.example", 6.0)
    ]


def test_top_n_setting_limits_views(snapshot):
    """top_n applies to every ranked or truncated view."""
    cfg = DashboardConfig(top_n=1)

    assert len(top_failing_providers(snapshot, cfg)) == 1
    assert len(tool_usage(snapshot, cfg)) == 1
    assert len(response_times(snapshot, cfg)) == 1


def test_build_report_all_views(snapshot):
    """The full report carries every view and the bucket sizes."""
    report = build_report(snapshot)

    for name in VIEWS:
        assert getattr(report, name) is not None, name
    assert report.bucket_sizes == {"custom": 11, "server_request": 5, "runtime": 2}


def test_build_report_subset(snapshot):
    """Only requested views are computed."""
    report = build_report(snapshot, views=["overview", "status_totals"])

    assert report.overview is not None
    assert report.status_totals is not None
    assert report.provider_status is None
    assert report.response_times is None


def test_build_report_unknown_view(snapshot):
    """Asking for a view that doesn't exist is caller error."""
    with pytest.raises(ValueError, match="Unknown view"):
        build_report(snapshot, views=["overview", "latency_heatmap"])


def test_empty_snapshot_report():
    """An empty snapshot gives zeroed counters and empty lists."""
    report = build_report(parse(""))

    assert report.overview.model_dump() == {
        "total_requests": 0.0,
        "unique_hosts": 0,
        "active_users": 0.0,
        "event_loop_lag_seconds": 0.0,
        "total_failures": 0.0,
    }
    assert report.provider_status == []
    assert report.top_failing_providers == []
    assert report.response_times == []
    assert report.bucket_sizes == {"custom": 0, "server_request": 0, "runtime": 0}


def test_custom_metric_names():
    """Metric and label names come from configuration."""
    cfg = DashboardConfig(provider_status_metric="mw_lookup_total", provider_label="backend")
    snapshot = parse(
        'mw_lookup_total{backend="x",status="failed"} 1\n'
        'mw_lookup_total{backend="x",status="success"} 3\n'
    )

    rows = provider_status(snapshot, cfg)
    assert [(r.provider, r.failure_rate) for r in rows] == [("x", 25.0)]
