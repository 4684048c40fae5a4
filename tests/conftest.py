"""Shared fixtures."""
import pytest


DASHBOARD_TEXT = """\
# HELP mw_provider_status_count Provider lookups by status
# TYPE mw_provider_status_count counter
mw_provider_status_count{provider_id="p1",status="success"} 10
mw_provider_status_count{provider_id="p1",status="failed"} 2
mw_provider_status_count{provider_id="p2",status="success"} 5
mw_provider_status_count{provider_id="p2",status="notfound"} 5
mw_provider_status_count{provider_id="p3",status="failed"} 1
mw_provider_tool_count{provider_id="p1",tool="search"} 7
mw_provider_tool_count{provider_id="p1",tool="stream"} 3
mw_provider_hostname_count{hostname="a.example"} 4
mw_provider_hostname_count{hostname="b.example"} 6
mw_provider_hostname_count{hostname="a.example",provider_id="p2"} 1
# TYPE mw_user_count gauge
mw_user_count 42
# HELP http_request_duration_seconds Request duration in seconds
# TYPE http_request_duration_seconds histogram
http_request_duration_seconds_bucket{le="0.1",method="GET",route="/a"} 1
http_request_duration_seconds_sum{method="GET",route="/a"} 5
http_request_duration_seconds_count{method="GET",route="/a"} 2
http_request_duration_seconds_sum{method="POST",route="/b"} 3
http_request_duration_seconds_count{method="POST",route="/b"} 1
nodejs_eventloop_lag_seconds 0.0123
process_resident_memory_bytes 1.2e7
go_goroutines 8
"""


@pytest.fixture
def dashboard_text():
    """Exposition text resembling a middleware /metrics endpoint."""
    return DASHBOARD_TEXT


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep config overrides from the outer environment out of tests."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("METRICSCOPE_TOP_N", raising=False)
