"""Self-monitoring metrics for the parser using prometheus_client."""
from prometheus_client import CollectorRegistry, Counter, Histogram


class ParserMetrics:
    """Counts what the parser did with its input. Purely observational."""

    def __init__(self, registry=None, prefix=""):
        if registry is None:
            registry = CollectorRegistry()
        self.registry = registry

        self.lines_total = Counter(
            f"{prefix}parser_lines_total",
            "Total number of exposition lines seen, by outcome",
            ["outcome"],
            registry=registry
        )

        self.samples_total = Counter(
            f"{prefix}parser_samples_total",
            "Total number of parsed samples, by snapshot bucket",
            ["bucket"],
            registry=registry
        )

        self.parse_duration_seconds = Histogram(
            f"{prefix}parser_parse_duration_seconds",
            "Duration of each parse in seconds",
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5, 1.0],
            registry=registry
        )

    def record_line(self, outcome: str):
        """Record one line by outcome (sample, metadata or a skip reason)."""
        self.lines_total.labels(outcome=outcome).inc()

    def record_samples(self, bucket: str, count: int):
        """Record samples routed into a bucket."""
        self.samples_total.labels(bucket=bucket).inc(count)

    def record_parse_duration(self, duration: float):
        """Record parse duration."""
        self.parse_duration_seconds.observe(duration)
