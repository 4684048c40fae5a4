"""Data structures for parsed metric samples and snapshots."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

CUSTOM = "custom"
SERVER_REQUEST = "server_request"
RUNTIME = "runtime"

BUCKETS = (CUSTOM, SERVER_REQUEST, RUNTIME)

METRIC_TYPES = ("counter", "gauge", "histogram", "summary", "untyped")

# Suffixes stripped when resolving a sample name to its declared family
FAMILY_SUFFIXES = ("_bucket", "_sum", "_count", "_total", "_created")


@dataclass(frozen=True)
class Sample:
    """A single metric sample with labels."""
    name: str
    labels: Mapping[str, str]
    value: float

    def __post_init__(self):
        # Freeze a private copy so the caller's dict can't leak mutations in
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    def label_key(self) -> str:
        """Generate a stable key from sorted labels."""
        items = sorted(self.labels.items())
        return ",".join(f"{k}={v}" for k, v in items)

    def __eq__(self, other):
        if not isinstance(other, Sample):
            return NotImplemented
        return (
            self.name == other.name
            and dict(self.labels) == dict(other.labels)
            and _same_value(self.value, other.value)
        )

    def __hash__(self):
        return hash((self.name, self.label_key()))


def _same_value(a: float, b: float) -> bool:
    # NaN samples from identical text must compare equal
    return a == b or (a != a and b != b)


@dataclass(frozen=True)
class MetricFamily:
    """Metadata declared for a metric name by HELP/TYPE lines."""
    name: str
    type: str = "untyped"
    help: str = ""


@dataclass(frozen=True)
class Snapshot:
    """Classified samples, each bucket in source order."""
    custom: Tuple[Sample, ...] = ()
    server_request: Tuple[Sample, ...] = ()
    runtime: Tuple[Sample, ...] = ()
    families: Mapping[str, MetricFamily] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "custom", tuple(self.custom))
        object.__setattr__(self, "server_request", tuple(self.server_request))
        object.__setattr__(self, "runtime", tuple(self.runtime))
        object.__setattr__(self, "families", MappingProxyType(dict(self.families)))

    def __eq__(self, other):
        if not isinstance(other, Snapshot):
            return NotImplemented
        return (
            self.custom == other.custom
            and self.server_request == other.server_request
            and self.runtime == other.runtime
            and dict(self.families) == dict(other.families)
        )

    def buckets(self) -> Iterator[Tuple[str, Tuple[Sample, ...]]]:
        for name in BUCKETS:
            yield name, getattr(self, name)

    def all_samples(self) -> Tuple[Sample, ...]:
        return self.custom + self.server_request + self.runtime

    def is_empty(self) -> bool:
        return not (self.custom or self.server_request or self.runtime)

    def family_for(self, sample_name: str) -> Optional[MetricFamily]:
        return resolve_family(self.families, sample_name)


def resolve_family(
    families: Mapping[str, MetricFamily],
    sample_name: str
) -> Optional[MetricFamily]:
    """
    Find the declared family a sample belongs to.

    Exact names win; otherwise histogram/summary/counter suffixes are
    stripped and the base name is looked up.
    """
    if sample_name in families:
        return families[sample_name]

    for suffix in FAMILY_SUFFIXES:
        if sample_name.endswith(suffix):
            base = sample_name[: -len(suffix)]
            if base in families:
                return families[base]

    return None

