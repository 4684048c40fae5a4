"""Route parsed samples into snapshot buckets by metric-name prefix."""
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from metricscope.config import ClassifierRule, default_rules
from metricscope.series import BUCKETS, MetricFamily, Sample, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_RULES: Sequence[ClassifierRule] = tuple(default_rules())


def bucket_for(name: str, rules: Sequence[ClassifierRule] = DEFAULT_RULES) -> Optional[str]:
    """Return the bucket of the first rule whose prefix matches, or None."""
    for rule in rules:
        if name.startswith(rule.prefix):
            return rule.bucket
    return None


def classify(
    samples: Iterable[Sample],
    rules: Optional[Sequence[ClassifierRule]] = None,
    families: Optional[Mapping[str, MetricFamily]] = None,
    metrics=None
) -> Snapshot:
    """
    Partition samples into the custom, server_request and runtime buckets.

    Rules are evaluated top to bottom and the first match wins. Samples
    matching no rule are left out of the snapshot.

    Args:
        samples: Parsed samples in source order
        rules: Ordered prefix rules (defaults to DEFAULT_RULES)
        families: HELP/TYPE metadata to carry on the snapshot
        metrics: Optional ParserMetrics to count routed samples

    Returns:
        Snapshot with each bucket in source order
    """
    rules = DEFAULT_RULES if rules is None else rules
    routed: Dict[str, List[Sample]] = {name: [] for name in BUCKETS}
    dropped = 0

    for sample in samples:
        bucket = bucket_for(sample.name, rules)
        if bucket is None:
            dropped += 1
            logger.debug(f"No classifier rule for metric {sample.name}, dropping")
            continue
        routed[bucket].append(sample)

    if metrics is not None:
        for name, members in routed.items():
            metrics.record_samples(name, len(members))
        metrics.record_samples("unclassified", dropped)

    return Snapshot(
        custom=tuple(routed["custom"]),
        server_request=tuple(routed["server_request"]),
        runtime=tuple(routed["runtime"]),
        families=families or {},
    )
