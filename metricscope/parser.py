"""Parser for the Prometheus text exposition format."""
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union
import logging
import math
import re
import time

from metricscope.classifier import classify
from metricscope.config import ClassifierRule
from metricscope.series import METRIC_TYPES, MetricFamily, Sample, Snapshot

logger = logging.getLogger(__name__)

METRIC_NAME_RE = re.compile(r'[a-zA-Z_:][a-zA-Z0-9_:]*')
LABEL_NAME_RE = re.compile(r'[a-zA-Z_][a-zA-Z0-9_]*')
FLOAT_RE = re.compile(r'[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?')
TIMESTAMP_RE = re.compile(r'-?[0-9]{1,19}')

SPECIAL_VALUES = {
    "+inf": math.inf,
    "inf": math.inf,
    "-inf": -math.inf,
    "nan": math.nan,
}

LABEL_ESCAPES = {'"': '"', "\\": "\\", "n": "\n"}
HELP_ESCAPES = {"\\": "\\", "n": "\n"}

# Skip reasons that are part of normal input rather than damage
BENIGN_SKIPS = ("blank", "comment")


@dataclass(frozen=True)
class MetadataLine:
    """A `# HELP` or `# TYPE` line."""
    kind: str
    name: str
    text: str


@dataclass(frozen=True)
class DataSample:
    """A data line; the timestamp is recognised but not kept on the sample."""
    sample: Sample
    timestamp_ms: Optional[int] = None


@dataclass(frozen=True)
class Skipped:
    """A line that produced nothing, with the reason why."""
    reason: str
    line: str


ParsedLine = Union[MetadataLine, DataSample, Skipped]


@dataclass(frozen=True)
class ParseResult:
    """Samples in source order plus the metadata declared for them."""
    samples: Tuple[Sample, ...]
    families: Mapping[str, MetricFamily]
    skipped: int = 0


def parse_value(token: str) -> Optional[float]:
    """Parse a sample value, including +Inf/-Inf/NaN in any case."""
    special = SPECIAL_VALUES.get(token.lower())
    if special is not None:
        return special
    if FLOAT_RE.fullmatch(token):
        return float(token)
    return None


def _unescape(text: str, escapes: Dict[str, str]) -> str:
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] in escapes:
            out.append(escapes[text[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _read_quoted(block: str, i: int) -> Tuple[Optional[str], int]:
    """Read a quoted label value starting after its opening quote."""
    out = []
    n = len(block)
    while i < n:
        ch = block[i]
        if ch == "\\" and i + 1 < n:
            nxt = block[i + 1]
            out.append(LABEL_ESCAPES.get(nxt, ch + nxt))
            i += 2
            continue
        if ch == '"':
            return "".join(out), i + 1
        out.append(ch)
        i += 1
    return None, n


def _skip_pair(block: str, i: int) -> int:
    """Return the index just past the next comma outside quotes."""
    in_quote = False
    n = len(block)
    while i < n:
        ch = block[i]
        if in_quote:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_quote = False
        elif ch == '"':
            in_quote = True
        elif ch == ",":
            return i + 1
        i += 1
    return n


def _skip_spaces(block: str, i: int) -> int:
    while i < len(block) and block[i].isspace():
        i += 1
    return i


def parse_labels(block: str) -> Dict[str, str]:
    """
    Parse the inside of a `{...}` label block.

    Malformed pairs are dropped individually. An unterminated quote drops
    its pair and ends parsing. Repeated keys keep the last value.

    Args:
        block: Text between the braces

    Returns:
        Label dictionary
    """
    labels: Dict[str, str] = {}
    n = len(block)
    i = 0

    while i < n:
        while i < n and (block[i].isspace() or block[i] == ","):
            i += 1
        if i >= n:
            break

        match = LABEL_NAME_RE.match(block, i)
        if not match:
            i = _skip_pair(block, i)
            continue

        key = match.group()
        j = _skip_spaces(block, match.end())
        if j >= n or block[j] != "=":
            i = _skip_pair(block, j)
            continue

        j = _skip_spaces(block, j + 1)
        if j >= n or block[j] != '"':
            i = _skip_pair(block, j)
            continue

        value, i = _read_quoted(block, j + 1)
        if value is None:
            logger.debug(f"Unterminated quote for label '{key}', dropping it")
            break

        labels[key] = value

    return labels


def _find_block_end(line: str, start: int) -> int:
    """Index of the `}` closing the label block opened at `start`, or -1."""
    in_quote = False
    i = start + 1
    while i < len(line):
        ch = line[i]
        if in_quote:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_quote = False
        elif ch == '"':
            in_quote = True
        elif ch == "}":
            return i
        i += 1

    if in_quote:
        # Close at the last brace so only the broken pair is lost
        return line.rfind("}", start)
    return -1


def _parse_comment(line: str) -> ParsedLine:
    parts = line[1:].strip().split(None, 2)
    if not parts or parts[0] not in ("HELP", "TYPE"):
        return Skipped("comment", line)

    kind = parts[0]
    if len(parts) < 2 or not METRIC_NAME_RE.fullmatch(parts[1]):
        return Skipped("bad_metadata", line)

    text = parts[2] if len(parts) == 3 else ""
    if kind == "TYPE":
        text = text.strip()
        if text not in METRIC_TYPES:
            return Skipped("bad_metadata", line)
    else:
        text = _unescape(text, HELP_ESCAPES)

    return MetadataLine(kind, parts[1], text)


def _parse_data(line: str) -> ParsedLine:
    brace = line.find("{")
    if brace == -1:
        parts = line.split()
        name, rest = parts[0], parts[1:]
        labels: Dict[str, str] = {}
    else:
        name = line[:brace].rstrip()
        rest = []
        labels = {}

    if not METRIC_NAME_RE.fullmatch(name):
        return Skipped("bad_name", line)

    if brace != -1:
        end = _find_block_end(line, brace)
        if end == -1:
            return Skipped("bad_labels", line)
        labels = parse_labels(line[brace + 1:end])
        rest = line[end + 1:].split()

    if not rest:
        return Skipped("bad_value", line)

    value = parse_value(rest[0])
    if value is None:
        return Skipped("bad_value", line)

    timestamp = None
    if len(rest) > 2:
        return Skipped("bad_timestamp", line)
    if len(rest) == 2:
        if not TIMESTAMP_RE.fullmatch(rest[1]):
            return Skipped("bad_timestamp", line)
        timestamp = int(rest[1])

    return DataSample(Sample(name, labels, value), timestamp)


def parse_line(line: str) -> ParsedLine:
    """Classify one physical line as metadata, a data sample, or skipped."""
    line = line.strip()
    if not line:
        return Skipped("blank", line)
    if line.startswith("#"):
        return _parse_comment(line)
    return _parse_data(line)


def _apply_metadata(family: Optional[MetricFamily], meta: MetadataLine) -> MetricFamily:
    family = family or MetricFamily(meta.name)
    if meta.kind == "TYPE":
        return replace(family, type=meta.text)
    return replace(family, help=meta.text)


def parse_samples(text: str, metrics=None) -> ParseResult:
    """
    Fold every line of an exposition text into samples and families.

    Never raises on bad input: malformed lines are counted and skipped.

    Args:
        text: Exposition text (bytes are decoded as UTF-8 with replacement)
        metrics: Optional ParserMetrics to record line outcomes

    Returns:
        ParseResult with samples in source order
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")

    samples: List[Sample] = []
    families: Dict[str, MetricFamily] = {}
    skipped = 0

    for raw in text.splitlines():
        parsed = parse_line(raw)

        if isinstance(parsed, DataSample):
            samples.append(parsed.sample)
            outcome = "sample"
        elif isinstance(parsed, MetadataLine):
            families[parsed.name] = _apply_metadata(families.get(parsed.name), parsed)
            outcome = "metadata"
        else:
            outcome = parsed.reason
            if parsed.reason not in BENIGN_SKIPS:
                skipped += 1
                logger.debug(f"Skipping line ({parsed.reason}): {parsed.line[:120]!r}")

        if metrics is not None:
            metrics.record_line(outcome)

    return ParseResult(tuple(samples), families, skipped)


def parse(
    text: str,
    rules: Optional[Sequence[ClassifierRule]] = None,
    metrics=None
) -> Snapshot:
    """Parse exposition text and classify it into a Snapshot."""
    start = time.perf_counter()

    result = parse_samples(text, metrics=metrics)
    snapshot = classify(
        result.samples,
        rules=rules,
        families=result.families,
        metrics=metrics
    )

    if metrics is not None:
        metrics.record_parse_duration(time.perf_counter() - start)

    logger.debug(
        f"Parsed {len(result.samples)} samples "
        f"({result.skipped} malformed lines skipped, "
        f"{len(snapshot.all_samples())} classified)"
    )
    return snapshot
