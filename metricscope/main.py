"""Command-line entry point: parse exposition text and print dashboard views."""
import argparse
import logging
import sys

from prometheus_client import generate_latest
from pythonjsonlogger.json import JsonFormatter

from metricscope.config import Config, load_config
from metricscope.parser import parse
from metricscope.report import VIEWS, build_report
from metricscope.self_metrics import ParserMetrics

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def create_log_handler(log_format: str, stream=None) -> logging.Handler:
    """Build a stderr handler emitting text lines or one JSON object per line."""
    handler = logging.StreamHandler(stream or sys.stderr)

    if log_format == "json":
        formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt=DATE_FORMAT,
            rename_fields={"asctime": "time", "levelname": "level", "name": "logger"}
        )
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    # Logs go to stderr so stdout stays machine-readable
    logging.basicConfig(
        level=level,
        handlers=[create_log_handler(log_format)]
    )


def read_input(path: str) -> str:
    """Read exposition text from a file, or stdin for '-'."""
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Metricscope - Summarise Prometheus exposition text"
    )
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="File containing exposition text ('-' or omitted for stdin)"
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--view",
        action="append",
        choices=sorted(VIEWS),
        help="View to include (repeatable; default all)"
    )
    parser.add_argument(
        "--log-level",
        help="Override the configured log level"
    )
    parser.add_argument(
        "--self-metrics",
        action="store_true",
        help="Write parser self-metrics to stderr in exposition format"
    )
    return parser


def main(argv=None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config) if args.config else Config()
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    try:
        text = read_input(args.input)
    except OSError as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 2

    logger.info(f"Read {len(text)} characters from {args.input}")

    metrics = ParserMetrics() if args.self_metrics else None
    snapshot = parse(text, rules=config.classifier.rules, metrics=metrics)
    report = build_report(snapshot, config.dashboard, views=args.view)

    print(report.model_dump_json(indent=2, exclude_none=True))

    if metrics is not None:
        sys.stderr.write(generate_latest(metrics.registry).decode("utf-8"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
