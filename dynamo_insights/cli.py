"""Command line entry point.

Usage:
    python -m dynamo_insights.cli analyze telemetry.json [--json] [--now EPOCH_MS]
    python -m dynamo_insights.cli serve [--host HOST] [--port PORT]

``analyze`` reads a JSON array of operation records (the output of
``StatsCollector.export()`` or ``GET /export``) and prints aggregated stats and
recommendations.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from dynamo_insights.config import get_settings
from dynamo_insights.stats.collector import StatsCollector, wall_clock_ms
from dynamo_insights.stats.models import OperationRecord, Recommendation, StatsConfig, TableStats

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)

_RECORDS = TypeAdapter(list[OperationRecord])


def load_records(path: Path) -> list[OperationRecord]:
    """Parse a JSON array of operation records (camelCase or snake_case keys)."""
    return _RECORDS.validate_json(path.read_bytes())


def format_report(stats: TableStats, recommendations: list[Recommendation]) -> str:
    lines: list[str] = ["## Operations"]
    if not stats.operations:
        lines.append("  (none)")
    for name, op in sorted(stats.operations.items()):
        lines.append(
            f"  {name:<14} count={op.count:<6} avg={op.avg_latency_ms:.1f}ms "
            f"read_units={op.total_read_units:g} write_units={op.total_write_units:g}"
        )

    if stats.access_patterns:
        lines.append("\n## Access patterns")
        for name, pattern in sorted(stats.access_patterns.items()):
            lines.append(
                f"  {name:<24} count={pattern.count:<6} avg={pattern.avg_latency_ms:.1f}ms "
                f"items={pattern.avg_items_returned:.1f}"
            )

    lines.append(f"\n## Recommendations ({len(recommendations)})")
    for rec in recommendations:
        lines.append(f"  [{rec.severity.upper()}] {rec.category}: {rec.message}")
        lines.append(f"      {rec.details}")
        if rec.suggested_action:
            lines.append(f"      -> {rec.suggested_action}")

    return "\n".join(lines)


def _analyze(args: argparse.Namespace) -> None:
    try:
        records = load_records(Path(args.file))
    except OSError as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Invalid telemetry in {args.file}: {e}", file=sys.stderr)
        sys.exit(1)

    settings = get_settings()
    collector = StatsCollector(
        StatsConfig(enabled=True, sample_rate=1.0, thresholds=settings.to_stats_config().thresholds),
        pricing=settings.to_pricing_config(),
        clock=(lambda: args.now) if args.now is not None else wall_clock_ms,
    )
    for record in records:
        collector.record(record)

    stats = collector.get_stats()
    recommendations = collector.get_recommendations()

    if args.json:
        payload = {
            "stats": stats.model_dump(mode="json", by_alias=True),
            "recommendations": [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in recommendations],
        }
        print(json.dumps(payload, indent=2))
    else:
        print(format_report(stats, recommendations))


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "dynamo_insights.api.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dynamo-insights", description="Table access telemetry analysis")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze an exported telemetry file")
    analyze.add_argument("file", help="JSON array of operation records")
    analyze.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    analyze.add_argument("--now", type=int, default=None, help="Reference time in epoch ms (default: now)")
    analyze.set_defaults(handler=_analyze)

    serve = sub.add_parser("serve", help="Run the diagnostics API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=_serve)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the chosen subcommand."""
    args = build_parser().parse_args(argv)
    args.handler(args)


if __name__ == "__main__":
    main()
