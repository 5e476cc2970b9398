from __future__ import annotations

import argparse
import json
import shlex
import sys
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from .config import RuntimeConfig, load_runtime_config, normalize_log_format, normalize_log_level
from .logging_config import configure_logging, get_logger, log_event
from .metrics import compute_metrics
from .selection import SelectionCoordinator, SelectionError, ViewMode
from .sources import LoadResult, SnapshotLoader, build_source_chain
from .views import ViewComposer


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DEFAULT_SNAPSHOT_OUTPUT = DEFAULT_ARTIFACTS_DIR / "snapshot.json"
DEFAULT_REPORT_OUTPUT = DEFAULT_ARTIFACTS_DIR / "arctic_watch.html"

DEFAULT_RUN_ID = "arctic-watch"


def _get_dashboard_builder() -> type[Any]:
    try:
        from .rendering import DashboardBuilder
    except ImportError as exc:
        raise RuntimeError(
            "Report dependencies are missing. Install with: pip install arctic-watch[report]"
        ) from exc
    return DashboardBuilder


def _resolve_optional_arg(args: argparse.Namespace, name: str, fallback: Any) -> Any:
    value = getattr(args, name, None)
    return fallback if value is None else value


def _resolve_runtime_config(args: argparse.Namespace) -> RuntimeConfig:
    runtime = load_runtime_config()
    if getattr(args, "log_level", None):
        runtime = replace(runtime, log_level=normalize_log_level(args.log_level))
    if getattr(args, "log_format", None):
        runtime = replace(runtime, log_format=normalize_log_format(args.log_format))
    return runtime


def _resolve_path(path: Path) -> Path:
    return path.expanduser().resolve()


def _make_loader(runtime: RuntimeConfig, args: argparse.Namespace) -> SnapshotLoader:
    timeout_sec = float(_resolve_optional_arg(args, "timeout_sec", runtime.source_timeout_sec))
    if timeout_sec <= 0:
        raise ValueError("--timeout-sec must be > 0.")
    use_fixture = runtime.use_fixture and not getattr(args, "no_fixture", False)
    chain = build_source_chain(
        primary=_resolve_optional_arg(args, "primary_source", runtime.primary_source),
        secondary=_resolve_optional_arg(args, "secondary_source", runtime.secondary_source),
        use_fixture=use_fixture,
        timeout_sec=timeout_sec,
    )
    if not chain:
        raise ValueError("No record sources configured.")
    return SnapshotLoader(chain)


def _load_or_fail(loader: SnapshotLoader) -> LoadResult:
    result = loader.load()
    if not result.ok:
        raise RuntimeError(f"{result.error} Attempts: {'; '.join(result.attempts)}")
    return result


def _load_metadata(result: LoadResult, run_id: str) -> dict[str, Any]:
    return {
        "run_id": run_id,
        "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "source": result.source,
        "records": len(result.snapshot),
        "rejected": result.snapshot.rejected,
        "fallback_attempts": list(result.attempts),
    }


def _rerun_command(args: argparse.Namespace, output_path: Path) -> str:
    parts = ["arctic-watch", "report", "--output", str(output_path), "--view", args.view]
    for flag, value in (
        ("--primary-source", args.primary_source),
        ("--secondary-source", args.secondary_source),
        ("--timeout-sec", args.timeout_sec),
    ):
        if value is not None:
            parts.extend([flag, str(value)])
    if args.no_fixture:
        parts.append("--no-fixture")
    return shlex.join(parts)


def _write_json(payload: dict[str, Any], output: Path | None) -> Path | None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output is None:
        sys.stdout.write(text + "\n")
        return None
    output_path = _resolve_path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text + "\n", encoding="utf-8")
    return output_path


def _cmd_snapshot(args: argparse.Namespace, runtime: RuntimeConfig, logger: Any) -> int:
    started = time.perf_counter()
    log_event(logger, "info", "snapshot_start", run_id=args.run_id)
    result = _load_or_fail(_make_loader(runtime, args))

    payload = {"metadata": _load_metadata(result, args.run_id), **result.snapshot.to_payload()}
    out = _write_json(payload, args.output)
    log_event(
        logger,
        "info",
        "snapshot_complete",
        run_id=args.run_id,
        output_path=str(out) if out is not None else "-",
        records=len(result.snapshot),
        elapsed_sec=round(time.perf_counter() - started, 3),
    )
    return 0


def _cmd_metrics(args: argparse.Namespace, runtime: RuntimeConfig, logger: Any) -> int:
    started = time.perf_counter()
    log_event(logger, "info", "metrics_start", run_id=args.run_id)
    result = _load_or_fail(_make_loader(runtime, args))

    metrics = compute_metrics(result.snapshot)
    payload = {"metadata": _load_metadata(result, args.run_id), "metrics": metrics.to_dict()}
    out = _write_json(payload, args.output)
    log_event(
        logger,
        "info",
        "metrics_complete",
        run_id=args.run_id,
        output_path=str(out) if out is not None else "-",
        total_count=metrics.total_count,
        high_risk_count=metrics.high_risk_count,
        average_gap_hours=metrics.average_gap_hours,
        elapsed_sec=round(time.perf_counter() - started, 3),
    )
    return 0


def _cmd_report(args: argparse.Namespace, runtime: RuntimeConfig, logger: Any) -> int:
    started = time.perf_counter()
    output_path = _resolve_path(args.output)
    log_event(logger, "info", "report_start", run_id=args.run_id, view=args.view)

    loader = _make_loader(runtime, args)
    coordinator = SelectionCoordinator(zoom=runtime.selection_zoom)
    coordinator.set_view_mode(ViewMode(args.view))
    composer = ViewComposer(coordinator, loader=loader, title=runtime.report_title)

    DashboardBuilder = _get_dashboard_builder()
    builder = DashboardBuilder(
        composer,
        metadata={
            "run_id": args.run_id,
            "title": runtime.report_title,
            "rerun_command": _rerun_command(args, output_path),
        },
    )
    result = composer.reload()
    builder.metadata["source"] = result.source
    if not result.ok:
        # The page still renders, as an error view naming the command to re-run.
        log_event(logger, "warning", "report_load_failed", run_id=args.run_id, error=result.error)
    elif args.select is not None:
        coordinator.select_from_list(args.select)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    out = builder.save_report(output_path)
    elapsed = time.perf_counter() - started
    log_event(
        logger,
        "info",
        "report_complete",
        run_id=args.run_id,
        output_path=str(out),
        records=len(result.snapshot),
        selected=coordinator.selected_index,
        report_size_kb=round(out.stat().st_size / 1024.0, 1),
        elapsed_sec=round(elapsed, 3),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--run-id",
        type=str,
        default=DEFAULT_RUN_ID,
        help=f"Run identifier for logs/report metadata. Default: {DEFAULT_RUN_ID}",
    )
    common.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    )
    common.add_argument(
        "--log-format",
        type=str,
        default=None,
        help="Override log format (auto, json, console).",
    )
    common.add_argument(
        "--primary-source",
        type=str,
        default=None,
        help="Primary detection source (file path or http(s) URL).",
    )
    common.add_argument(
        "--secondary-source",
        type=str,
        default=None,
        help="Secondary detection source, tried when the primary fails.",
    )
    common.add_argument(
        "--no-fixture",
        action="store_true",
        help="Do not fall back to the built-in Arctic fixture set.",
    )
    common.add_argument(
        "--timeout-sec",
        type=float,
        default=None,
        help="HTTP source timeout override in seconds.",
    )

    parser = argparse.ArgumentParser(
        prog="arctic-watch",
        description="Arctic Watch dark-ship detection CLI.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_snapshot = subparsers.add_parser(
        "snapshot", parents=[common], description="Load and normalize the detection snapshot."
    )
    parser_snapshot.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_SNAPSHOT_OUTPUT,
        help=f"Output JSON path. Default: {DEFAULT_SNAPSHOT_OUTPUT}",
    )
    parser_snapshot.set_defaults(handler=_cmd_snapshot)

    parser_metrics = subparsers.add_parser(
        "metrics", parents=[common], description="Compute dashboard aggregates."
    )
    parser_metrics.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output JSON path. Default: stdout.",
    )
    parser_metrics.set_defaults(handler=_cmd_metrics)

    parser_report = subparsers.add_parser(
        "report", parents=[common], description="Render the interactive HTML page."
    )
    parser_report.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_REPORT_OUTPUT,
        help=f"Output HTML path. Default: {DEFAULT_REPORT_OUTPUT}",
    )
    parser_report.add_argument(
        "--view",
        choices=[mode.value for mode in ViewMode],
        default=ViewMode.TRACKER.value,
        help="Initial view mode.",
    )
    parser_report.add_argument(
        "--select",
        type=int,
        default=None,
        help="Index of the detection selected when the page opens.",
    )
    parser_report.set_defaults(handler=_cmd_report)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    runtime = _resolve_runtime_config(args)
    effective_log_format = configure_logging(runtime.log_level, runtime.log_format)
    logger = get_logger("arctic_watch.cli")
    log_event(
        logger,
        "info",
        "command_start",
        run_id=args.run_id,
        command=args.command,
        log_level=runtime.log_level,
        log_format=effective_log_format,
    )

    try:
        return int(args.handler(args, runtime, logger))
    except KeyboardInterrupt:
        log_event(
            logger,
            "warning",
            "command_interrupted",
            run_id=args.run_id,
            command=args.command,
        )
        return 130
    except (SelectionError, ValueError, RuntimeError, OSError, json.JSONDecodeError) as exc:
        log_event(
            logger,
            "error",
            "command_failed",
            run_id=args.run_id,
            command=args.command,
            error=str(exc),
        )
        return 1
