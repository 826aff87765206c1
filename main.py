"""Command-line entry point for the search service remediation tool."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
import tempfile

from config import ConfigController
from core.logging import enable_file_logging, logger, set_level
from remediation.report import exit_code_for, format_report, report_to_json


def configure_logging(level_name: str) -> None:
    """Configure application logging."""

    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    set_level(level)


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Repair a stuck search-indexing service in one best-effort pass.",
        epilog=(
            "A plain run stops, clears, reconfigures, restarts and verifies the service. "
            "Forced stop and index ownership takeover stay off unless --all is given or "
            "remediation.force_stop / remediation.allow_escalation are enabled in config. "
            "--diagnostics, --offline, --json, --service and --config-dir are operator "
            "extensions to that default run."
        ),
    )
    parser.add_argument(
        "--all",
        dest="run_all",
        action="store_true",
        help="Run all remediations, including forced stop and ownership takeover (off by default).",
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Extension: run read-only diagnostics probes and exit.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Extension: use in-memory fakes and a temporary index instead of the live system.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Extension: print the report as JSON.",
    )
    parser.add_argument(
        "--service", type=str, help="Extension: override the target service name."
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Extension: directory holding default.yaml and override.yaml.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code: 0 when the service ends up running, 1 otherwise.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    config = ConfigController.get_instance(config_dir=args.config_dir).get_config()
    configure_logging(config.get("logging_level", "INFO"))
    if args.service:
        config["service"] = {**config.get("service", {}), "name": args.service}
    if config.get("file_logging_enabled") and not args.offline:
        log_file_path = Path(config["log_file"])
        enable_file_logging(log_file_path)
        logger.info("Writing logs to %s", log_file_path)

    if args.diagnostics:
        from diagnostics.run import main as diagnostics_main

        diagnostic_args = ["--offline"] if args.offline else []
        if args.config_dir is not None:
            diagnostic_args += ["--config-dir", str(args.config_dir)]
        if args.service:
            diagnostic_args += ["--service", args.service]
        return diagnostics_main(diagnostic_args)

    from remediation.factory import build_live_orchestrator, build_offline_orchestrator

    if args.offline:
        with tempfile.TemporaryDirectory() as tmp_dir:
            orchestrator = build_offline_orchestrator(
                config, Path(tmp_dir), run_all=args.run_all, config_dir=args.config_dir
            )
            report = orchestrator.run()
    else:
        orchestrator = build_live_orchestrator(
            config, run_all=args.run_all, config_dir=args.config_dir
        )
        report = orchestrator.run()

    print(report_to_json(report) if args.json else format_report(report))
    return exit_code_for(report)


if __name__ == "__main__":
    raise SystemExit(main())
