"""Command-line entry point for running diagnostics."""

from __future__ import annotations

import argparse
from pathlib import Path
import tempfile

from config import ConfigController
from core.models import RunState
from core.privilege import PrivilegeContext, detect_privilege
from diagnostics.models import has_failures
from diagnostics.runner import format_results
from remediation.factory import build_collector, seed_offline_index
from services.repair_api import FakeRepairInvoker, TroubleshootingPackRepair
from services.service_controller import FakeServiceController, WindowsServiceController
from storage.index_store import IndexStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(description="Run search service diagnostics probes.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Run probes against fakes and a temporary index directory.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Optional configuration directory.",
    )
    parser.add_argument("--service", type=str, help="Override the target service name.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics and return an exit code."""

    args = parse_args(argv)
    config = ConfigController.get_instance(config_dir=args.config_dir).get_config()
    service_name = args.service or config["service"]["name"]

    if args.offline:
        with tempfile.TemporaryDirectory() as tmp_dir:
            store = seed_offline_index(config, Path(tmp_dir))
            collect = build_collector(
                FakeServiceController(run_state=RunState.STOPPED),
                store,
                FakeRepairInvoker(),
                PrivilegeContext.elevated_as("offline"),
                service_name,
                args.config_dir,
            )
            results = collect()
    else:
        privilege = detect_privilege()
        collect = build_collector(
            WindowsServiceController.from_config(config, privilege),
            IndexStore.from_config(config),
            TroubleshootingPackRepair.from_config(config),
            privilege,
            service_name,
            args.config_dir,
        )
        results = collect()

    print(format_results(results))
    return 1 if has_failures(results) else 0


if __name__ == "__main__":
    raise SystemExit(main())
