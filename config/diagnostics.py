"""Diagnostics routines for the configuration subsystem."""

from __future__ import annotations

from pathlib import Path

import yaml

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(config_dir: Path | None = None) -> DiagnosticResult:
    """Run a configuration probe to validate the YAML settings files.

    Args:
        config_dir: Optional configuration directory for offline testing.

    Returns:
        Diagnostic result indicating config readiness.
    """

    name = "config"
    config_dir = config_dir if config_dir is not None else Path(__file__).resolve().parent
    default_config = config_dir / "default.yaml"
    override_config = config_dir / "override.yaml"

    if not default_config.exists():
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Missing default config at {default_config}",
        )

    try:
        for path in (default_config, override_config):
            if path.exists():
                yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Config access failed: {exc}",
        )
    except yaml.YAMLError as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Config is not valid YAML: {exc}",
        )

    suffix = " (with override)" if override_config.exists() else ""
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Config files readable at {config_dir}{suffix}",
    )
