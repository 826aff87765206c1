"""Tests for YAML configuration loading and normalization."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.controller import CONFIG_ENV_VAR, ConfigController


@pytest.fixture(autouse=True)
def _reset_singleton(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    ConfigController.reset_instance()
    yield
    ConfigController.reset_instance()


def test_packaged_defaults_load() -> None:
    config = ConfigController.get_instance().get_config()

    assert config["service"]["name"] == "WSearch"
    assert config["index"]["primary_file"] == "Windows.edb"
    assert config["index"]["log_pattern"] == "MSS*.log"
    assert config["startup"]["registry_key"] == "SYSTEM\\CurrentControlSet\\Services\\{name}"
    assert config["remediation"]["allow_escalation"] is False


def test_missing_sections_are_filled_with_typed_defaults(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text(
        "\n".join(
            [
                "service:",
                "  name: Indexer",
                "  stop_timeout_s: 5",
            ]
        ),
        encoding="utf-8",
    )

    config = ConfigController(config_dir=tmp_path).get_config()

    assert config["service"]["name"] == "Indexer"
    assert config["service"]["stop_timeout_s"] == 5.0
    assert config["service"]["start_timeout_s"] == 30.0
    assert config["repair"]["timeout_s"] == 300.0
    assert config["remediation"]["consult_diagnostics"] is True
    assert config["logging_level"] == "INFO"


def test_override_file_is_deep_merged(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text(
        "service:\n  name: WSearch\n  stop_timeout_s: 30\n", encoding="utf-8"
    )
    (tmp_path / "override.yaml").write_text(
        "service:\n  stop_timeout_s: 90\nlogging_level: debug\n", encoding="utf-8"
    )

    config = ConfigController(config_dir=tmp_path).get_config()

    assert config["service"]["name"] == "WSearch"
    assert config["service"]["stop_timeout_s"] == 90.0
    assert config["logging_level"] == "DEBUG"


def test_environment_file_overrides_last(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "default.yaml").write_text("remediation:\n  force_stop: false\n", encoding="utf-8")
    (tmp_path / "override.yaml").write_text("remediation:\n  force_stop: true\n", encoding="utf-8")
    extra = tmp_path / "site.yaml"
    extra.write_text("remediation:\n  allow_escalation: true\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(extra))

    config = ConfigController(config_dir=tmp_path).get_config()

    assert config["remediation"]["force_stop"] is True
    assert config["remediation"]["allow_escalation"] is True


def test_singleton_guard(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text("{}", encoding="utf-8")
    ConfigController.get_instance(config_dir=tmp_path)

    with pytest.raises(RuntimeError):
        ConfigController(config_dir=tmp_path)


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "default.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        ConfigController(config_dir=tmp_path)
