"""Tests for the shared searchdoctor logger."""

from __future__ import annotations

import logging

import pytest

from core import logging as core_logging
from core.models import StageName, StageResult, StageStatus
from services import repair_api, service_controller, startup_config
from storage import index_store, permissions


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def captured():
    handler = _ListHandler()
    previous = core_logging.logger.level
    core_logging.logger.addHandler(handler)
    yield handler
    core_logging.logger.removeHandler(handler)
    core_logging.set_level(previous)


@pytest.mark.parametrize(
    "module", [index_store, permissions, repair_api, service_controller, startup_config]
)
def test_components_log_through_shared_logger(module) -> None:
    assert module.LOGGER is core_logging.logger


def test_set_level_controls_component_debug_output(captured: _ListHandler) -> None:
    core_logging.set_level(logging.INFO)
    index_store.LOGGER.debug("[Index] hidden")
    core_logging.set_level(logging.DEBUG)
    index_store.LOGGER.debug("[Index] shown")

    assert [record.getMessage() for record in captured.records] == ["[Index] shown"]


def test_failed_stage_is_logged_as_warning(captured: _ListHandler) -> None:
    core_logging.log_stage_result(
        StageResult(StageName.VERIFY, StageStatus.FAILED, "service stopped")
    )
    core_logging.log_stage_result(
        StageResult(StageName.STOP_SERVICE, StageStatus.SUCCESS, "stopped")
    )

    assert [record.levelno for record in captured.records] == [logging.WARNING, logging.INFO]
    assert "[FAILED] verify: service stopped" in str(captured.records[0].msg)
