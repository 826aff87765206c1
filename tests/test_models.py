"""Tests for report derivation and failure classification."""

from __future__ import annotations

import pytest

from core.errors import (
    AccessDenied,
    ServiceNotFound,
    classify_os_error,
    classify_winerror,
)
from core.models import (
    FailureKind,
    OperationResult,
    OverallStatus,
    RemediationReport,
    StageName,
    StageResult,
    StageStatus,
)


def _report(statuses: list[StageStatus], verified: bool) -> RemediationReport:
    stages = list(StageName)
    return RemediationReport(
        service_name="WSearch",
        stage_results=tuple(
            StageResult(stage, status, "detail") for stage, status in zip(stages, statuses)
        ),
        verified_running=verified,
        started_at=10.0,
        finished_at=12.5,
    )


def test_all_successful_stages_give_success() -> None:
    report = _report([StageStatus.SUCCESS] * 5, verified=True)

    assert report.overall_status is OverallStatus.SUCCESS
    assert report.restart_required is False


def test_skipped_stages_do_not_degrade_outcome() -> None:
    report = _report([StageStatus.SKIPPED, StageStatus.SKIPPED] + [StageStatus.SUCCESS] * 3, True)

    assert report.overall_status is OverallStatus.SUCCESS


@pytest.mark.parametrize("degraded", [StageStatus.PARTIAL_SUCCESS, StageStatus.FAILED])
def test_degraded_stage_with_verified_service_is_partial(degraded: StageStatus) -> None:
    report = _report([degraded] + [StageStatus.SUCCESS] * 4, verified=True)

    assert report.overall_status is OverallStatus.PARTIAL_SUCCESS
    assert report.restart_required is False


def test_unverified_service_fails_regardless_of_stages() -> None:
    report = _report([StageStatus.SUCCESS] * 4 + [StageStatus.FAILED], verified=False)

    assert report.overall_status is OverallStatus.FAILED
    assert report.restart_required is True


def test_report_to_dict_is_serialisable() -> None:
    report = _report([StageStatus.SUCCESS] * 5, verified=True)

    payload = report.to_dict()

    assert payload["overall_status"] == "success"
    assert payload["duration_s"] == 2.5
    assert [stage["stage"] for stage in payload["stages"]] == [stage.value for stage in StageName]
    assert payload["stages"][0]["failure"] is None


def test_operation_result_succeeded_covers_partial() -> None:
    assert OperationResult.ok().succeeded
    assert OperationResult.partial("some logs left").succeeded
    assert not OperationResult.skipped("nothing to do").succeeded
    assert not OperationResult.failed(FailureKind.TIMEOUT, "slow").succeeded


def test_classify_os_error_maps_taxonomy() -> None:
    assert classify_os_error(PermissionError(13, "denied")) is FailureKind.PERMISSION_DENIED
    assert classify_os_error(FileNotFoundError(2, "missing")) is FailureKind.NOT_FOUND
    assert classify_os_error(TimeoutError()) is FailureKind.TIMEOUT
    assert classify_os_error(OSError(5, "other")) is FailureKind.OS_ERROR
    assert classify_os_error(ServiceNotFound("gone")) is FailureKind.NOT_FOUND
    assert classify_os_error(AccessDenied("no")) is FailureKind.PERMISSION_DENIED


def test_classify_winerror_codes() -> None:
    assert classify_winerror(5) is FailureKind.PERMISSION_DENIED
    assert classify_winerror(32) is FailureKind.PERMISSION_DENIED
    assert classify_winerror(1053) is FailureKind.TIMEOUT
    assert classify_winerror(1060) is FailureKind.NOT_FOUND
    assert classify_winerror(1) is FailureKind.OS_ERROR
    assert classify_winerror(None) is FailureKind.OS_ERROR
