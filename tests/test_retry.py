from __future__ import annotations

import logging

import pytest

from ads_op_tracker.diagnostics.findings import Fix, FixType
from ads_op_tracker.domain.operations import OperationStatus
from ads_op_tracker.errors import OperationNotFoundError, RetryNotPossibleError
from ads_op_tracker.retry import RetryEngine
from ads_op_tracker.tracker import OperationTracker


@pytest.fixture
def tracker(backend_tracker: OperationTracker) -> OperationTracker:
    return backend_tracker


def _failed_clone(tracker: OperationTracker, metadata: dict) -> str:
    operation_id = tracker.create_operation("campaign_clone", metadata)
    tracker.start_operation(operation_id)
    tracker.fail_operation(operation_id, {"message": "rate limited", "code": "RESOURCE_EXHAUSTED"})
    return operation_id


def test_retry_operation_links_both_operations(
    tracker: OperationTracker, retry_engine: RetryEngine
) -> None:
    original_id = _failed_clone(tracker, {"customerId": "123"})

    retry_id = retry_engine.retry_operation(original_id, "retry_campaign_clone", {"chunkSize": 3})

    retry = tracker.get_operation(retry_id)
    assert retry.status == OperationStatus.PENDING
    assert retry.type == "retry_campaign_clone"
    assert retry.metadata["originalOperationId"] == original_id
    assert retry.metadata["retryOf"] == original_id
    assert retry.metadata["originalType"] == "campaign_clone"
    assert retry.metadata["chunkSize"] == 3
    assert "retryTime" in retry.metadata
    assert retry.logs[-1].message == f"Retry operation created for {original_id}"

    original_logs = tracker.get_operation_logs(original_id)
    assert original_logs[-1].message == f"Retry operation {retry_id} created"
    assert original_logs[-1].details == {"retryId": retry_id}
    assert tracker.get_operation(original_id).status == OperationStatus.FAILED


def test_retry_operation_caller_keys_win_except_links(
    tracker: OperationTracker, retry_engine: RetryEngine, caplog
) -> None:
    original_id = _failed_clone(tracker, {})

    with caplog.at_level(logging.WARNING, logger="ads_op_tracker.retry"):
        retry_id = retry_engine.retry_operation(
            original_id,
            "retry_campaign_clone",
            {
                "originalType": "custom",
                "retryTime": "2024-01-01T00:00:00+00:00",
                "retryOf": "someone_else",
            },
        )

    metadata = tracker.get_operation(retry_id).metadata
    assert metadata["originalType"] == "custom"
    assert metadata["retryTime"] == "2024-01-01T00:00:00+00:00"
    assert metadata["retryOf"] == original_id
    assert "Ignoring retryOf" in caplog.text


def test_retry_operation_unknown_origin(retry_engine: RetryEngine) -> None:
    with pytest.raises(OperationNotFoundError):
        retry_engine.retry_operation("missing", "retry_campaign_clone")


def test_retry_notifies_subscribers_of_origin(
    tracker: OperationTracker, retry_engine: RetryEngine
) -> None:
    original_id = _failed_clone(tracker, {})
    seen: list[str] = []
    tracker.subscribe(original_id, lambda op: seen.append(op.logs[-1].message))
    seen.clear()

    retry_id = retry_engine.retry_operation(original_id, "retry_campaign_clone")

    assert seen == [f"Retry operation {retry_id} created"]


def test_retry_failed_items_narrows_work_set(
    tracker: OperationTracker, retry_engine: RetryEngine, clone_metadata: dict
) -> None:
    original_id = _failed_clone(tracker, clone_metadata)

    retry_id = retry_engine.retry_failed_items(original_id)

    metadata = tracker.get_operation(retry_id).metadata
    assert metadata["campaignIds"] == ["c3", "c4"]
    assert metadata["customerId"] == "123-456-7890"
    assert metadata["chunkSize"] == 3
    assert metadata["retryCount"] == 1
    assert metadata["config"] == clone_metadata["config"]
    assert metadata["originalOperationId"] == original_id
    assert tracker.get_operation(retry_id).type == "retry_campaign_clone"

    last_log = tracker.get_operation_logs(retry_id)[-1]
    assert last_log.message == "Retrying 2 campaigns that previously failed"
    assert last_log.details == {"previousErrors": {"c3": "RESOURCE_EXHAUSTED", "c4": "INTERNAL"}}


def test_retry_failed_items_only_reports_errors_in_work_set(
    tracker: OperationTracker, retry_engine: RetryEngine, clone_metadata: dict
) -> None:
    original_id = _failed_clone(tracker, clone_metadata)

    retry_id = retry_engine.retry_failed_items(original_id, items=["c4"])

    assert tracker.get_operation_logs(retry_id)[-1].details == {
        "previousErrors": {"c4": "INTERNAL"}
    }


def test_retry_failed_items_falls_back_to_all_campaigns(
    tracker: OperationTracker, retry_engine: RetryEngine, clone_metadata: dict
) -> None:
    clone_metadata["failedCampaigns"] = []
    original_id = _failed_clone(tracker, clone_metadata)

    retry_id = retry_engine.retry_failed_items(original_id, chunk_size=1)

    metadata = tracker.get_operation(retry_id).metadata
    assert metadata["campaignIds"] == ["c1", "c2", "c3", "c4"]
    assert metadata["chunkSize"] == 1


def test_retry_chain_increments_retry_count(
    tracker: OperationTracker, retry_engine: RetryEngine, clone_metadata: dict
) -> None:
    original_id = _failed_clone(tracker, clone_metadata)
    first_retry = retry_engine.retry_failed_items(original_id)

    second_retry = retry_engine.retry_failed_items(first_retry)

    metadata = tracker.get_operation(second_retry).metadata
    assert metadata["retryCount"] == 2
    assert metadata["originalOperationId"] == first_retry


@pytest.mark.parametrize(
    "missing_key",
    ["customerId", "config"],
)
def test_retry_failed_items_requires_clone_data(
    tracker: OperationTracker, retry_engine: RetryEngine, clone_metadata: dict, missing_key: str
) -> None:
    del clone_metadata[missing_key]
    original_id = _failed_clone(tracker, clone_metadata)

    with pytest.raises(RetryNotPossibleError):
        retry_engine.retry_failed_items(original_id)


def test_retry_failed_items_requires_work(
    tracker: OperationTracker, retry_engine: RetryEngine, clone_metadata: dict
) -> None:
    clone_metadata["failedCampaigns"] = []
    clone_metadata["campaignIds"] = []
    original_id = _failed_clone(tracker, clone_metadata)

    with pytest.raises(RetryNotPossibleError, match="no campaigns"):
        retry_engine.retry_failed_items(original_id)


def test_apply_reduce_chunk_size_fix(
    tracker: OperationTracker, retry_engine: RetryEngine, clone_metadata: dict
) -> None:
    original_id = _failed_clone(tracker, clone_metadata)
    fix = Fix(
        type=FixType.REDUCE_CHUNK_SIZE,
        operation_id=original_id,
        description="halve",
        original_chunk_size=5,
        proposed_chunk_size=2,
    )

    retry_id = retry_engine.apply_fix(fix)

    metadata = tracker.get_operation(retry_id).metadata
    assert metadata["chunkSize"] == 2
    assert metadata["campaignIds"] == ["c3", "c4"]


def test_apply_retry_failed_items_fix_uses_listed_items(
    tracker: OperationTracker, clone_metadata: dict
) -> None:
    engine = RetryEngine(tracker, default_chunk_size=4)
    original_id = _failed_clone(tracker, clone_metadata)
    fix = Fix(
        type=FixType.RETRY_FAILED_ITEMS,
        operation_id=original_id,
        description="retry",
        items=("c4",),
    )

    retry_id = engine.apply_fix(fix)

    metadata = tracker.get_operation(retry_id).metadata
    assert metadata["campaignIds"] == ["c4"]
    assert metadata["chunkSize"] == 4


def test_apply_unknown_fix_type(retry_engine: RetryEngine) -> None:
    fix = Fix(type="rotate_credentials", operation_id="op_1", description="?")
    with pytest.raises(ValueError, match="Unsupported fix type"):
        retry_engine.apply_fix(fix)


def test_engine_rejects_invalid_default_chunk_size(tracker: OperationTracker) -> None:
    with pytest.raises(ValueError):
        RetryEngine(tracker, default_chunk_size=0)
