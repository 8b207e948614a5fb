from __future__ import annotations

from datetime import datetime, timezone

from core.correlation import CorrelationIndex
from core.models import RelayRecord


def _record(source_id: str, target_id: str, target_instance: str = "discord:2") -> RelayRecord:
    return RelayRecord(
        source_message_id=source_id,
        source_instance="telegram:1",
        source_channel="c1",
        target_message_id=target_id,
        target_instance=target_instance,
        target_channel="c2",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_insert_assigns_sequential_ids() -> None:
    index = CorrelationIndex()
    stored = index.insert_records([_record("m1", "t1"), _record("m1", "t2")])
    assert [record.record_id for record in stored] == [1, 2]
    assert len(index) == 2


def test_lookup_in_both_directions() -> None:
    index = CorrelationIndex()
    index.insert_records([_record("m1", "t1"), _record("m1", "t9", target_instance="telegram:3")])

    by_source = index.find_by_source("m1", "telegram:1", "c1")
    assert [record.target_message_id for record in by_source] == ["t1", "t9"]

    by_target = index.find_by_target("t1", "discord:2", "c2")
    assert [record.source_message_id for record in by_target] == ["m1"]


def test_lookup_requires_full_key_match() -> None:
    index = CorrelationIndex()
    index.insert_records([_record("m1", "t1")])

    assert index.find_by_source("m1", "telegram:1", "other") == []
    assert index.find_by_target("t1", "telegram:1", "c2") == []
    assert index.find_by_source("t1", "discord:2", "c2") == []
