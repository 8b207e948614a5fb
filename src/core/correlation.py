"""In-memory correlation index (core domain).

Relay records live in an append-only arena; two dictionaries index the
arena by the (message id, instance, channel) triple on the source side and
on the target side. Lookups return records in insertion order, which is
what the processor relies on for first-match resolution.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from core.models import RelayRecord

Key = tuple[str, str, str]


class CorrelationIndex:
    """Satisfies the RelayStorePort contract without any backing database."""

    def __init__(self) -> None:
        self._arena: list[RelayRecord] = []
        self._by_source: dict[Key, list[int]] = {}
        self._by_target: dict[Key, list[int]] = {}

    def __len__(self) -> int:
        return len(self._arena)

    def find_by_source(self, message_id: str, instance: str, channel: str) -> list[RelayRecord]:
        return [self._arena[i] for i in self._by_source.get((message_id, instance, channel), [])]

    def find_by_target(self, message_id: str, instance: str, channel: str) -> list[RelayRecord]:
        return [self._arena[i] for i in self._by_target.get((message_id, instance, channel), [])]

    def insert_records(self, records: Iterable[RelayRecord]) -> list[RelayRecord]:
        """Append records, assigning sequential record ids."""

        stored: list[RelayRecord] = []
        for record in records:
            position = len(self._arena)
            record = replace(record, record_id=position + 1)
            self._arena.append(record)
            self._by_source.setdefault(
                (record.source_message_id, record.source_instance, record.source_channel), []
            ).append(position)
            self._by_target.setdefault(
                (record.target_message_id, record.target_instance, record.target_channel), []
            ).append(position)
            stored.append(record)
        return stored
