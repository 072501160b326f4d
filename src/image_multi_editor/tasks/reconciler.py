from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Iterator, Sequence

from ..errors import EntryNotFoundError
from ..types import EntryStatus, ResultEntry, TaskOutcome

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


class ResultReconciler:
    """
    Canonical ordered collection of result entries.

    Entries are stored by id with a parallel list of ids for display order.
    Outcomes are always written back by id, so entries inserted or removed while
    requests are in flight never shift another entry's result.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ResultEntry] = {}
        self._order: list[str] = []

    @property
    def entries(self) -> tuple[ResultEntry, ...]:
        return tuple(self._entries[entry_id] for entry_id in self._order)

    def get(self, entry_id: str) -> ResultEntry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise EntryNotFoundError(entry_id) from None

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[ResultEntry]:
        return iter(self.entries)

    def clear(self) -> None:
        self._entries.clear()
        self._order.clear()

    def begin_batch(self, instructions: Sequence[str]) -> list[str]:
        """Replace the collection with one pending placeholder per instruction.

        Returns the ids in instruction order, so ``ids[position]`` is the entry
        that the outcome at ``position`` belongs to.
        """
        placeholders = [ResultEntry(id=_new_id(), instruction=instruction) for instruction in instructions]
        self._entries = {entry.id: entry for entry in placeholders}
        self._order = [entry.id for entry in placeholders]
        return list(self._order)

    def apply_outcome(self, entry_id: str, outcome: TaskOutcome) -> bool:
        """Settle a pending entry; returns False when the outcome was dropped."""
        entry = self._entries.get(entry_id)
        if entry is None:
            logger.info("Dropping outcome for removed entry %s (%r)", entry_id, outcome.instruction)
            return False
        if not entry.is_pending:
            logger.warning("Entry %s already settled as %s; ignoring outcome", entry_id, entry.status.value)
            return False

        if outcome.result is not None:
            updated = replace(
                entry,
                status=EntryStatus.SUCCESS,
                payload=outcome.result.data_uri(),
                mime_type=outcome.result.mime_type,
            )
        else:
            updated = replace(entry, status=EntryStatus.ERROR, error=outcome.reason)
        self._entries[entry_id] = updated
        return True

    def insert_derived(self, after_id: str, instruction: str) -> str:
        """Insert a pending placeholder directly after ``after_id`` and return its id."""
        if after_id not in self._entries:
            raise EntryNotFoundError(after_id)
        entry = ResultEntry(id=_new_id(), instruction=instruction, source_id=after_id)
        self._entries[entry.id] = entry
        self._order.insert(self._order.index(after_id) + 1, entry.id)
        return entry.id

    def remove_entry(self, entry_id: str) -> bool:
        """Forget an entry; any outcome still in flight for it becomes a no-op."""
        if self._entries.pop(entry_id, None) is None:
            return False
        self._order.remove(entry_id)
        return True
