"""Service-owned table of active sub-stage handles per job key."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from ram_orchestrator.adapters import StageHandle
from ram_orchestrator.domain import JobKey

logger = logging.getLogger(__name__)

SLOT_UPDATE_RN: Final[str] = "update_rn"
SLOT_GEN_VT: Final[str] = "gen_vt"
REGISTRY_SLOTS: Final[tuple[str, ...]] = (SLOT_UPDATE_RN, SLOT_GEN_VT)


@dataclass
class JobProcessEntry:
    """Active stage handles of one job, in stage order.

    Attributes:
        update_rn: Road network export handle while that stage runs.
        gen_vt: Vector tiles handle while that stage runs.
        cancel_requested: Set by cancellation; later stages must not start.
    """

    update_rn: StageHandle | None = None
    gen_vt: StageHandle | None = None
    cancel_requested: bool = False

    def entry_assign(self, slot: str, handle: StageHandle) -> None:
        """Store the handle of the stage now running.

        Raises:
            ValueError: Raised when slot is unknown.
            RuntimeError: Raised when another slot is still occupied.
        """

        self._entry_validate_slot(slot)
        for other_slot in REGISTRY_SLOTS:
            if other_slot != slot and getattr(self, other_slot) is not None:
                raise RuntimeError(f"cannot assign {slot} while {other_slot} is active")
        setattr(self, slot, handle)

    def entry_clear(self, slot: str, handle: StageHandle | None = None) -> bool:
        """Empty one slot.

        When `handle` is given the slot is only emptied if it still holds that
        handle. An already empty slot is a normal outcome of kill racing with
        natural completion.

        Returns:
            bool: True when the slot held a handle that got removed.
        """

        self._entry_validate_slot(slot)
        current_handle = getattr(self, slot)
        if current_handle is None:
            return False
        if handle is not None and current_handle is not handle:
            return False
        setattr(self, slot, None)
        return True

    def entry_active_stage(self) -> tuple[str, StageHandle] | None:
        """Return the earliest occupied slot and its handle."""

        for slot in REGISTRY_SLOTS:
            handle = getattr(self, slot)
            if handle is not None:
                return slot, handle
        return None

    def _entry_validate_slot(self, slot: str) -> None:
        if slot not in REGISTRY_SLOTS:
            raise ValueError(f"unknown registry slot={slot}")


class ProcessRegistry:
    """In-memory map from job key to the entry of its running job.

    Lifetime is scoped to the service process. Only the orchestrator of a key
    and the cancellation path touch an entry.
    """

    def __init__(self):
        self._entries: dict[JobKey, JobProcessEntry] = {}

    def registry_open(self, key: JobKey) -> JobProcessEntry:
        """Create a fresh entry for a newly started job, replacing a stale one."""

        if key in self._entries:
            logger.warning("%s replacing stale process registry entry", key)
        entry = JobProcessEntry()
        self._entries[key] = entry
        return entry

    def registry_get(self, key: JobKey) -> JobProcessEntry | None:
        return self._entries.get(key)

    def registry_active_stage(self, key: JobKey) -> tuple[str, StageHandle] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.entry_active_stage()

    def registry_remove(self, key: JobKey, entry: JobProcessEntry | None = None) -> bool:
        """Remove the entry of a key.

        Args:
            key: Job key.
            entry: When given, only this exact entry is removed, so a finishing
                job cannot drop the entry of a newer job for the same key.

        Returns:
            bool: True when an entry was removed.
        """

        current_entry = self._entries.get(key)
        if current_entry is None:
            return False
        if entry is not None and current_entry is not entry:
            return False
        del self._entries[key]
        return True

    def registry_keys(self) -> list[JobKey]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
