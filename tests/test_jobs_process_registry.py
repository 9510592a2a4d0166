"""Tests for process registry slot bookkeeping."""

from __future__ import annotations

import pytest

from ram_orchestrator.domain import JobKey
from ram_orchestrator.jobs import ProcessRegistry

KEY = JobKey(project_id=1, scenario_id=2)


class _Handle:
    def kill(self) -> None:
        pass

    async def stage_wait(self) -> None:
        pass


def test_assign_clear_and_active_stage_order() -> None:
    registry = ProcessRegistry()
    entry = registry.registry_open(KEY)
    export_handle = _Handle()

    entry.entry_assign("update_rn", export_handle)

    assert registry.registry_active_stage(KEY) == ("update_rn", export_handle)
    assert entry.entry_clear("update_rn", export_handle) is True
    assert registry.registry_active_stage(KEY) is None


def test_clearing_empty_slot_is_not_an_error() -> None:
    entry = ProcessRegistry().registry_open(KEY)

    assert entry.entry_clear("gen_vt") is False


def test_clear_ignores_a_different_handle() -> None:
    entry = ProcessRegistry().registry_open(KEY)
    current_handle = _Handle()
    entry.entry_assign("gen_vt", current_handle)

    assert entry.entry_clear("gen_vt", _Handle()) is False
    assert entry.gen_vt is current_handle


def test_second_slot_cannot_be_assigned_while_first_is_active() -> None:
    entry = ProcessRegistry().registry_open(KEY)
    entry.entry_assign("update_rn", _Handle())

    with pytest.raises(RuntimeError):
        entry.entry_assign("gen_vt", _Handle())


def test_unknown_slot_is_rejected() -> None:
    entry = ProcessRegistry().registry_open(KEY)

    with pytest.raises(ValueError):
        entry.entry_assign("analysis", _Handle())


def test_remove_only_drops_matching_entry() -> None:
    registry = ProcessRegistry()
    stale_entry = registry.registry_open(KEY)
    fresh_entry = registry.registry_open(KEY)

    assert registry.registry_remove(KEY, stale_entry) is False
    assert registry.registry_get(KEY) is fresh_entry
    assert registry.registry_remove(KEY, fresh_entry) is True
    assert KEY not in registry
    assert registry.registry_remove(KEY) is False
