"""Regression tests for scenario setting rules and job key naming."""

import pytest

from ram_orchestrator.domain import (
    JobKey,
    domain_admin_areas_selected,
    domain_build_log_entry,
    domain_parse_setting_timestamp_ms,
    domain_road_network_needs_export,
)


@pytest.mark.parametrize(
    ("settings", "expected"),
    [
        ({"rn_active_editing": "false", "res_gen_at": "0", "rn_updated_at": "2026-01-02T00:00:00Z"}, False),
        ({"res_gen_at": "0", "rn_updated_at": "2026-01-02T00:00:00Z"}, False),
        (
            {
                "rn_active_editing": "true",
                "res_gen_at": "2026-01-02T00:00:00Z",
                "rn_updated_at": "2026-01-02T00:00:00Z",
            },
            False,
        ),
        (
            {
                "rn_active_editing": "true",
                "res_gen_at": "2026-01-02T00:00:00Z",
                "rn_updated_at": "2026-01-02T00:00:01Z",
            },
            True,
        ),
        ({"rn_active_editing": "true", "res_gen_at": "0", "rn_updated_at": "2026-01-02T00:00:00Z"}, True),
        ({"rn_active_editing": "true", "rn_updated_at": "1970-01-01T00:00:00.001Z"}, True),
        ({"rn_active_editing": "true", "res_gen_at": "0", "rn_updated_at": "0"}, False),
    ],
)
def test_domain_road_network_needs_export(settings, expected) -> None:
    """Require export only while editing and after a newer road network change.

    Raises:
        AssertionError: Raised when the export decision deviates from the rule.
    """

    assert domain_road_network_needs_export(settings) is expected


def test_domain_parse_setting_timestamp_ms_treats_zero_as_unset() -> None:
    """Map literal zero and empty values to the unset marker, not the epoch.

    Raises:
        AssertionError: Raised when unset markers or ISO timestamps are misparsed.
    """

    assert domain_parse_setting_timestamp_ms(None) == 0
    assert domain_parse_setting_timestamp_ms(0) == 0
    assert domain_parse_setting_timestamp_ms("0") == 0
    assert domain_parse_setting_timestamp_ms(" ") == 0
    assert domain_parse_setting_timestamp_ms("1970-01-01T00:00:01Z") == 1000
    assert domain_parse_setting_timestamp_ms("1970-01-01T00:00:01") == 1000
    assert domain_parse_setting_timestamp_ms("1970-01-01T02:00:01+02:00") == 1000


def test_domain_parse_setting_timestamp_ms_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        domain_parse_setting_timestamp_ms("yesterday")


def test_domain_admin_areas_selected() -> None:
    assert domain_admin_areas_selected("[1, 2]")
    assert domain_admin_areas_selected([3])
    assert not domain_admin_areas_selected("[]")
    assert not domain_admin_areas_selected("")
    assert not domain_admin_areas_selected(None)


def test_job_key_names() -> None:
    key = JobKey(project_id=12, scenario_id=34)

    assert str(key) == "p12 s34"
    assert key.container_name("ram") == "ram-analysisp12s34"
    assert key.log_prefix() == "[ANALYSIS P12 S34]"


def test_domain_build_log_entry_requires_event() -> None:
    entry = domain_build_log_entry(" start ", {"message": "Analysis generation started"})

    assert entry["event"] == "start"
    assert entry["data"] == {"message": "Analysis generation started"}
    with pytest.raises(ValueError):
        domain_build_log_entry("  ")
