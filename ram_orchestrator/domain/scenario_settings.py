"""Pure rules over persisted scenario settings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Final, Mapping

SETTING_RESULTS_GENERATED_AT: Final[str] = "res_gen_at"
SETTING_RN_ACTIVE_EDITING: Final[str] = "rn_active_editing"
SETTING_RN_UPDATED_AT: Final[str] = "rn_updated_at"
SETTING_ADMIN_AREAS: Final[str] = "admin_areas"
EXPORT_DECISION_SETTING_KEYS: Final[tuple[str, ...]] = (
    SETTING_RESULTS_GENERATED_AT,
    SETTING_RN_ACTIVE_EDITING,
    SETTING_RN_UPDATED_AT,
)


def domain_parse_setting_timestamp_ms(value: object) -> int:
    """Convert one stored timestamp setting to epoch milliseconds.

    A literal `0`, an empty value or a missing value means "no timestamp"
    and maps to `0`.

    Args:
        value: Raw stored setting value.

    Returns:
        int: Epoch milliseconds, or `0` when unset.

    Raises:
        ValueError: Raised when the value is not a parseable timestamp.
    """

    if value is None or value == 0:
        return 0
    if isinstance(value, datetime):
        parsed_value = value
    else:
        text_value = str(value).strip()
        if text_value in {"", "0"}:
            return 0
        if text_value.endswith("Z"):
            text_value = text_value[:-1] + "+00:00"
        try:
            parsed_value = datetime.fromisoformat(text_value)
        except ValueError as error:
            raise ValueError(f"invalid timestamp setting value={text_value}") from error

    if parsed_value.tzinfo is None:
        parsed_value = parsed_value.replace(tzinfo=timezone.utc)
    return int(parsed_value.timestamp() * 1000)


def domain_setting_is_true(value: object) -> bool:
    """Return whether a stored boolean-like setting is true."""

    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def domain_road_network_needs_export(settings: Mapping[str, object]) -> bool:
    """Decide whether the road network must be exported before analysis.

    Export is needed only while road network editing is active and the road
    network was modified after results were last generated.

    Args:
        settings: Scenario settings keyed by setting name.

    Returns:
        bool: True when the road network must be re-exported.

    Raises:
        ValueError: Raised when a timestamp setting cannot be parsed.
    """

    if not domain_setting_is_true(settings.get(SETTING_RN_ACTIVE_EDITING)):
        return False

    generated_at_ms = domain_parse_setting_timestamp_ms(settings.get(SETTING_RESULTS_GENERATED_AT))
    updated_at_ms = domain_parse_setting_timestamp_ms(settings.get(SETTING_RN_UPDATED_AT))
    return updated_at_ms > generated_at_ms


def domain_admin_areas_selected(value: object) -> bool:
    """Return whether the admin area selection setting holds at least one area."""

    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return str(value).strip() not in {"", "[]"}
