"""
INI-file configuration for calendar shadow.
"""

import re
from configparser import ConfigParser
from pathlib import Path

from calendar_shadow.models import ShadowConfig

CONFIG_SECTION = "calendar-shadow"

_EMAIL_SPLIT_RE = re.compile(r"[\s,;]+")


def load_config_file(config_path: Path) -> dict[str, str]:
    if not config_path.exists():
        return {}
    parser = ConfigParser()
    parser.read(config_path)
    if CONFIG_SECTION not in parser:
        return {}
    return dict(parser[CONFIG_SECTION])


def parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_attendees(value: str | None) -> tuple[str, ...]:
    """Split an attendee list on commas, semicolons or whitespace, keeping email-like entries.

    Order is preserved and repeated addresses are dropped.
    """
    if not value:
        return ()
    seen: dict[str, None] = {}
    for token in _EMAIL_SPLIT_RE.split(value):
        if "@" in token:
            seen.setdefault(token.strip(), None)
    return tuple(seen)


def build_shadow_config(
    file_values: dict[str, str],
    attendees: list[str] | None = None,
    main_calendar_id: str | None = None,
    show_full_details: bool | None = None,
    accepted_only: bool | None = None,
) -> ShadowConfig:
    """Merge config-file values with command-line overrides (overrides win when given)."""
    if attendees:
        emails = parse_attendees(",".join(attendees))
    else:
        emails = parse_attendees(file_values.get("attendees"))

    return ShadowConfig(
        attendee_emails=emails,
        main_calendar_id=(
            main_calendar_id
            if main_calendar_id is not None
            else file_values.get("main_calendar_id", "").strip()
        ),
        show_full_details=(
            show_full_details
            if show_full_details is not None
            else parse_bool(file_values.get("show_full_details"))
        ),
        accepted_only=(
            accepted_only
            if accepted_only is not None
            else parse_bool(file_values.get("accepted_only"))
        ),
    )
