"""Rendering of battle notifications and diagnostic log blocks.

Timestamps are rendered in the host's local time unless a timezone is
passed explicitly (``render.timezone`` in the config).
"""

from __future__ import annotations

import datetime as dt
import html as html_lib

from .logging_utils import render_fields_block
from .models import BattleEvent, RealmInfo

MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def format_duration(seconds: int) -> str:
    """Render a countdown as ``"{minutes}m {seconds}s"``."""
    minutes, remaining = divmod(max(0, seconds), 60)
    return f"{minutes}m {remaining}s"


def format_timestamp(epoch_seconds: int, tz: dt.tzinfo | None = None) -> str:
    """Render an epoch timestamp as ``"{day} {Mon} {hour}:{minute}"``.

    Timestamps the platform cannot represent render as ``"@{epoch_seconds}"``.
    """
    try:
        moment = dt.datetime.fromtimestamp(epoch_seconds, tz)
    except (OverflowError, ValueError, OSError):
        return f"@{epoch_seconds}"
    return f"{moment.day} {MONTH_ABBREVIATIONS[moment.month - 1]} {moment.hour}:{moment.minute:02d}"


def format_battle_message(
    event: BattleEvent,
    realm: RealmInfo | None,
    *,
    tz: dt.tzinfo | None = None,
    html: bool = False,
) -> str:
    """Build the notification text for a battle.

    With realm info the settlement and its owner are named; otherwise the
    defender and the raw structure type are. ``html=True`` escapes every
    name and bolds the participants for Telegram's HTML parse mode.
    """

    def name(value: str) -> str:
        return f"<b>{html_lib.escape(value)}</b>" if html else value

    def plain(value: str) -> str:
        return html_lib.escape(value) if html else value

    time_label = format_timestamp(event.timestamp, tz)
    duration = format_duration(event.duration_left)
    attacker = name(event.attacker.name)

    if realm is not None:
        target = f"{name(realm.name)} Realm (owned by {name(realm.owner_name)})"
    else:
        target = f"{name(event.defender.name)}'s {plain(event.structure_type)}"

    return f"[{time_label}] {attacker} is attacking {target} - Battle will end in {duration}"


def battle_details_block(event: BattleEvent, realm: RealmInfo | None, *, tz: dt.tzinfo | None = None) -> str:
    realm_label = f"{realm.name} (owner {realm.owner_name})" if realm else None
    return render_fields_block(
        f"Battle {event.battle_id}",
        [
            ("Event", event.event_id),
            ("Attacker", f"{event.attacker.name} ({event.attacker.address})"),
            ("Attacker army", event.attacker.army_id),
            ("Defender", f"{event.defender.name} ({event.defender.address})"),
            ("Defender army", event.defender.army_id),
            ("Location", f"({event.x}, {event.y})"),
            ("Realm", realm_label),
            ("Structure", event.structure_type),
            ("Duration left", f"{format_duration(event.duration_left)} [{event.raw_duration_left}]"),
            ("Started", f"{format_timestamp(event.timestamp, tz)} [{event.raw_timestamp}]"),
        ],
    )
