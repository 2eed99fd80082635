from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jsonschema import Draft7Validator

from .utils import validate_url


@dataclass(slots=True)
class ValidationIssue:
    """Represents a single validation problem."""

    severity: str
    path: str
    message: str
    code: str


@dataclass(slots=True)
class ValidationReport:
    """Aggregates validation warnings and errors."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


_POSITIVE_NUMBER = {"type": "number", "exclusiveMinimum": 0}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "settings": {
            "type": "object",
            "properties": {
                "feed": {
                    "type": "object",
                    "properties": {
                        "url": {"type": "string", "minLength": 1},
                        "timeout": _POSITIVE_NUMBER,
                        "max_retries": {"type": "integer", "minimum": 1},
                    },
                    "additionalProperties": False,
                },
                "poller": {
                    "type": "object",
                    "properties": {
                        "interval_seconds": _POSITIVE_NUMBER,
                        "seen_ttl_seconds": {"oneOf": [_POSITIVE_NUMBER, {"type": "null"}]},
                    },
                    "additionalProperties": False,
                },
                "telegram": {
                    "type": "object",
                    "properties": {
                        "bot_token": {"type": ["string", "null"]},
                        "api_base": {"type": "string"},
                        "rich_formatting": {"type": "boolean"},
                        "suppress_link_preview": {"type": "boolean"},
                        "timeout": _POSITIVE_NUMBER,
                    },
                    "additionalProperties": False,
                },
                "delivery": {
                    "type": "object",
                    "properties": {
                        "permanent_markers": {
                            "type": "array",
                            "items": {"type": "string", "minLength": 1},
                            "minItems": 1,
                        },
                    },
                    "additionalProperties": False,
                },
                "directory": {
                    "type": "object",
                    "properties": {"path": {"type": "string", "minLength": 1}},
                    "additionalProperties": False,
                },
                "render": {
                    "type": "object",
                    "properties": {"timezone": {"type": "string", "minLength": 1}},
                    "additionalProperties": False,
                },
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": True,
}


def _format_jsonschema_path(path: Sequence[Any]) -> str:
    parts: list[str] = []
    for element in path:
        if isinstance(element, int):
            if parts:
                parts[-1] = f"{parts[-1]}[{element}]"
            else:
                parts.append(f"[{element}]")
        else:
            parts.append(str(element))
    return ".".join(parts) or "<root>"


def validate_config_data(data: Dict[str, Any]) -> ValidationReport:
    """Validate configuration data against the schema and semantic rules.

    Args:
        data: The raw configuration mapping as loaded from YAML

    Returns:
        ValidationReport containing any errors or warnings found
    """
    report = ValidationReport()
    validator = Draft7Validator(CONFIG_SCHEMA)

    for error in sorted(validator.iter_errors(data), key=lambda exc: [str(part) for part in exc.path]):
        report.errors.append(
            ValidationIssue(
                severity="error",
                path=_format_jsonschema_path(error.absolute_path),
                message=error.message,
                code="schema",
            )
        )

    if report.is_valid:
        _validate_semantics(data, report)
    return report


def _validate_semantics(data: Dict[str, Any], report: ValidationReport) -> None:
    from .config import resolve_feed_url

    settings = data.get("settings") or {}

    feed_url = (settings.get("feed") or {}).get("url")
    if isinstance(feed_url, str) and not validate_url(resolve_feed_url(feed_url)):
        report.errors.append(
            ValidationIssue(
                severity="error",
                path="settings.feed.url",
                message=f"'{feed_url}' is neither a feed preset nor an http/https URL",
                code="feed-url",
            )
        )

    timezone = (settings.get("render") or {}).get("timezone")
    if isinstance(timezone, str) and timezone.strip().lower() not in {"local", "utc"}:
        problem = _timezone_problem(timezone)
        if problem:
            report.errors.append(
                ValidationIssue(
                    severity="error",
                    path="settings.render.timezone",
                    message=problem,
                    code="timezone",
                )
            )

    token = (settings.get("telegram") or {}).get("bot_token")
    if not token or (isinstance(token, str) and token.strip().startswith("${")):
        report.warnings.append(
            ValidationIssue(
                severity="warning",
                path="settings.telegram.bot_token",
                message="No bot token configured; set TELEGRAM_BOT_TOKEN before running the monitor",
                code="telegram-token",
            )
        )

    poller = settings.get("poller") or {}
    interval = poller.get("interval_seconds", 10)
    ttl = poller.get("seen_ttl_seconds")
    if isinstance(ttl, (int, float)) and isinstance(interval, (int, float)) and ttl < interval * 2:
        report.warnings.append(
            ValidationIssue(
                severity="warning",
                path="settings.poller.seen_ttl_seconds",
                message=(
                    "seen_ttl_seconds is shorter than two poll intervals; a single failed poll "
                    "can cause repeat notifications"
                ),
                code="seen-ttl",
            )
        )


def _timezone_problem(name: str) -> Optional[str]:
    try:
        ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return f"Unknown timezone '{name}'; use 'local', 'utc' or an IANA name such as 'Europe/Paris'"
    return None
