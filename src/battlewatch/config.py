from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigError
from .utils import env_str, load_yaml_file, validate_url
from .validation import validate_config_data

FEED_PRESETS: dict[str, str] = {
    "sepolia": "https://api.cartridge.gg/x/sepolia-rc-16/torii/graphql",
    "mainnet": "https://api.cartridge.gg/x/realms-world-5/torii/graphql",
}

DEFAULT_PERMANENT_MARKERS = ("blocked", "not found", "deactivated")


@dataclass
class FeedSettings:
    url: str = FEED_PRESETS["sepolia"]
    timeout: float = 15.0
    max_retries: int = 3


@dataclass
class PollerSettings:
    interval_seconds: float = 10.0
    seen_ttl_seconds: float | None = None  # None keeps every battle id for the process lifetime


@dataclass
class TelegramSettings:
    bot_token: str | None = None
    api_base: str = "https://api.telegram.org"
    rich_formatting: bool = True
    suppress_link_preview: bool = True
    timeout: float = 10.0


@dataclass
class DeliverySettings:
    permanent_markers: list[str] = field(default_factory=lambda: list(DEFAULT_PERMANENT_MARKERS))


@dataclass
class DirectorySettings:
    path: Path = Path("./data/subscribers.db")


@dataclass
class RenderSettings:
    timezone: str = "local"  # local | utc | IANA zone name

    def tzinfo(self) -> dt.tzinfo | None:
        """Return the zone timestamps are rendered in, or None for the host's local time."""
        return _resolve_timezone(self.timezone)


@dataclass
class Settings:
    feed: FeedSettings = field(default_factory=FeedSettings)
    poller: PollerSettings = field(default_factory=PollerSettings)
    telegram: TelegramSettings = field(default_factory=TelegramSettings)
    delivery: DeliverySettings = field(default_factory=DeliverySettings)
    directory: DirectorySettings = field(default_factory=DirectorySettings)
    render: RenderSettings = field(default_factory=RenderSettings)


def _resolve_timezone(name: str) -> dt.tzinfo | None:
    key = name.strip()
    if key.lower() == "local":
        return None
    if key.lower() == "utc":
        return dt.timezone.utc
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"'render.timezone' is not a known timezone: {name}") from exc


def resolve_feed_url(value: str) -> str:
    """Map a preset name (``sepolia``/``mainnet``) to its endpoint; literal URLs pass through."""
    preset = FEED_PRESETS.get(value.strip().lower())
    return preset or value.strip()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{name}' must be provided as a mapping when specified")
    return raw


def _positive_float(value: Any, *, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{field_name}' must be a number") from exc
    if number <= 0:
        raise ConfigError(f"'{field_name}' must be greater than 0")
    return number


def _build_feed_settings(data: dict[str, Any]) -> FeedSettings:
    defaults = FeedSettings()
    url = resolve_feed_url(str(data.get("url") or defaults.url))
    if not validate_url(url):
        raise ConfigError(f"'feed.url' must be a valid http/https URL or preset name, got: {url}")
    try:
        max_retries = int(data.get("max_retries", defaults.max_retries))
    except (TypeError, ValueError) as exc:
        raise ConfigError("'feed.max_retries' must be an integer") from exc
    if max_retries < 1:
        raise ConfigError("'feed.max_retries' must be at least 1")
    return FeedSettings(
        url=url,
        timeout=_positive_float(data.get("timeout", defaults.timeout), field_name="feed.timeout"),
        max_retries=max_retries,
    )


def _build_poller_settings(data: dict[str, Any]) -> PollerSettings:
    interval = _positive_float(data.get("interval_seconds", 10.0), field_name="poller.interval_seconds")
    ttl_raw = data.get("seen_ttl_seconds")
    ttl = None if ttl_raw is None else _positive_float(ttl_raw, field_name="poller.seen_ttl_seconds")
    return PollerSettings(interval_seconds=interval, seen_ttl_seconds=ttl)


def _build_telegram_settings(data: dict[str, Any]) -> TelegramSettings:
    defaults = TelegramSettings()
    token = data.get("bot_token")
    token = str(token).strip() if token is not None else ""
    # ${TELEGRAM_BOT_TOKEN} survives expandvars untouched when the variable is unset
    if token.startswith("${"):
        token = ""
    api_base = str(data.get("api_base") or defaults.api_base).rstrip("/")
    if not validate_url(api_base):
        raise ConfigError(f"'telegram.api_base' must be a valid http/https URL, got: {api_base}")
    return TelegramSettings(
        bot_token=token or None,
        api_base=api_base,
        rich_formatting=bool(data.get("rich_formatting", defaults.rich_formatting)),
        suppress_link_preview=bool(data.get("suppress_link_preview", defaults.suppress_link_preview)),
        timeout=_positive_float(data.get("timeout", defaults.timeout), field_name="telegram.timeout"),
    )


def _build_delivery_settings(data: dict[str, Any]) -> DeliverySettings:
    raw = data.get("permanent_markers")
    if raw is None:
        return DeliverySettings()
    if not isinstance(raw, list):
        raise ConfigError("'delivery.permanent_markers' must be a list of strings")
    markers = [str(item).strip().lower() for item in raw if str(item).strip()]
    if not markers:
        raise ConfigError("'delivery.permanent_markers' must contain at least one marker")
    return DeliverySettings(permanent_markers=markers)


def _build_directory_settings(data: dict[str, Any]) -> DirectorySettings:
    raw_path = data.get("path")
    if raw_path is None:
        return DirectorySettings()
    return DirectorySettings(path=Path(str(raw_path)).expanduser())


def _build_render_settings(data: dict[str, Any]) -> RenderSettings:
    render = RenderSettings(timezone=str(data.get("timezone", "local")))
    # Fail at startup rather than on the first battle
    render.tzinfo()
    return render


def _build_settings(data: dict[str, Any]) -> Settings:
    return Settings(
        feed=_build_feed_settings(_section(data, "feed")),
        poller=_build_poller_settings(_section(data, "poller")),
        telegram=_build_telegram_settings(_section(data, "telegram")),
        delivery=_build_delivery_settings(_section(data, "delivery")),
        directory=_build_directory_settings(_section(data, "directory")),
        render=_build_render_settings(_section(data, "render")),
    )


def apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables onto the raw ``settings`` mapping."""
    overrides = {
        ("feed", "url"): env_str("BATTLEWATCH_FEED_URL"),
        ("telegram", "bot_token"): env_str("TELEGRAM_BOT_TOKEN"),
        ("poller", "interval_seconds"): env_str("BATTLEWATCH_POLL_INTERVAL"),
        ("directory", "path"): env_str("BATTLEWATCH_DB_PATH"),
        ("render", "timezone"): env_str("BATTLEWATCH_TIMEZONE"),
    }
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in data.items()}
    for (section, key), value in overrides.items():
        if value is None:
            continue
        current = merged.get(section)
        if not isinstance(current, dict):
            current = {}
        current[key] = value
        merged[section] = current
    return merged


def build_settings(raw: dict[str, Any]) -> Settings:
    """Build settings from an already-loaded configuration mapping."""
    settings_raw = raw.get("settings") or {}
    if not isinstance(settings_raw, dict):
        raise ConfigError("'settings' must be provided as a mapping")
    return _build_settings(apply_env_overrides(settings_raw))


def load_config(path: Path) -> Settings:
    try:
        data = load_yaml_file(path)
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file {path} is not valid YAML: {exc}") from exc

    report = validate_config_data(data)
    if not report.is_valid:
        details = "; ".join(f"{issue.path}: {issue.message}" for issue in report.errors)
        raise ConfigError(f"Invalid configuration in {path}: {details}")
    return build_settings(data)
