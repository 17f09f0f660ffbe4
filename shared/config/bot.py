"""
Bot configuration loader.

Design rules:
- Import-safe (no side effects)
- Secrets come from the environment (.env), everything else from bot.json
- Invalid values are ignored per-key with a warning, never fatal
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.logging.logger import get_logger

log = get_logger("shared.config.bot")

_CONFIG_PATH = Path(__file__).parent / "bot.json"

DEFAULT_POLL_INTERVAL_TICKS = 2
DEFAULT_TICK_SECONDS = 60
DEMO_TRANSPORTS = ("ftp", "ftps", "local")


@dataclass
class AnnouncerConfig:
    announcement_channel_id: Optional[int] = None
    testing_channel_id: Optional[int] = None
    playtester_role: str = "Playtester"
    poll_interval_ticks: int = DEFAULT_POLL_INTERVAL_TICKS
    tick_seconds: int = DEFAULT_TICK_SECONDS
    display_timezone: str = "America/Chicago"


@dataclass
class CalendarConfig:
    calendar_id: str = ""
    api_key: str = ""
    timeout_seconds: float = 15.0


@dataclass
class SiteConfig:
    playtesting_url: str = "https://www.tophattwaffle.com/playtesting/"
    tutorials_url: str = "https://www.tophattwaffle.com/tutorials/"
    faq_url: str = "http://tophattwaffle.com/faq"
    icon_url: str = (
        "https://cdn.discordapp.com/icons/111951182947258368/"
        "0e82dec99052c22abfbe989ece074cf5.png"
    )
    logo_url: str = (
        "https://www.tophattwaffle.com/wp-content/uploads/2017/11/1024_png-300x300.png"
    )
    header_image_url: str = (
        "https://www.tophattwaffle.com/wp-content/uploads/2017/11/header.png"
    )


@dataclass
class SearchConfig:
    catalog_path: str = "searchData.json"
    faq_search_url: str = (
        "https://www.tophattwaffle.com/wp-admin/admin-ajax.php"
        "?action=epkb-search-kb&epkb_kb_id=1&search_words="
    )
    site_domain: str = "tophattwaffle"
    timeout_seconds: float = 15.0


@dataclass
class GameServer:
    server_id: str
    address: str
    transport: str = "ftp"
    remote_path: str = ""
    username: str = ""
    password: str = ""


@dataclass
class BotConfig:
    announcer: AnnouncerConfig = field(default_factory=AnnouncerConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    site: SiteConfig = field(default_factory=SiteConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    servers: List[GameServer] = field(default_factory=list)
    admins: List[int] = field(default_factory=list)
    log_channel_id: Optional[int] = None
    demo_path: str = "demos"

    def server(self, server_id: str) -> Optional[GameServer]:
        wanted = server_id.strip().lower()
        for entry in self.servers:
            if entry.server_id.lower() == wanted:
                return entry
        return None


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def config_path() -> Path:
    override = os.getenv("HERALD_CONFIG")
    return Path(override) if override else _CONFIG_PATH


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        log.warning(f"bot.json not found at {path}; using defaults")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            log.warning("bot.json root is not an object; using defaults")
    except (OSError, ValueError) as e:
        log.warning(f"Failed to load bot.json ({e}); using defaults")

    return {}


def parse_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return int(raw)
    return None


def _positive_int(raw: Dict[str, Any], key: str, default: int) -> int:
    if key not in raw:
        return default
    value = raw.get(key)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = 0
    if isinstance(value, bool) or parsed < 1:
        log.warning(f"Key {key!r} not valid ({value!r}); using default {default}")
        return default
    return parsed


def _load_announcer(raw: Any) -> AnnouncerConfig:
    if not isinstance(raw, dict):
        return AnnouncerConfig()

    return AnnouncerConfig(
        announcement_channel_id=parse_id(raw.get("announcement_channel_id")),
        testing_channel_id=parse_id(raw.get("testing_channel_id")),
        playtester_role=str(raw.get("playtester_role", AnnouncerConfig.playtester_role)),
        poll_interval_ticks=_positive_int(
            raw, "poll_interval_ticks", DEFAULT_POLL_INTERVAL_TICKS
        ),
        tick_seconds=_positive_int(raw, "tick_seconds", DEFAULT_TICK_SECONDS),
        display_timezone=str(
            raw.get("display_timezone", AnnouncerConfig.display_timezone)
        ),
    )


def _load_calendar(raw: Any) -> CalendarConfig:
    raw = raw if isinstance(raw, dict) else {}
    timeout = raw.get("timeout_seconds", CalendarConfig.timeout_seconds)
    try:
        timeout_value = float(timeout)
    except (TypeError, ValueError):
        timeout_value = CalendarConfig.timeout_seconds

    return CalendarConfig(
        calendar_id=str(raw.get("calendar_id", "")),
        api_key=os.getenv("GOOGLE_CALENDAR_API_KEY", ""),
        timeout_seconds=timeout_value,
    )


def _load_dataclass(cls, raw: Any):
    if not isinstance(raw, dict):
        return cls()
    known = {k: str(v) for k, v in raw.items() if k in cls.__dataclass_fields__}
    return cls(**known)


def _load_servers(raw: Any) -> List[GameServer]:
    if not isinstance(raw, list):
        return []

    servers: List[GameServer] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        server_id = entry.get("id") or entry.get("server_id")
        address = entry.get("address")
        if not server_id or not address:
            log.warning(f"Ignoring server entry without id/address: {entry!r}")
            continue

        transport = str(entry.get("transport", "ftp")).lower()
        if transport not in DEMO_TRANSPORTS:
            log.warning(f"Server {server_id!r} has unknown transport {transport!r}; skipping")
            continue

        password_env = entry.get("password_env")
        password = os.getenv(password_env, "") if password_env else ""

        servers.append(
            GameServer(
                server_id=str(server_id),
                address=str(address),
                transport=transport,
                remote_path=str(entry.get("remote_path", "")),
                username=str(entry.get("username", "")),
                password=password,
            )
        )
    return servers


def load_bot_config(raw: Optional[Dict[str, Any]] = None) -> BotConfig:
    raw = raw if raw is not None else _load_json(config_path())

    admins_raw = raw.get("admins", [])
    admins: List[int] = []
    if isinstance(admins_raw, list):
        for entry in admins_raw:
            admin_id = parse_id(entry)
            if admin_id is not None:
                admins.append(admin_id)

    return BotConfig(
        announcer=_load_announcer(raw.get("announcer")),
        calendar=_load_calendar(raw.get("calendar")),
        site=_load_dataclass(SiteConfig, raw.get("site")),
        search=_load_search(raw.get("search")),
        servers=_load_servers(raw.get("servers")),
        admins=admins,
        log_channel_id=parse_id(raw.get("log_channel_id")),
        demo_path=str(raw.get("demo_path", BotConfig.demo_path)),
    )


def _load_search(raw: Any) -> SearchConfig:
    if not isinstance(raw, dict):
        return SearchConfig()

    timeout = raw.get("timeout_seconds", SearchConfig.timeout_seconds)
    try:
        timeout_value = float(timeout)
    except (TypeError, ValueError):
        timeout_value = SearchConfig.timeout_seconds

    return SearchConfig(
        catalog_path=str(raw.get("catalog_path", SearchConfig.catalog_path)),
        faq_search_url=str(raw.get("faq_search_url", SearchConfig.faq_search_url)),
        site_domain=str(raw.get("site_domain", SearchConfig.site_domain)),
        timeout_seconds=timeout_value,
    )
