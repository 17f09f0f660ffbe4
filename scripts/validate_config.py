"""
======================================================================
 Playtest Herald | Configuration Validation
======================================================================

Configuration validation script.

Validates shared/config/bot.json and the tutorial catalog (searchData.json)
against minimal runtime expectations.

Design rules:
- No side effects on import
- No runtime startup
- Validation only (no mutation)
- Forward-compatible: unknown fields are ignored
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shared.config.bot import DEMO_TRANSPORTS, config_path, parse_id  # noqa: E402


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"{path.name}: invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: root JSON value must be an object")
    return data


def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_bot_config(data: Dict[str, Any]) -> List[str]:
    """
    Validate the parsed contents of bot.json. Missing sections are allowed;
    present sections must have the right shape.
    """
    errors: List[str] = []

    announcer = data.get("announcer", {})
    if not isinstance(announcer, dict):
        errors.append("'announcer' must be an object")
        announcer = {}

    for key in ("announcement_channel_id", "testing_channel_id"):
        if key in announcer and announcer[key] is not None and parse_id(announcer[key]) is None:
            errors.append(f"'announcer.{key}' must be a Discord snowflake id")

    for key in ("poll_interval_ticks", "tick_seconds"):
        if key not in announcer:
            continue
        value = announcer[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            errors.append(f"'announcer.{key}' must be a positive integer")

    zone = announcer.get("display_timezone")
    if zone is not None:
        try:
            ZoneInfo(str(zone))
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"'announcer.display_timezone' is not a known zone: {zone!r}")

    servers = data.get("servers", [])
    if not isinstance(servers, list):
        errors.append("'servers' must be a list")
        servers = []

    seen = set()
    for i, server in enumerate(servers):
        if not isinstance(server, dict):
            errors.append(f"'servers[{i}]' must be an object")
            continue
        server_id = server.get("id")
        if not server_id:
            errors.append(f"'servers[{i}].id' is required")
        elif server_id in seen:
            errors.append(f"duplicate server id {server_id!r}")
        seen.add(server_id)
        if not server.get("address"):
            errors.append(f"'servers[{i}].address' is required")
        transport = server.get("transport", "ftp")
        if transport not in DEMO_TRANSPORTS:
            errors.append(
                f"'servers[{i}].transport' must be one of {', '.join(DEMO_TRANSPORTS)}"
            )

    admins = data.get("admins", [])
    if not isinstance(admins, list) or any(parse_id(a) is None for a in admins):
        errors.append("'admins' must be a list of Discord user ids")

    return errors


def validate_catalog(data: Dict[str, Any]) -> List[str]:
    """
    Validate the tutorial catalog shape:
    {"series": [{"tutorial": [{"url": str, "tags": [str, ...]}]}]}
    """
    errors: List[str] = []

    series = data.get("series")
    if not isinstance(series, list):
        return ["'series' must be a list"]

    for i, entry in enumerate(series):
        tutorials = entry.get("tutorial") if isinstance(entry, dict) else None
        if not isinstance(tutorials, list):
            errors.append(f"'series[{i}].tutorial' must be a list")
            continue
        for j, tutorial in enumerate(tutorials):
            where = f"series[{i}].tutorial[{j}]"
            if not isinstance(tutorial, dict) or not tutorial.get("url"):
                errors.append(f"'{where}.url' is required")
                continue
            tags = tutorial.get("tags", [])
            if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
                errors.append(f"'{where}.tags' must be a list of strings")

    return errors


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main() -> int:
    ok = True

    path = config_path()
    try:
        bot_data = _load_json(path)
    except ValueError as e:
        _error(str(e))
        return 1

    for message in validate_bot_config(bot_data):
        _error(f"{path.name}: {message}")
        ok = False

    search_cfg = bot_data.get("search", {})
    catalog_name = search_cfg.get("catalog_path", "searchData.json") if isinstance(search_cfg, dict) else "searchData.json"
    catalog_path = Path(catalog_name)
    if not catalog_path.is_absolute():
        catalog_path = ROOT / catalog_path

    if catalog_path.exists():
        try:
            catalog = _load_json(catalog_path)
        except ValueError as e:
            _error(str(e))
            return 1
        for message in validate_catalog(catalog):
            _error(f"{catalog_path.name}: {message}")
            ok = False
    else:
        print(f"Tutorial catalog {catalog_path} not found; search will return nothing.")

    if not ok:
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    print("Configuration validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
