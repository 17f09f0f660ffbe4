import json

from shared.config.bot import (
    DEFAULT_POLL_INTERVAL_TICKS,
    BotConfig,
    load_bot_config,
    parse_id,
)
from scripts.validate_config import main as validate_main, validate_bot_config, validate_catalog


def test_empty_config_uses_defaults():
    config = load_bot_config({})

    assert isinstance(config, BotConfig)
    assert config.announcer.poll_interval_ticks == DEFAULT_POLL_INTERVAL_TICKS
    assert config.announcer.announcement_channel_id is None
    assert config.announcer.playtester_role == "Playtester"
    assert config.servers == []
    assert config.admins == []


def test_invalid_poll_interval_falls_back_to_two():
    for bad in (0, -3, "soon", None, True):
        config = load_bot_config({"announcer": {"poll_interval_ticks": bad}})
        assert config.announcer.poll_interval_ticks == 2


def test_full_config(monkeypatch):
    monkeypatch.setenv("GOOGLE_CALENDAR_API_KEY", "cal-key")
    monkeypatch.setenv("FTP_PASSWORD_CAN", "hunter2")

    config = load_bot_config(
        {
            "announcer": {
                "announcement_channel_id": "305741262592229377",
                "testing_channel_id": 362321637426429952,
                "poll_interval_ticks": 5,
                "tick_seconds": 30,
            },
            "calendar": {"calendar_id": "cal@example.com"},
            "servers": [
                {
                    "id": "can",
                    "address": "can.example:27015",
                    "transport": "FTPS",
                    "password_env": "FTP_PASSWORD_CAN",
                },
                {"id": "broken"},
                {"id": "odd", "address": "odd.example", "transport": "carrier-pigeon"},
            ],
            "admins": ["111", 222, "not-an-id"],
            "log_channel_id": "333",
        }
    )

    assert config.announcer.announcement_channel_id == 305741262592229377
    assert config.announcer.testing_channel_id == 362321637426429952
    assert config.announcer.poll_interval_ticks == 5
    assert config.announcer.tick_seconds == 30
    assert config.calendar.api_key == "cal-key"
    assert [s.server_id for s in config.servers] == ["can"]
    assert config.server("CAN").password == "hunter2"
    assert config.server("CAN").transport == "ftps"
    assert config.server("nope") is None
    assert config.admins == [111, 222]
    assert config.log_channel_id == 333


def test_config_file_override(tmp_path, monkeypatch):
    path = tmp_path / "bot.json"
    path.write_text(json.dumps({"demo_path": "/srv/demos"}), encoding="utf-8")
    monkeypatch.setenv("HERALD_CONFIG", str(path))

    assert load_bot_config().demo_path == "/srv/demos"


def test_parse_id():
    assert parse_id("42") == 42
    assert parse_id(42) == 42
    assert parse_id(True) is None
    assert parse_id("4x2") is None


def test_validate_bot_config_reports_problems():
    errors = validate_bot_config(
        {
            "announcer": {"poll_interval_ticks": 0, "display_timezone": "Nowhere/Land"},
            "servers": [{"id": "a"}, {"id": "a", "address": "x", "transport": "scp"}],
        }
    )

    assert "'announcer.poll_interval_ticks' must be a positive integer" in errors
    assert any("display_timezone" in e for e in errors)
    assert "'servers[0].address' is required" in errors
    assert "duplicate server id 'a'" in errors
    assert any("servers[1].transport" in e for e in errors)


def test_validate_shipped_config_is_clean():
    from shared.config.bot import _CONFIG_PATH

    data = json.loads(_CONFIG_PATH.read_text(encoding="utf-8"))

    assert validate_bot_config(data) == []


def test_validate_catalog():
    assert validate_catalog({"series": [{"tutorial": [{"url": "u", "tags": ["a"]}]}]}) == []
    assert validate_catalog({"series": [{"tutorial": [{"tags": ["a"]}]}]}) == [
        "'series[0].tutorial[0].url' is required"
    ]
    assert validate_catalog({}) == ["'series' must be a list"]


def test_validate_script_main(tmp_path, monkeypatch, capsys):
    catalog = tmp_path / "searchData.json"
    catalog.write_text(
        json.dumps({"series": [{"tutorial": [{"url": "https://example.com/a", "tags": ["skybox"]}]}]}),
        encoding="utf-8",
    )
    path = tmp_path / "bot.json"
    path.write_text(
        json.dumps({"announcer": {"poll_interval_ticks": 2}, "search": {"catalog_path": str(catalog)}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("HERALD_CONFIG", str(path))

    assert validate_main() == 0
    assert "Configuration validation passed." in capsys.readouterr().out

    path.write_text(json.dumps({"announcer": {"tick_seconds": 0}}), encoding="utf-8")

    assert validate_main() == 1
    assert "tick_seconds" in capsys.readouterr().err
