from campusride.core.settings import Settings
from campusride.services.chat_relay import RelayPolicy


def test_settings_defaults_without_env():
    # Avoid reading any .env files during this test
    s = Settings(_env_file=None)

    assert s.ws_path == "/ws"
    assert s.ws_require_auth is True
    assert s.ws_broadcast_scope == "all"
    assert s.ws_error_frames is False
    assert s.secret_key.get_secret_value()


def test_settings_read_relay_env(monkeypatch):
    monkeypatch.setenv("CAMPUSRIDE_WS_BROADCAST_SCOPE", "ride")
    monkeypatch.setenv("CAMPUSRIDE_WS_REQUIRE_AUTH", "false")
    monkeypatch.setenv("CAMPUSRIDE_WS_MAX_MESSAGE_LENGTH", "140")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    s = Settings(_env_file=None)
    policy = RelayPolicy.from_settings(s)

    assert policy.broadcast_scope == "ride"
    assert policy.require_auth is False
    assert policy.max_message_length == 140
    assert s.resolved_log_level == "debug"
