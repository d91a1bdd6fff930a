from pathlib import Path

import pytest

from wsclient.config import (
    DialOptions,
    SessionConfig,
    compile_filter,
    default_history_file,
    default_origin,
    validate_url,
)


def test_default_origin_follows_scheme():
    assert default_origin("ws://localhost:8080/ws") == "http://localhost:8080/ws"
    assert default_origin("wss://example.com/feed?x=1") == "https://example.com/feed?x=1"


def test_compile_filter_empty_means_no_filter():
    assert compile_filter("") is None
    assert compile_filter("^abc").search("abcdef")


def test_compile_filter_reports_bad_expression():
    with pytest.raises(ValueError, match=r"^compiling regexp '\}\]\)\^\$jkh' error: "):
        compile_filter("}])^$jkh")


@pytest.mark.parametrize("url", ["\n", "http://localhost:8080", "ws://", "localhost:8080"])
def test_validate_url_rejects_undialable(url):
    with pytest.raises(ValueError):
        validate_url(url)


def test_validate_url_accepts_ws_and_wss():
    assert validate_url("ws://localhost:8080/ws") == "ws://localhost:8080/ws"
    assert validate_url("wss://example.com") == "wss://example.com"


def test_echo_follows_timestamps_unless_overridden():
    assert SessionConfig().should_echo_sent is False
    assert SessionConfig(show_timestamps=True).should_echo_sent is True
    assert SessionConfig(echo_sent=True).should_echo_sent is True
    assert SessionConfig(show_timestamps=True, echo_sent=False).should_echo_sent is False


def test_negative_interval_rejected():
    with pytest.raises(ValueError):
        SessionConfig(heartbeat_interval=-1)


def test_config_is_immutable():
    config = SessionConfig()
    with pytest.raises(AttributeError):
        config.show_timestamps = True


def test_dial_options_secure_flag():
    assert DialOptions(url="wss://example.com").is_secure
    assert not DialOptions(url="ws://example.com").is_secure


def test_history_file_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("WSDUPLEX_HISTORY", str(tmp_path / "hist"))
    assert default_history_file() == tmp_path / "hist"
    monkeypatch.setenv("WSDUPLEX_HISTORY", "")
    assert default_history_file() is None
    monkeypatch.delenv("WSDUPLEX_HISTORY")
    assert default_history_file() == Path.home() / ".wsduplex_history"
