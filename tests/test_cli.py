import pytest
from typer.testing import CliRunner

from wsclient.cli import app, parse_duration

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_history(monkeypatch):
    monkeypatch.setenv("WSDUPLEX_HISTORY", "")


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == "wsduplex v.0.3.0"


def test_missing_url_prints_usage_and_fails():
    result = runner.invoke(app, [])
    assert result.exit_code == 1
    assert "Usage" in result.output


def test_bad_filter_is_rejected_before_dialing():
    result = runner.invoke(app, ["ws://localhost:8080/ws", "--filter", "}])^$jkh"])
    assert result.exit_code == 1
    assert "compiling regexp '}])^$jkh' error" in result.output


@pytest.mark.parametrize("url", ["http://localhost:8080/ws", "ws://"])
def test_bad_url_is_rejected(url):
    result = runner.invoke(app, [url])
    assert result.exit_code == 1


def test_unreachable_server_exits_with_error():
    result = runner.invoke(app, ["ws://127.0.0.1:1/ws"])
    assert result.exit_code == 1
    assert result.output.strip()


@pytest.mark.parametrize(
    "raw, seconds",
    [("20s", 20.0), ("500ms", 0.5), ("1m30s", 90.0), ("2", 2.0), ("1.5h", 5400.0)],
)
def test_duration_values(raw, seconds):
    assert parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["", "abc", "10x", "s10"])
def test_invalid_durations(raw):
    with pytest.raises(ValueError, match="invalid duration"):
        parse_duration(raw)


def test_invalid_interval_flag():
    result = runner.invoke(app, ["ws://localhost:8080/ws", "--interval", "soon"])
    assert result.exit_code == 2
    assert "invalid duration 'soon'" in result.output


def test_interval_flag_accepts_durations():
    result = runner.invoke(app, ["ws://127.0.0.1:1/ws", "--interval", "1m30s"])
    # gets past option parsing and fails on the dial instead
    assert result.exit_code == 1
    assert "Invalid value" not in result.output


def test_help_states_exit_code_rule():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "graceful close" in " ".join(result.output.split())
