"""Tests for CLI commands."""

import json
import logging

import pytest
from click.testing import CliRunner

from mail_dispatch.cli import main


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for name in ("MAIL_CONFIG", "MAIL_ENVIRONMENT", "MAIL_SMTP_HOST", "MAIL_SMTP_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.ini"
    path.write_text(
        "[mail]\n"
        "environment = development\n"
        "from_email = shop@example.com\n"
        "\n"
        "[smtp]\n"
        "host = relay.test\n"
        "password = hunter2\n"
        "\n"
        "[development]\n"
        "recipients = dev@test.local\n"
    )
    return path


def test_config_masks_password(runner, config_file):
    result = runner.invoke(main, ["--config", str(config_file), "config"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["smtp_password"] == "********"
    assert data["development_recipients"] == ["dev@test.local"]


def test_missing_config_file(runner, tmp_path):
    result = runner.invoke(main, ["--config", str(tmp_path / "missing.ini"), "config"])

    assert result.exit_code == 1


def test_send_in_development_captures(runner, config_file, fake_network):
    result = runner.invoke(
        main,
        ["--config", str(config_file), "send", "customer@example.com", "-s", "Hello", "-b", "<p>Hi</p>",
         "-H", "X-Order: 42"],
    )

    assert result.exit_code == 0, result.output
    assert "Captured email" in result.output
    assert "dev@test.local" in result.output
    assert fake_network.calls == []


def test_send_with_attachment(runner, config_file, tmp_path):
    attachment = tmp_path / "report.txt"
    attachment.write_text("report")

    result = runner.invoke(
        main,
        ["--config", str(config_file), "send", "customer@example.com", "-s", "Report", "-b", "see attached",
         "--text", "--attach", str(attachment)],
    )

    assert result.exit_code == 0, result.output
    assert "report.txt" in result.output


def test_send_requires_body(runner, config_file):
    result = runner.invoke(main, ["--config", str(config_file), "send", "customer@example.com", "-s", "Hello"])

    assert result.exit_code == 1


def test_send_rejects_malformed_header(runner, config_file):
    result = runner.invoke(
        main, ["--config", str(config_file), "send", "a@example.com", "-s", "Hi", "-b", "x", "-H", "no-colon"]
    )

    assert result.exit_code == 1


def test_send_missing_attachment(runner, config_file, tmp_path):
    result = runner.invoke(
        main,
        ["--config", str(config_file), "send", "a@example.com", "-s", "Hi", "-b", "x",
         "--attach", str(tmp_path / "nope.pdf")],
    )

    assert result.exit_code == 1


def test_send_live_without_credentials_fails(runner, config_file, fake_network):
    result = runner.invoke(
        main,
        ["--config", str(config_file), "--environment", "production", "send", "a@example.com",
         "-s", "Hi", "-b", "x"],
    )

    assert result.exit_code == 1
    assert fake_network.calls == []


def test_check_in_development_is_a_no_op(runner, config_file, fake_network):
    result = runner.invoke(main, ["--config", str(config_file), "check"])

    assert result.exit_code == 0
    assert fake_network.calls == []


def test_check_live(runner, tmp_path, fake_network):
    path = tmp_path / "live.ini"
    path.write_text("[mail]\nenvironment = live\n\n[smtp]\nhost = relay.test\nport = 25\nencryption = none\nauth = false\n")
    fake_network.script("220 ready", "221 Bye")

    result = runner.invoke(main, ["--config", str(path), "check"])

    assert result.exit_code == 0, result.output
    assert fake_network.calls[0][0] == ("relay.test", 25)


def test_send_rejects_malformed_sender(runner, config_file, fake_network):
    result = runner.invoke(
        main,
        ["--config", str(config_file), "send", "a@example.com", "-s", "Hi", "-b", "x",
         "--from-email", "Shop <shop@example.com>"],
    )

    assert result.exit_code == 1
    assert fake_network.calls == []
