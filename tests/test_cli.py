"""Tests for the vsbconf CLI."""
from __future__ import annotations

import base64
import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from vsbconf import __version__
from vsbconf.cli import app
from vsbconf.exit_codes import ExitCode

runner = CliRunner()


def test_version_flag() -> None:
    """The version flag prints the package version."""
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"vsbconf {__version__}" in result.stdout


def test_no_command_prints_help() -> None:
    """Running without a subcommand shows help and succeeds."""
    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "check" in result.stdout


def test_check_success(base_env: dict[str, str]) -> None:
    """A valid environment passes the check."""
    result = runner.invoke(app, ["check"], env=base_env)

    assert result.exit_code == ExitCode.OK
    assert "Configuration is valid." in result.stdout
    assert "example.com" in result.stdout


def test_check_reports_certificate(
    base_env: dict[str, str],
    tls_pair: tuple[Path, Path],
) -> None:
    """Manual TLS material is inspected and its subject shown."""
    cert_path, key_path = tls_pair
    env = {
        **base_env,
        "VSB_TLS_CERT_PATH": str(cert_path),
        "VSB_TLS_KEY_PATH": str(key_path),
    }

    result = runner.invoke(app, ["check"], env=env)

    assert result.exit_code == ExitCode.OK
    assert "CN=mail.example.com" in result.stdout


def test_check_validation_error_exit_code(base_env: dict[str, str]) -> None:
    """Configuration errors map to the validation exit code."""
    env = {**base_env, "VSB_SMTP_ALLOWED_RECIPIENT_DOMAINS": "invalid_domain"}

    result = runner.invoke(app, ["check"], env=env)

    assert result.exit_code == ExitCode.VALIDATION
    assert "invalid_domain" in result.output


def test_check_persistence_error_exit_code(tmp_path: Path) -> None:
    """An unwritable data path maps to the environment exit code."""
    blocker = tmp_path / "data"
    blocker.write_text("")
    env = {
        "VSB_SMTP_ALLOWED_RECIPIENT_DOMAINS": "example.com",
        "VSB_DATA_PATH": str(blocker),
        "VSB_LOCAL_API_KEY": None,
    }

    result = runner.invoke(app, ["check"], env=env)

    assert result.exit_code == ExitCode.ENVIRONMENT
    assert "Cannot persist auto-generated API key" in result.output


def test_check_reads_env_file(tmp_path: Path, data_dir: Path) -> None:
    """Variables from --env-file are overlaid on the process environment."""
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# gateway settings\n"
        "export VSB_SMTP_ALLOWED_RECIPIENT_DOMAINS=envfile.example.com\n"
        f'VSB_DATA_PATH="{data_dir}"\n'
        f"VSB_LOCAL_API_KEY='{'z' * 40}'\n"
    )

    result = runner.invoke(
        app,
        ["check", "--env-file", str(env_file)],
        env={"VSB_SMTP_ALLOWED_RECIPIENT_DOMAINS": "ignored.example.com"},
    )

    assert result.exit_code == ExitCode.OK
    assert "envfile.example.com" in result.stdout


def test_check_rejects_missing_env_file(tmp_path: Path) -> None:
    """An env file that does not exist is a validation error."""
    result = runner.invoke(app, ["check", "--env-file", str(tmp_path / "absent.env")])

    assert result.exit_code == ExitCode.VALIDATION
    assert "Cannot read environment file" in result.output


def test_show_env_file_with_inline_comment_and_escaped_quote(
    tmp_path: Path,
    base_env: dict[str, str],
) -> None:
    """Inline comments are stripped and escaped quotes unescaped."""
    env_file = tmp_path / ".env"
    env_file.write_text(
        "VSB_SMTP_PORT=2525  # listener port\n"
        'VSB_SMTP_BANNER="Say \\"hi\\""\n'
    )

    result = runner.invoke(app, ["show", "--env-file", str(env_file)], env=base_env)

    assert result.exit_code == ExitCode.OK
    payload = json.loads(result.stdout)
    assert payload["smtp"]["port"] == 2525
    assert payload["smtp"]["banner"] == 'Say "hi"'


def test_show_json(base_env: dict[str, str]) -> None:
    """The JSON snapshot is parseable and redacted."""
    result = runner.invoke(app, ["show"], env=base_env)

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["gateway_mode"] == "local"
    assert payload["smtp"]["allowed_recipient_domains"] == ["example.com"]
    assert payload["local"]["api_key"] == "***"


def test_show_yaml(base_env: dict[str, str]) -> None:
    """The YAML snapshot carries the same content."""
    result = runner.invoke(app, ["show", "--format", "yaml"], env=base_env)

    assert result.exit_code == 0
    payload = yaml.safe_load(result.stdout)
    assert payload["main"]["origin"] == "http://example.com"
    assert payload["webhook"]["enabled"] is True


def test_show_rejects_unknown_format(base_env: dict[str, str]) -> None:
    """Unsupported formats fail before any configuration is built."""
    result = runner.invoke(app, ["show", "--format", "toml"], env=base_env)

    assert result.exit_code == ExitCode.VALIDATION


def test_generate_key() -> None:
    """Generated keys decode to 32 bytes."""
    result = runner.invoke(app, ["generate-key"])

    assert result.exit_code == 0
    assert len(base64.b64decode(result.stdout.strip())) == 32
