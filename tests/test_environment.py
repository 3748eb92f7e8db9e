"""Tests for environment sources and the dotenv file reader."""
from __future__ import annotations

from pathlib import Path

import pytest

from vsbconf.environment import read_env_file, resolve_environment
from vsbconf.errors import InvalidFormatError


def test_resolve_environment_copies_process_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """The process environment is snapshotted when no mapping is given."""
    monkeypatch.setenv("VSB_SMTP_PORT", "2525")

    source = resolve_environment()
    monkeypatch.setenv("VSB_SMTP_PORT", "25")

    assert source.get("VSB_SMTP_PORT") == "2525"


def test_resolve_environment_uses_explicit_mapping() -> None:
    """An explicit mapping replaces the process environment entirely."""
    source = resolve_environment({"VSB_SMTP_HOST": "127.0.0.1"})

    assert source.get("VSB_SMTP_HOST") == "127.0.0.1"
    assert source.get("PATH") is None


def test_read_env_file_strips_inline_comments(tmp_path: Path) -> None:
    """A trailing ``# comment`` on an unquoted value is not part of it."""
    env_file = tmp_path / ".env"
    env_file.write_text("VSB_SMTP_PORT=2525  # listener port\n")

    assert read_env_file(env_file) == {"VSB_SMTP_PORT": "2525"}


def test_read_env_file_unescapes_double_quotes(tmp_path: Path) -> None:
    """Escaped quotes inside a double-quoted value are unescaped."""
    env_file = tmp_path / ".env"
    env_file.write_text('VSB_SMTP_BANNER="Say \\"hi\\""\n')

    assert read_env_file(env_file) == {"VSB_SMTP_BANNER": 'Say "hi"'}


def test_read_env_file_common_syntax(tmp_path: Path) -> None:
    """Comments, ``export`` prefixes and single quotes follow dotenv rules."""
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# gateway\n"
        "\n"
        "export VSB_GATEWAY_MODE=local\n"
        "VSB_SMTP_BANNER='Hello # not a comment'\n"
    )

    assert read_env_file(env_file) == {
        "VSB_GATEWAY_MODE": "local",
        "VSB_SMTP_BANNER": "Hello # not a comment",
    }


def test_read_env_file_drops_keys_without_value(tmp_path: Path) -> None:
    """A bare key does not override anything with an empty value."""
    env_file = tmp_path / ".env"
    env_file.write_text("VSB_DEVELOPMENT\nVSB_CHAOS_ENABLED=true\n")

    assert read_env_file(env_file) == {"VSB_CHAOS_ENABLED": "true"}


def test_read_env_file_missing_file(tmp_path: Path) -> None:
    """A path that is not a readable file is a format error."""
    with pytest.raises(InvalidFormatError, match="Cannot read environment file"):
        read_env_file(tmp_path / "absent.env")

    with pytest.raises(InvalidFormatError):
        read_env_file(tmp_path)
