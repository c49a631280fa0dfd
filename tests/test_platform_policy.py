"""Unit tests for shell invocation policy."""

from __future__ import annotations

import pytest
from src.platform_policy import (
    OsFamily,
    detect_os_family,
    resolve_shell_invocation,
)


@pytest.mark.unit
def test_windows_uses_cmd_with_set() -> None:
    shell = resolve_shell_invocation(OsFamily.WINDOWS)

    args = shell.arguments(env_var="ADO_MCP_AUTH_TOKEN", value="s3cret", command="npx -y pkg")

    assert shell.executable == "cmd"
    assert args == ["/c", "set ADO_MCP_AUTH_TOKEN=s3cret && npx -y pkg"]


@pytest.mark.unit
def test_posix_uses_shell_with_export() -> None:
    shell = resolve_shell_invocation(OsFamily.POSIX)

    args = shell.arguments(env_var="ADO_MCP_AUTH_TOKEN", value="s3cret", command="npx -y pkg")

    assert shell.executable == "sh"
    assert args == ["-c", "export ADO_MCP_AUTH_TOKEN=s3cret && npx -y pkg"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("platform", "expected"),
    [
        ("win32", OsFamily.WINDOWS),
        ("cygwin", OsFamily.WINDOWS),
        ("linux", OsFamily.POSIX),
        ("darwin", OsFamily.POSIX),
    ],
)
def test_detect_os_family(platform: str, expected: OsFamily) -> None:
    assert detect_os_family(platform) is expected


@pytest.mark.unit
def test_posix_quotes_value_with_shell_syntax() -> None:
    shell = resolve_shell_invocation(OsFamily.POSIX)

    line = shell.command_line(env_var="ADO_MCP_AUTH_TOKEN", value="a;b $(id)", command="true")

    assert line == "export ADO_MCP_AUTH_TOKEN='a;b $(id)' && true"


@pytest.mark.unit
@pytest.mark.parametrize("value", ["a&calc", "a|more", "%PATH%", 'a"b', "a^b"])
def test_windows_rejects_cmd_metacharacters(value: str) -> None:
    shell = resolve_shell_invocation(OsFamily.WINDOWS)

    with pytest.raises(ValueError) as error_info:
        shell.command_line(env_var="ADO_MCP_AUTH_TOKEN", value=value, command="npx -y pkg")

    assert value not in str(error_info.value)
