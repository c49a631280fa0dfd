"""Shell invocation policy for launching tool-provider processes."""

from __future__ import annotations

import shlex
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

CMD_METACHARACTERS = frozenset('&|<>^%"()!\r\n')


class OsFamily(StrEnum):
    """Operating-system families that need distinct shell invocations."""

    WINDOWS = "windows"
    POSIX = "posix"


def reject_cmd_metacharacters(value: str) -> str:
    """Return ``value`` unchanged if ``cmd`` would read it as a literal.

    ``cmd`` has no quoting that survives ``set NAME=value``, so values holding
    operator or expansion characters are refused instead of escaped. The value
    itself is left out of the error because it may be a credential.
    """
    if CMD_METACHARACTERS.intersection(value):
        raise ValueError("value contains characters that cmd would interpret.")
    return value


@dataclass(frozen=True, slots=True)
class ShellInvocation:
    """Shell executable, flag, export keyword, and literal quoting for one OS family."""

    executable: str
    flag: str
    export_keyword: str
    quote: Callable[[str], str] = field(repr=False, compare=False)

    def command_line(self, *, env_var: str, value: str, command: str) -> str:
        """Build a composite line that assigns ``env_var`` and then runs ``command``.

        ``value`` is quoted for the shell; ``command`` is used as given, so any
        untrusted parts of it must already be passed through ``quote``.
        """
        return f"{self.export_keyword} {env_var}={self.quote(value)} && {command}"

    def arguments(self, *, env_var: str, value: str, command: str) -> list[str]:
        """Return the argument list passed to ``executable``."""
        return [self.flag, self.command_line(env_var=env_var, value=value, command=command)]


WINDOWS_SHELL = ShellInvocation(
    executable="cmd",
    flag="/c",
    export_keyword="set",
    quote=reject_cmd_metacharacters,
)
POSIX_SHELL = ShellInvocation(
    executable="sh",
    flag="-c",
    export_keyword="export",
    quote=shlex.quote,
)


def resolve_shell_invocation(os_family: OsFamily) -> ShellInvocation:
    """Return the shell invocation used to launch processes on ``os_family``."""
    if os_family is OsFamily.WINDOWS:
        return WINDOWS_SHELL
    return POSIX_SHELL


def detect_os_family(platform: str | None = None) -> OsFamily:
    """Map a ``sys.platform`` value to an OS family."""
    resolved_platform = platform if platform is not None else sys.platform
    if resolved_platform.startswith(("win32", "cygwin")):
        return OsFamily.WINDOWS
    return OsFamily.POSIX
