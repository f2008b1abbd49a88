"""Shell argument quoting for the command dialects targets understand."""

import re
import shlex
import subprocess
from collections.abc import Sequence
from enum import StrEnum

# cmd.exe interprets these even inside an argv-quoted string
CMD_METACHARS = re.compile(r'([()%!^"<>&|])')

# PowerShell treats typographic single quotes like ASCII ones
POWERSHELL_QUOTES = re.compile("(['‘’‚‛])")


class ShellDialect(StrEnum):
    """Command interpreter on the receiving end of a transport."""

    POSIX = "posix"
    POWERSHELL = "powershell"
    CMD = "cmd"


def quote(arg: str, dialect: ShellDialect) -> str:
    """Quote a single argument so the target shell sees it as one word."""
    match dialect:
        case ShellDialect.POSIX:
            return shlex.quote(arg)
        case ShellDialect.POWERSHELL:
            return "'" + POWERSHELL_QUOTES.sub(r"\1\1", arg) + "'"
        case ShellDialect.CMD:
            return CMD_METACHARS.sub(r"^\1", subprocess.list2cmdline([arg]) or '""')


def join(argv: Sequence[str], dialect: ShellDialect) -> str:
    """Build a command line from an argument vector."""
    if dialect is ShellDialect.POWERSHELL and argv:
        # the first word must be invoked, a quoted string alone is just a value
        return "& " + " ".join(quote(arg, dialect) for arg in argv)
    return " ".join(quote(arg, dialect) for arg in argv)
