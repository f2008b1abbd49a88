"""Local subprocess execution shared by process-backed transports."""

import asyncio
import contextlib
import logging
from collections.abc import Mapping, Sequence

from policy_audit.errors import TargetConnectionError
from policy_audit.transports.models import CommandResult

log = logging.getLogger(__name__)


async def run_process(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    stdin: bytes | None = None,
) -> CommandResult:
    """Run an executable and capture its output.

    A non-zero exit status is returned as data. Only a missing executable is
    treated as a transport fault. Cancelling the call kills the child.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except FileNotFoundError as e:
        raise TargetConnectionError(f"Executable not found: {argv[0]}") from e

    try:
        stdout, stderr = await process.communicate(stdin)
    except asyncio.CancelledError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise

    assert process.returncode is not None
    return CommandResult(
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        exit_status=process.returncode,
    )
