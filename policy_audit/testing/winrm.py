"""SOAP response payloads for WinRM transport tests."""

import base64

from policy_audit.transports.winrm.soap import COMMAND_DONE, NAMESPACES

_OPEN = (
    f'<s:Envelope xmlns:s="{NAMESPACES["s"]}" xmlns:w="{NAMESPACES["w"]}" '
    f'xmlns:rsp="{NAMESPACES["rsp"]}"><s:Body>'
)
_CLOSE = "</s:Body></s:Envelope>"


def create_response(shell_id: str) -> str:
    return f"{_OPEN}<rsp:Shell><rsp:ShellId>{shell_id}</rsp:ShellId></rsp:Shell>{_CLOSE}"


def command_response(command_id: str) -> str:
    return (
        f"{_OPEN}<rsp:CommandResponse><rsp:CommandId>{command_id}</rsp:CommandId>"
        f"</rsp:CommandResponse>{_CLOSE}"
    )


def receive_response(
    command_id: str,
    stdout: str = "",
    stderr: str = "",
    exit_code: int | None = 0,
) -> str:
    """Receive response; ``exit_code=None`` leaves the command running."""
    streams = "".join(
        f'<rsp:Stream Name="{name}" CommandId="{command_id}">'
        f"{base64.b64encode(data.encode()).decode()}</rsp:Stream>"
        for name, data in (("stdout", stdout), ("stderr", stderr))
        if data
    )
    if exit_code is None:
        state = f'<rsp:CommandState CommandId="{command_id}" State="Running"/>'
    else:
        state = (
            f'<rsp:CommandState CommandId="{command_id}" State="{COMMAND_DONE}">'
            f"<rsp:ExitCode>{exit_code}</rsp:ExitCode></rsp:CommandState>"
        )
    return f"{_OPEN}<rsp:ReceiveResponse>{streams}{state}</rsp:ReceiveResponse>{_CLOSE}"


def fault_response(reason: str, code: str = "") -> str:
    return (
        f"{_OPEN}<s:Fault><s:Reason><s:Text>{reason}</s:Text></s:Reason>"
        f"<s:Detail>{code}</s:Detail></s:Fault>{_CLOSE}"
    )


EMPTY_RESPONSE = f"{_OPEN}{_CLOSE}"
