"""WS-Management SOAP messages for the remote shell protocol."""

import base64
import re
import uuid
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass
from xml.sax.saxutils import escape

NAMESPACES = {
    "s": "http://www.w3.org/2003/05/soap-envelope",
    "a": "http://schemas.xmlsoap.org/ws/2004/08/addressing",
    "w": "http://schemas.dmtf.org/wbem/wsman/1/wsman.xsd",
    "p": "http://schemas.microsoft.com/wbem/wsman/1/wsman.xsd",
    "rsp": "http://schemas.microsoft.com/wbem/wsman/1/windows/shell",
}

SHELL_URI = "http://schemas.microsoft.com/wbem/wsman/1/windows/shell"
RESOURCE_URI = f"{SHELL_URI}/cmd"
ACTION_CREATE = "http://schemas.xmlsoap.org/ws/2004/09/transfer/Create"
ACTION_DELETE = "http://schemas.xmlsoap.org/ws/2004/09/transfer/Delete"
ACTION_COMMAND = f"{SHELL_URI}/Command"
ACTION_RECEIVE = f"{SHELL_URI}/Receive"
ACTION_SIGNAL = f"{SHELL_URI}/Signal"
SIGNAL_TERMINATE = f"{SHELL_URI}/signal/terminate"
COMMAND_DONE = f"{SHELL_URI}/CommandState/Done"

# WSManFault code returned when Receive sees no output within OperationTimeout
RECEIVE_TIMEOUT_CODE = "2150858793"

ANONYMOUS = "http://schemas.xmlsoap.org/ws/2004/08/addressing/role/anonymous"

ENVELOPE = """<s:Envelope xmlns:s="{s}" xmlns:a="{a}" xmlns:w="{w}" xmlns:p="{p}" xmlns:rsp="{rsp}">
<s:Header>
<a:To>{endpoint}</a:To>
<a:ReplyTo><a:Address s:mustUnderstand="true">{anonymous}</a:Address></a:ReplyTo>
<w:MaxEnvelopeSize s:mustUnderstand="true">153600</w:MaxEnvelopeSize>
<a:MessageID>uuid:{message_id}</a:MessageID>
<w:Locale xml:lang="en-US" s:mustUnderstand="false"/>
<p:DataLocale xml:lang="en-US" s:mustUnderstand="false"/>
<w:OperationTimeout>PT{timeout}S</w:OperationTimeout>
<w:ResourceURI s:mustUnderstand="true">{resource_uri}</w:ResourceURI>
<a:Action s:mustUnderstand="true">{action}</a:Action>
{selectors}{options}
</s:Header>
<s:Body>{body}</s:Body>
</s:Envelope>"""

CLIXML_ERROR = re.compile(r'<S S="Error">(.*?)</S>', re.DOTALL)
CLIXML_ESCAPE = re.compile(r"_x([0-9A-Fa-f]{4})_")


@dataclass(frozen=True, kw_only=True)
class ReceiveChunk:
    """Output collected by one Receive round trip."""

    stdout: bytes
    stderr: bytes
    done: bool
    exit_code: int | None


def envelope(
    endpoint: str,
    action: str,
    body: str = "",
    *,
    timeout: int,
    shell_id: str | None = None,
    options: dict[str, str] | None = None,
) -> str:
    selectors = ""
    if shell_id is not None:
        selectors = (
            "<w:SelectorSet>"
            f'<w:Selector Name="ShellId">{escape(shell_id)}</w:Selector>'
            "</w:SelectorSet>"
        )
    option_set = ""
    if options:
        option_set = (
            "<w:OptionSet>"
            + "".join(
                f'<w:Option Name="{name}">{escape(value)}</w:Option>'
                for name, value in options.items()
            )
            + "</w:OptionSet>"
        )
    return ENVELOPE.format(
        **NAMESPACES,
        endpoint=escape(endpoint),
        anonymous=ANONYMOUS,
        message_id=uuid.uuid4(),
        timeout=timeout,
        resource_uri=RESOURCE_URI,
        action=action,
        selectors=selectors,
        options=option_set,
        body=body,
    )


def create_shell_body() -> str:
    return (
        "<rsp:Shell>"
        "<rsp:InputStreams>stdin</rsp:InputStreams>"
        "<rsp:OutputStreams>stdout stderr</rsp:OutputStreams>"
        "</rsp:Shell>"
    )


def command_body(command: str, arguments: Sequence[str]) -> str:
    args = "".join(f"<rsp:Arguments>{escape(arg)}</rsp:Arguments>" for arg in arguments)
    return (
        "<rsp:CommandLine>"
        f"<rsp:Command>{escape(command)}</rsp:Command>{args}"
        "</rsp:CommandLine>"
    )


def receive_body(command_id: str) -> str:
    return (
        "<rsp:Receive>"
        f'<rsp:DesiredStream CommandId="{escape(command_id)}">stdout stderr'
        "</rsp:DesiredStream>"
        "</rsp:Receive>"
    )


def signal_body(command_id: str) -> str:
    return (
        f'<rsp:Signal CommandId="{escape(command_id)}">'
        f"<rsp:Code>{SIGNAL_TERMINATE}</rsp:Code>"
        "</rsp:Signal>"
    )


def powershell_arguments(script: str) -> Sequence[str]:
    encoded = base64.b64encode(script.encode("utf-16-le")).decode("ascii")
    return ["-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass",
            "-EncodedCommand", encoded]  # fmt: skip


def _find_text(root: ET.Element, path: str) -> str | None:
    element = root.find(path, NAMESPACES)
    if element is None or element.text is None:
        return None
    return element.text.strip()


def parse_shell_id(xml: str) -> str:
    root = ET.fromstring(xml)
    shell_id = _find_text(root, ".//rsp:ShellId") or _find_text(
        root, ".//w:Selector[@Name='ShellId']"
    )
    if not shell_id:
        raise ValueError("No ShellId in create response")
    return shell_id


def parse_command_id(xml: str) -> str:
    command_id = _find_text(ET.fromstring(xml), ".//rsp:CommandId")
    if not command_id:
        raise ValueError("No CommandId in command response")
    return command_id


def parse_receive(xml: str) -> ReceiveChunk:
    root = ET.fromstring(xml)
    stdout, stderr = bytearray(), bytearray()
    for stream in root.iterfind(".//rsp:Stream", NAMESPACES):
        if not stream.text:
            continue
        data = base64.b64decode(stream.text)
        if stream.get("Name") == "stderr":
            stderr += data
        else:
            stdout += data

    state = root.find(".//rsp:CommandState", NAMESPACES)
    done = state is not None and state.get("State") == COMMAND_DONE
    exit_code = _find_text(root, ".//rsp:CommandState/rsp:ExitCode")
    return ReceiveChunk(
        stdout=bytes(stdout),
        stderr=bytes(stderr),
        done=done,
        exit_code=int(exit_code) if exit_code is not None else None,
    )


def parse_fault(xml: str) -> str:
    """Extract a readable message from a SOAP fault body."""
    try:
        root = ET.fromstring(xml)
    except ET.ParseError:
        return xml.strip()[:200]
    reason = _find_text(root, ".//s:Reason/s:Text")
    return reason or xml.strip()[:200]


def clean_clixml(stderr: str) -> str:
    """Turn PowerShell's CLIXML error stream into plain text."""
    if not stderr.startswith("#< CLIXML"):
        return stderr
    messages = CLIXML_ERROR.findall(stderr)
    text = "".join(messages)
    return CLIXML_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text).strip()
