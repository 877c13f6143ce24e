import json
import logging
import re
from typing import List

from remote_net_test.errors import ProbeError
from remote_net_test.session import POWERSHELL, RemoteSession
from remote_net_test.types import CommandOutput, ProbeFields

DEFAULT_PROBE_TARGET = "one.one.one.one"

valid_target = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.\-:]*$")
posix_ping = re.compile(r"^ping=(?P<succeeded>[01])$")
posix_address = re.compile(r"^addr=(?P<address>\S+)$")

logger = logging.getLogger(__name__)

POWERSHELL_PROBE = (
    "$ProgressPreference = 'SilentlyContinue'; "
    "Test-NetConnection -ComputerName '{target}' -InformationLevel Detailed "
    "-WarningAction SilentlyContinue | "
    "Select-Object PingSucceeded, NameResolutionSucceeded, "
    "@{{Name='ResolvedAddresses'; Expression={{@($_.ResolvedAddresses | "
    "ForEach-Object {{ $_.IPAddressToString }})}}}} | "
    "ConvertTo-Json -Compress"
)

POSIX_PROBE = (
    "if ping -c 1 -W {timeout} {target} >/dev/null 2>&1; "
    "then echo ping=1; else echo ping=0; fi; "
    "getent ahosts {target} | awk '!seen[$1]++ {{print \"addr=\" $1}}'"
)


def check_target(target: str) -> str:
    if not valid_target.match(target):
        raise ValueError(f"Refusing to probe suspicious target: {target!r}")
    return target


def build_command(shell: str, target: str, ping_timeout: int = 2) -> str:
    check_target(target)
    if shell == POWERSHELL:
        return POWERSHELL_PROBE.format(target=target)
    return POSIX_PROBE.format(target=target, timeout=ping_timeout)


def parse_powershell_output(host: str, output: CommandOutput) -> ProbeFields:
    text = output.stdout.strip()
    if not text:
        raise ProbeError(
            host,
            f"Test-NetConnection returned no output (exit {output.status_code}): {output.stderr.strip()}",
        )
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProbeError(host, f"Could not parse Test-NetConnection output: {e}") from e
    if isinstance(data, list):
        # One object per target; only one target is ever probed
        data = data[0] if data else {}
    if not isinstance(data, dict) or "PingSucceeded" not in data:
        raise ProbeError(host, f"Unexpected Test-NetConnection output: {text[:200]}")

    addresses = data.get("ResolvedAddresses") or []
    if isinstance(addresses, str):
        addresses = [addresses]
    return ProbeFields(
        ping_succeeded=bool(data.get("PingSucceeded")),
        name_resolution_succeeded=bool(data.get("NameResolutionSucceeded")),
        resolved_addresses=tuple(str(a) for a in addresses),
    )


def parse_posix_output(host: str, output: CommandOutput) -> ProbeFields:
    ping_succeeded = None
    addresses: List[str] = []
    for line in output.stdout.splitlines():
        line = line.strip()
        ping_match = posix_ping.match(line)
        if ping_match:
            ping_succeeded = ping_match.group("succeeded") == "1"
            continue
        address_match = posix_address.match(line)
        if address_match:
            addresses.append(address_match.group("address"))
    if ping_succeeded is None:
        raise ProbeError(
            host,
            f"Could not find ping status in probe output (exit {output.status_code}): {output.stderr.strip()}",
        )
    return ProbeFields(
        ping_succeeded=ping_succeeded,
        name_resolution_succeeded=bool(addresses),
        resolved_addresses=tuple(addresses),
    )


def run_probe(session: RemoteSession, target: str = DEFAULT_PROBE_TARGET) -> ProbeFields:
    """Run the network diagnostic against ``target`` from inside an open session."""
    command = build_command(session.shell, target)
    logger.debug(f"Running probe against {target} on {session.host}")
    output = session.run(command)
    if session.shell == POWERSHELL:
        return parse_powershell_output(session.host, output)
    return parse_posix_output(session.host, output)
