import pytest

from remote_net_test.errors import ProbeError
from remote_net_test.probe import (
    build_command,
    parse_posix_output,
    parse_powershell_output,
    run_probe,
)
from remote_net_test.session import POSIX, POWERSHELL
from remote_net_test.types import CommandOutput


def test_powershell_command_embeds_target():
    cmd = build_command(POWERSHELL, "one.one.one.one")
    assert "Test-NetConnection -ComputerName 'one.one.one.one' -InformationLevel Detailed" in cmd
    assert "ConvertTo-Json -Compress" in cmd
    assert "Expression={@($_.ResolvedAddresses" in cmd


def test_posix_command_embeds_target():
    cmd = build_command(POSIX, "1.1.1.1", ping_timeout=3)
    assert "ping -c 1 -W 3 1.1.1.1" in cmd
    assert "getent ahosts 1.1.1.1" in cmd
    assert '{print "addr=" $1}' in cmd


@pytest.mark.parametrize("target", ["one.one.one.one; rm -rf /", "x' ; Stop-Computer", "", "-c"])
def test_suspicious_targets_are_rejected(target):
    with pytest.raises(ValueError):
        build_command(POWERSHELL, target)


def test_parse_powershell_output(ps_output):
    fields = parse_powershell_output("HostA", ps_output(True, False, ("1.1.1.1", "1.0.0.1")))
    assert fields.ping_succeeded is True
    assert fields.name_resolution_succeeded is False
    assert fields.resolved_addresses == ("1.1.1.1", "1.0.0.1")


def test_parse_powershell_single_address_as_string():
    out = CommandOutput(
        '{"PingSucceeded":false,"NameResolutionSucceeded":true,"ResolvedAddresses":"1.1.1.1"}\r\n', "", 0
    )
    fields = parse_powershell_output("HostA", out)
    assert fields.ping_succeeded is False
    assert fields.resolved_addresses == ("1.1.1.1",)


def test_parse_powershell_null_addresses():
    out = CommandOutput(
        '{"PingSucceeded":false,"NameResolutionSucceeded":false,"ResolvedAddresses":null}', "", 0
    )
    assert parse_powershell_output("HostA", out).resolved_addresses == ()


@pytest.mark.parametrize(
    "stdout",
    ["", "not json", '{"Something":"else"}', "[]"],
)
def test_parse_powershell_bad_output(stdout):
    with pytest.raises(ProbeError) as exc:
        parse_powershell_output("HostA", CommandOutput(stdout, "boom", 1))
    assert exc.value.host == "HostA"


def test_parse_posix_output():
    out = CommandOutput("ping=1\naddr=1.1.1.1\naddr=1.0.0.1\naddr=2606:4700:4700::1111\n", "", 0)
    fields = parse_posix_output("HostA", out)
    assert fields.ping_succeeded is True
    assert fields.name_resolution_succeeded is True
    assert fields.resolved_addresses == ("1.1.1.1", "1.0.0.1", "2606:4700:4700::1111")


def test_parse_posix_output_without_resolution():
    fields = parse_posix_output("HostA", CommandOutput("ping=0\n", "", 2))
    assert fields.ping_succeeded is False
    assert fields.name_resolution_succeeded is False
    assert fields.resolved_addresses == ()


def test_parse_posix_output_missing_ping_status():
    with pytest.raises(ProbeError):
        parse_posix_output("HostA", CommandOutput("", "sh: getent: not found", 127))


def test_run_probe_uses_session_shell(make_session, ps_output):
    session = make_session("HostA", {"HostA": ps_output()})
    with session:
        fields = run_probe(session, "one.one.one.one")
    assert fields.resolved_addresses == ("1.1.1.1",)
    assert not session.is_open
