from datetime import datetime

import pytest

from remote_net_test.errors import ProbeError, SessionError
from remote_net_test.session import POWERSHELL, RemoteSession
from remote_net_test.types import CommandOutput, ProbeResult


class FakeSession(RemoteSession):
    """
    script: dict[host] -> CommandOutput to return, or an exception to raise
    from open() ("connect") or run() ("probe").
    """

    shell = POWERSHELL

    def __init__(self, host, script, ledger):
        super().__init__(host)
        self.script = script
        self.ledger = ledger
        self.is_open = False

    def open(self):
        behaviour = self.script.get(self.host)
        if behaviour == "connect":
            raise SessionError(self.host, f"WinRM cannot complete the operation on {self.host}")
        self.is_open = True
        self.ledger.append(self)

    def close(self):
        self.is_open = False

    def run(self, command):
        behaviour = self.script.get(self.host)
        if behaviour == "probe":
            raise ProbeError(self.host, "Test-NetConnection is not recognized")
        return behaviour


def _ps_output(ping=True, dns=True, addresses=("1.1.1.1",)):
    body = (
        '{"PingSucceeded":%s,"NameResolutionSucceeded":%s,"ResolvedAddresses":[%s]}'
        % (
            "true" if ping else "false",
            "true" if dns else "false",
            ",".join(f'"{a}"' for a in addresses),
        )
    )
    return CommandOutput(body, "", 0)


@pytest.fixture
def ps_output():
    return _ps_output


@pytest.fixture
def make_session(ledger):
    def factory(host, script):
        return FakeSession(host, script, ledger)

    return factory


@pytest.fixture
def ledger():
    return []


@pytest.fixture
def fake_sessions(ledger):
    def factory(script):
        return lambda host: FakeSession(host, script, ledger)

    return factory


@pytest.fixture
def results():
    return [
        ProbeResult("HostA", True, True, ("1.1.1.1", "1.0.0.1"), datetime(2024, 3, 1, 9, 30, 0)),
        ProbeResult("HostB", False, False, (), datetime(2024, 3, 1, 9, 31, 5)),
    ]
