import base64
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import paramiko
import winrm
from winrm.exceptions import WinRMError, WinRMOperationTimeoutError, WinRMTransportError

from remote_net_test.errors import ProbeError, SessionError
from remote_net_test.types import CommandOutput

logger = logging.getLogger(__name__)

POWERSHELL = "powershell"
POSIX = "posix"

WINRM_ERRORS = (WinRMError, WinRMTransportError, WinRMOperationTimeoutError, OSError)


class RemoteSession(ABC):
    """
    An authenticated channel for running commands on a single host.

    Used as a context manager: entering connects, leaving always closes,
    whichever way the block exits.
    """

    shell: str = POSIX

    def __init__(self, host: str):
        self.host = host

    @abstractmethod
    def open(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def run(self, command: str) -> CommandOutput:
        raise NotImplementedError

    def __enter__(self):
        logger.debug(f"Opening {type(self).__name__} to {self.host}")
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        logger.debug(f"Closing {type(self).__name__} to {self.host}")
        self.close()
        return False


class WinRMSession(RemoteSession):
    shell = POWERSHELL

    def __init__(
        self,
        host: str,
        username: Optional[str],
        password: Optional[str],
        port: Optional[int] = None,
        use_https: bool = False,
        insecure: bool = False,
        transport: str = "ntlm",
        command_timeout: int = 60,
    ):
        super().__init__(host)
        scheme = "https" if use_https else "http"
        port = port or (5986 if use_https else 5985)
        self.endpoint = f"{scheme}://{host}:{port}/wsman"
        self.username = username
        self.password = password
        self.transport = transport
        self.server_cert_validation = "ignore" if insecure else "validate"
        self.command_timeout = command_timeout
        self._protocol = None
        self._shell_id = None

    def open(self) -> None:
        try:
            self._protocol = winrm.Protocol(
                endpoint=self.endpoint,
                transport=self.transport,
                username=self.username,
                password=self.password,
                server_cert_validation=self.server_cert_validation,
                operation_timeout_sec=self.command_timeout,
                read_timeout_sec=self.command_timeout + 10,
            )
            self._shell_id = self._protocol.open_shell()
        except WINRM_ERRORS as e:
            self._protocol = None
            raise SessionError(self.host, f"WinRM connection to {self.endpoint} failed: {e}") from e

    def close(self) -> None:
        if self._protocol is None or self._shell_id is None:
            return
        try:
            self._protocol.close_shell(self._shell_id)
        except WINRM_ERRORS as e:
            logger.warning(f"Could not close WinRM shell on {self.host}: {e}")
        finally:
            self._protocol = None
            self._shell_id = None

    def run(self, command: str) -> CommandOutput:
        if self._shell_id is None:
            raise ProbeError(self.host, "WinRM session is not open")
        encoded = base64.b64encode(command.encode("utf_16_le")).decode("ascii")
        try:
            command_id = self._protocol.run_command(
                self._shell_id, "powershell", ["-NoProfile", "-EncodedCommand", encoded]
            )
            try:
                std_out, std_err, status_code = self._protocol.get_command_output(
                    self._shell_id, command_id
                )
            finally:
                self._protocol.cleanup_command(self._shell_id, command_id)
        except WINRM_ERRORS as e:
            raise ProbeError(self.host, f"WinRM command failed: {e}") from e
        return CommandOutput(
            std_out.decode(errors="ignore"), std_err.decode(errors="ignore"), status_code
        )


class SSHSession(RemoteSession):
    shell = POSIX

    def __init__(
        self,
        host: str,
        username: Optional[str],
        password: Optional[str],
        port: Optional[int] = None,
        connect_timeout: int = 30,
        command_timeout: int = 60,
    ):
        super().__init__(host)
        self.username = username
        self.password = password
        self.port = port or 22
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self._client = None

    def open(self) -> None:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                timeout=self.connect_timeout,
            )
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise SessionError(self.host, f"SSH connection to {self.host}:{self.port} failed: {e}") from e
        self._client = client

    def close(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None

    def run(self, command: str) -> CommandOutput:
        if self._client is None:
            raise ProbeError(self.host, "SSH session is not open")
        try:
            _, stdout, stderr = self._client.exec_command(command, timeout=self.command_timeout)
            out = stdout.read().decode(errors="ignore")
            err = stderr.read().decode(errors="ignore")
            status_code = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise ProbeError(self.host, f"SSH command failed: {e}") from e
        return CommandOutput(out, err, status_code)


def session_factory(config) -> Callable[[str], RemoteSession]:
    """Return a callable building an unopened session to a host from the run config."""
    if config.transport == "winrm":
        return lambda host: WinRMSession(
            host,
            config.username,
            config.password,
            port=config.port,
            use_https=config.use_https,
            insecure=config.insecure,
            command_timeout=config.command_timeout,
        )
    if config.transport == "ssh":
        return lambda host: SSHSession(
            host,
            config.username,
            config.password,
            port=config.port,
            connect_timeout=config.connect_timeout,
            command_timeout=config.command_timeout,
        )
    raise ValueError(f"Unknown transport: {config.transport}")
