class RemoteTestError(Exception):
    """Base class for failures that are contained to a single host."""

    def __init__(self, host: str, message: str):
        super().__init__(message)
        self.host = host
        self.message = message

    def __str__(self):
        return self.message


class SessionError(RemoteTestError):
    """The remote session to a host could not be established."""


class ProbeError(RemoteTestError):
    """The network diagnostic could not be run, or its output was unusable."""
