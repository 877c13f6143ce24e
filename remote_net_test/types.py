from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Tuple, Union


@dataclass(frozen=True)
class ProbeFields:
    ping_succeeded: bool
    name_resolution_succeeded: bool
    resolved_addresses: Tuple[str, ...]


@dataclass(frozen=True)
class ProbeResult:
    host_name: str
    ping_succeeded: bool
    name_resolution_succeeded: bool
    resolved_addresses: Tuple[str, ...]
    tested_at: datetime


@dataclass(frozen=True)
class CommandOutput:
    stdout: str
    stderr: str
    status_code: int


@dataclass(frozen=True)
class Display:
    pass


@dataclass(frozen=True)
class DelimitedFile:
    directory: Path
    base_name: str

    @property
    def path(self) -> Path:
        return self.directory / f"{self.base_name}.csv"


@dataclass(frozen=True)
class TextFile:
    directory: Path
    base_name: str

    @property
    def path(self) -> Path:
        return self.directory / f"{self.base_name}.txt"


OutputMode = Union[Display, DelimitedFile, TextFile]
