from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from remote_net_test.probe import DEFAULT_PROBE_TARGET
from remote_net_test.types import DelimitedFile, Display, OutputMode, TextFile

DEFAULT_FILE_BASE_NAME = "PipeResults"
OUTPUT_MODES = ("Host", "Text", "CSV")
TRANSPORTS = ("winrm", "ssh")


def parse_output_mode(name: str, directory: Path, base_name: str) -> OutputMode:
    normalised = name.strip().lower()
    if normalised == "host":
        return Display()
    if normalised == "csv":
        return DelimitedFile(Path(directory), base_name)
    if normalised == "text":
        return TextFile(Path(directory), base_name)
    raise ValueError(f"Unknown output mode {name!r}, expected one of {', '.join(OUTPUT_MODES)}")


@dataclass
class RunConfig:
    hosts: List[str]
    output_mode: OutputMode = field(default_factory=Display)
    probe_target: str = DEFAULT_PROBE_TARGET
    transport: str = "winrm"
    username: Optional[str] = None
    password: Optional[str] = None
    port: Optional[int] = None
    use_https: bool = False
    insecure: bool = False
    connect_timeout: int = 30
    command_timeout: int = 60
    metrics_file: Optional[str] = None
