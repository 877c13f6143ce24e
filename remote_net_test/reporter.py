import csv
import dataclasses
import logging
import os
import shlex
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Callable, Iterable, Optional, TextIO

from remote_net_test.types import (
    DelimitedFile,
    Display,
    OutputMode,
    ProbeResult,
    TextFile,
)

ADDRESS_SEPARATOR = ";"

logger = logging.getLogger(__name__)

FIELD_NAMES = [field.name for field in dataclasses.fields(ProbeResult)]


def _field_label(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


def format_result(result: ProbeResult) -> str:
    """Render a result as a ``Name : Value`` list, one field per line."""
    width = max(len(_field_label(name)) for name in FIELD_NAMES)
    lines = []
    for name in FIELD_NAMES:
        value = getattr(result, name)
        if isinstance(value, tuple):
            value = "{" + ", ".join(value) + "}"
        lines.append(f"{_field_label(name).ljust(width)} : {value}")
    return "\n".join(lines) + "\n"


def _csv_row(result: ProbeResult) -> dict:
    row = dataclasses.asdict(result)
    row["resolved_addresses"] = ADDRESS_SEPARATOR.join(result.resolved_addresses)
    row["tested_at"] = result.tested_at.isoformat()
    return row


def open_in_viewer(path: Path) -> None:
    if sys.platform.startswith("win"):
        os.startfile(str(path))
        return
    editor = os.getenv("VISUAL") or os.getenv("EDITOR")
    if editor:
        # Terminal editors need the tty, so wait for them to exit
        subprocess.run(shlex.split(editor) + [str(path)])
        return
    if sys.platform == "darwin":
        cmd = ["open", str(path)]
    elif shutil.which("xdg-open"):
        cmd = ["xdg-open", str(path)]
    else:
        logger.warning(f"No viewer available, report written to {path}")
        return
    subprocess.Popen(cmd)


def _display(results: Iterable[ProbeResult], stream: TextIO) -> None:
    for result in results:
        stream.write(format_result(result))
        stream.write("\n")
    stream.flush()


def _write_csv(results: Iterable[ProbeResult], path: Path) -> int:
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FIELD_NAMES)
        writer.writeheader()
        for result in results:
            writer.writerow(_csv_row(result))
            count += 1
    return count


def _append_text_report(result: ProbeResult, path: Path) -> None:
    tmp = tempfile.NamedTemporaryFile(
        "w",
        dir=path.parent,
        prefix=f"{path.stem}-",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    try:
        with tmp:
            tmp.write(format_result(result))
        with open(tmp.name, encoding="utf-8") as f:
            rendering = f.read()
        with open(path, "a", encoding="utf-8") as report:
            report.write(f"Computer Tested: {result.host_name}\n")
            report.write(f"Date/Time Tested: {result.tested_at:%Y-%m-%d %H:%M:%S}\n")
            report.write(rendering)
            report.write("\n")
    finally:
        os.remove(tmp.name)


def _write_text(
    results: Iterable[ProbeResult], path: Path, viewer: Callable[[Path], None]
) -> int:
    count = 0
    for result in results:
        _append_text_report(result, path)
        count += 1
    if not path.exists():
        logger.warning(f"No results were recorded, not opening {path}")
        return count
    try:
        viewer(path)
    except OSError as e:
        logger.warning(f"Could not open {path} in a viewer: {e}")
    return count


def render(
    results: Iterable[ProbeResult],
    mode: OutputMode,
    stream: Optional[TextIO] = None,
    viewer: Callable[[Path], None] = open_in_viewer,
) -> Optional[Path]:
    """
    Render all results once, to the destination chosen by ``mode``.

    Returns the path written to for file modes. File system errors are not
    handled here and end the run.
    """
    if isinstance(mode, Display):
        _display(results, stream or sys.stdout)
        return None
    elif isinstance(mode, DelimitedFile):
        count = _write_csv(results, mode.path)
        logger.info(f"Wrote {count} result(s) to {mode.path}")
        return mode.path
    elif isinstance(mode, TextFile):
        count = _write_text(results, mode.path, viewer)
        logger.info(f"Appended {count} result(s) to {mode.path}")
        return mode.path
    else:
        raise TypeError(f"Unknown output mode: {mode!r}")
