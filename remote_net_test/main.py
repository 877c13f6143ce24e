import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from remote_net_test.config import (
    DEFAULT_FILE_BASE_NAME,
    OUTPUT_MODES,
    TRANSPORTS,
    RunConfig,
    parse_output_mode,
)
from remote_net_test.metrics import RUN_DURATION_SECONDS, export_textfile
from remote_net_test.probe import DEFAULT_PROBE_TARGET, check_target
from remote_net_test.prober import clean_hosts, probe_hosts
from remote_net_test.reporter import open_in_viewer, render
from remote_net_test.session import RemoteSession, session_factory

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def _read_hosts(hosts: List[str], stdin: TextIO) -> List[str]:
    # "-", or no hosts at all with input piped in, reads one host per line from stdin
    if hosts == ["-"] or (not clean_hosts(hosts) and not stdin.isatty()):
        return [line.strip() for line in stdin if line.strip()]
    return hosts


def _parse_args(argv: Optional[List[str]] = None, home: Optional[Path] = None):
    home = home or Path.home()
    parser = argparse.ArgumentParser(
        description="Test DNS and network reachability of remote machines"
    )

    parser.add_argument(
        "hosts",
        nargs="*",
        default=[h for h in os.getenv("HOSTS", "").split(",") if h],
        help="Hosts to test, or - to read them from stdin (default: env HOSTS, comma-separated)",
    )
    parser.add_argument(
        "--output_directory",
        type=Path,
        default=Path(os.getenv("OUTPUT_DIRECTORY", str(home))),
        help="Directory for CSV and Text output (default: home directory or env OUTPUT_DIRECTORY)",
    )
    parser.add_argument(
        "--output_mode",
        type=str,
        default=os.getenv("OUTPUT_MODE", "Host"),
        help=f"One of {', '.join(OUTPUT_MODES)} (default: Host or env OUTPUT_MODE)",
    )
    parser.add_argument(
        "--file_base_name",
        type=str,
        default=os.getenv("FILE_BASE_NAME", DEFAULT_FILE_BASE_NAME),
        help=f"Output file name without extension (default: {DEFAULT_FILE_BASE_NAME} or env FILE_BASE_NAME)",
    )
    parser.add_argument(
        "--probe_target",
        type=str,
        default=os.getenv("PROBE_TARGET", DEFAULT_PROBE_TARGET),
        help=f"Address the remote hosts test against (default: {DEFAULT_PROBE_TARGET} or env PROBE_TARGET)",
    )
    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        default=os.getenv("REMOTE_TRANSPORT", "winrm"),
        help="Remote session transport (default: winrm or env REMOTE_TRANSPORT)",
    )
    parser.add_argument(
        "--username",
        type=str,
        default=os.getenv("REMOTE_USERNAME"),
        help="Remote user name (default: env REMOTE_USERNAME). The password is read from env REMOTE_PASSWORD.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("REMOTE_PORT", 0)) or None,
        help="Remote port (default: 5985/5986 for WinRM, 22 for SSH, or env REMOTE_PORT)",
    )
    parser.add_argument(
        "--use_https",
        action="store_true",
        default=_env_flag("WINRM_USE_HTTPS"),
        help="Use HTTPS for WinRM (default: off or env WINRM_USE_HTTPS)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        default=_env_flag("WINRM_INSECURE"),
        help="Skip WinRM HTTPS certificate validation (default: off or env WINRM_INSECURE)",
    )
    parser.add_argument(
        "--connect_timeout",
        type=int,
        default=int(os.getenv("CONNECT_TIMEOUT", 30)),
        help="Session connect timeout in seconds (default: 30 or env CONNECT_TIMEOUT)",
    )
    parser.add_argument(
        "--command_timeout",
        type=int,
        default=int(os.getenv("COMMAND_TIMEOUT", 60)),
        help="Remote probe timeout in seconds (default: 60 or env COMMAND_TIMEOUT)",
    )
    parser.add_argument(
        "--metrics_file",
        type=str,
        default=os.getenv("METRICS_FILE"),
        help="Write Prometheus metrics for the run to this textfile (default: env METRICS_FILE)",
    )
    parser.add_argument(
        "--log_level",
        type=str.upper,
        default=os.getenv("LOG_LEVEL", "WARNING"),
        help=f"One of {', '.join(LOG_LEVELS)} (default: WARNING or env LOG_LEVEL)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug trace messages",
    )

    args = parser.parse_args(argv)
    if args.output_mode.strip().lower() not in [m.lower() for m in OUTPUT_MODES]:
        parser.error(f"--output_mode must be one of {', '.join(OUTPUT_MODES)}")
    if args.log_level.upper() not in LOG_LEVELS:
        parser.error(f"--log_level must be one of {', '.join(LOG_LEVELS)}")
    try:
        check_target(args.probe_target)
    except ValueError as e:
        parser.error(f"--probe_target: {e}")
    return args


def build_config(args, stdin: TextIO = sys.stdin) -> RunConfig:
    hosts = clean_hosts(_read_hosts(args.hosts, stdin))
    if not hosts:
        raise ValueError("No hosts provided")
    return RunConfig(
        hosts=hosts,
        output_mode=parse_output_mode(
            args.output_mode, args.output_directory, args.file_base_name
        ),
        probe_target=check_target(args.probe_target),
        transport=args.transport,
        username=args.username,
        password=os.getenv("REMOTE_PASSWORD"),
        port=args.port,
        use_https=args.use_https,
        insecure=args.insecure,
        connect_timeout=args.connect_timeout,
        command_timeout=args.command_timeout,
        metrics_file=args.metrics_file,
    )


def main(
    config: RunConfig,
    open_session: Optional[Callable[[str], RemoteSession]] = None,
    stream: Optional[TextIO] = None,
    viewer: Callable[[Path], None] = open_in_viewer,
) -> Optional[Path]:
    open_session = open_session or session_factory(config)
    start_time = time.time()

    results = probe_hosts(config.hosts, open_session, config.probe_target)
    path = render(results, config.output_mode, stream=stream, viewer=viewer)

    RUN_DURATION_SECONDS.observe(time.time() - start_time)
    if config.metrics_file:
        export_textfile(config.metrics_file)
        logger.info(f"Wrote metrics to {config.metrics_file}")
    return path


def run(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Configuration:")
    logger.debug(f"\tHosts: {args.hosts}")
    logger.debug(f"\tOutput Mode: {args.output_mode}")
    logger.debug(f"\tOutput Directory: {args.output_directory}")
    logger.debug(f"\tFile Base Name: {args.file_base_name}")
    logger.debug(f"\tProbe Target: {args.probe_target}")
    logger.debug(f"\tTransport: {args.transport}")

    try:
        config = build_config(args)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)
    main(config)


if __name__ == "__main__":
    run()
