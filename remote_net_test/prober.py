import logging
import time
from datetime import datetime
from typing import Callable, Iterable, Iterator, List

from more_itertools import unique_everseen

from remote_net_test.errors import RemoteTestError
from remote_net_test.metrics import (
    NAME_RESOLUTION_SUCCEEDED,
    PING_SUCCEEDED,
    PROBE_COUNT,
    PROBE_DURATION_SECONDS,
)
from remote_net_test.probe import DEFAULT_PROBE_TARGET, check_target, run_probe
from remote_net_test.session import RemoteSession
from remote_net_test.types import ProbeResult

logger = logging.getLogger(__name__)


def clean_hosts(hosts: Iterable[str]) -> List[str]:
    # Dedupe hosts, in case of duplicate entries, keeping the order they were given in
    return list(unique_everseen(host.strip() for host in hosts if host and host.strip()))


def _probe_host(
    host: str,
    open_session: Callable[[str], RemoteSession],
    target: str,
    clock: Callable[[], datetime],
) -> ProbeResult:
    with open_session(host) as session:
        fields = run_probe(session, target)
        tested_at = clock()
    return ProbeResult(
        host_name=host,
        ping_succeeded=fields.ping_succeeded,
        name_resolution_succeeded=fields.name_resolution_succeeded,
        resolved_addresses=fields.resolved_addresses,
        tested_at=tested_at,
    )


def probe_hosts(
    hosts: Iterable[str],
    open_session: Callable[[str], RemoteSession],
    target: str = DEFAULT_PROBE_TARGET,
    clock: Callable[[], datetime] = datetime.now,
) -> Iterator[ProbeResult]:
    """
    Probe each host in turn and yield one ProbeResult per host that could be tested.

    A host whose session cannot be opened, or whose probe fails, is logged and
    skipped. Its session is closed before moving on in every case.
    """
    check_target(target)
    for host in clean_hosts(hosts):
        logger.info(f"Testing network connectivity from {host} to {target}")
        start_time = time.time()
        try:
            result = _probe_host(host, open_session, target, clock)
        except RemoteTestError as e:
            PROBE_DURATION_SECONDS.labels(host=host).observe(time.time() - start_time)
            PROBE_COUNT.labels(host=host, is_error=True).inc()
            logger.error(f"Failed to test {host}: {e}")
            continue

        PROBE_DURATION_SECONDS.labels(host=host).observe(time.time() - start_time)
        PROBE_COUNT.labels(host=host, is_error=False).inc()
        PING_SUCCEEDED.labels(host=host).set(1 if result.ping_succeeded else 0)
        NAME_RESOLUTION_SUCCEEDED.labels(host=host).set(
            1 if result.name_resolution_succeeded else 0
        )
        yield result
