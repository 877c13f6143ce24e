from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile
from prometheus_client.utils import INF

PROBE_DURATION_SECONDS = Histogram(
    "remote_net_test_probe_duration_seconds",
    "Probe Duration (seconds) for a particular host, session setup included",
    ["host"],
    buckets=(0.5, 1, 2.5, 5, 7.5, 10, 15, 20, 30, 45, 60, INF),
)
PROBE_COUNT = Counter(
    "remote_net_test_probes", "Number of Probes", ["host", "is_error"]
)
PING_SUCCEEDED = Gauge(
    "remote_net_test_ping_succeeded", "Ping to the probe target succeeded", ["host"]
)
NAME_RESOLUTION_SUCCEEDED = Gauge(
    "remote_net_test_name_resolution_succeeded",
    "Name resolution of the probe target succeeded",
    ["host"],
)
RUN_DURATION_SECONDS = Histogram(
    "remote_net_test_run_duration_seconds",
    "Overall duration of the run across all hosts",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600, INF),
)


def export_textfile(path: str) -> None:
    write_to_textfile(path, REGISTRY)
