"""watchnet 용 Prometheus 메트릭 정의."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# --- 사이클 ---
cycles_total       = Counter("watchnet_cycles_total", "Completed sample-and-report cycles")
cycle_errors_total = Counter("watchnet_cycle_errors_total", "Failed cycles", ["kind"])
cycle_duration     = Histogram(
    "watchnet_cycle_duration_seconds",
    "Duration of one sample-and-report cycle",
)

# --- 분류 ---
benign_filtered_total = Counter(
    "watchnet_benign_filtered_total",
    "Connections discarded as benign endpoints",
)

# --- NAT 포트 ---
nat_connections      = Gauge("watchnet_nat_connections", "NAT-relevant connections in the last cycle")
peak_nat_connections = Gauge("watchnet_peak_nat_connections", "Highest NAT-relevant count in any cycle")
unique_connections   = Gauge("watchnet_unique_connections", "Distinct (remote, local) pairs tracked")
distinct_remotes     = Gauge("watchnet_distinct_remotes", "Distinct remote addresses tracked")


def serve(host: str, port: int) -> None:
    """백그라운드 스레드에서 Prometheus HTTP 엔드포인트를 시작한다."""
    start_http_server(port, addr=host)
