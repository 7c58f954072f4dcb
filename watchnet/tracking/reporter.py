"""Reporter - 사이클 결과로 CycleState 를 갱신하고 피크 갱신 시 리포트를 출력한다."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Sequence, TextIO

from watchnet.sampler.models import ConnectionRecord
from watchnet.tracking.models import (
    PeakConnectionsReport,
    PeakUniqueReport,
    Report,
    now_rfc3339,
)
from watchnet.tracking.state import CycleState

logger = logging.getLogger("watchnet.tracking.reporter")

REPORT_FORMATS = ("text", "json")


class Reporter:
    """두 개의 독립적인 피크 검사를 수행한다.

    - 연결 수 피크: 이번 사이클 레코드 수 > peak_nat_connections
    - 고유 연결 피크: total_unique_connections > peak_unique_connections

    둘 다 엄격한 초과 비교이며 매 사이클 서로 무관하게 실행된다.
    타임스탬프는 사이클 시작이 아니라 출력 직전에 찍는다.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        fmt: str = "text",
        track_unique: bool = True,
        clock: Callable[[], str] = now_rfc3339,
    ) -> None:
        if fmt not in REPORT_FORMATS:
            raise ValueError(f"Unknown report format: {fmt!r} (expected one of {REPORT_FORMATS})")
        self._stream       = stream
        self._format       = fmt
        self._clock        = clock
        self.track_unique  = track_unique

    def check(self, records: Sequence[ConnectionRecord], state: CycleState) -> list[Report]:
        """한 사이클의 NAT 관련 레코드로 상태를 갱신하고 발생한 리포트를 반환한다."""
        if self.track_unique:
            new_pairs = 0
            for record in records:
                if state.register(record.remote_address, record.local_address):
                    new_pairs += 1
            if new_pairs:
                logger.debug("Registered %d new (remote, local) pairs", new_pairs)

        reports: list[Report] = []

        count = len(records)
        if count > state.peak_nat_connections:
            report = PeakConnectionsReport(
                timestamp = self._clock(),
                count     = count,
                records   = list(records),
            )
            self._emit(report)
            logger.info(
                "NAT connection peak: %d -> %d", state.peak_nat_connections, count,
            )
            state.peak_nat_connections = count
            reports.append(report)

        if self.track_unique and state.total_unique_connections > state.peak_unique_connections:
            unique = PeakUniqueReport(
                timestamp       = self._clock(),
                total           = state.total_unique_connections,
                distinct_remote = state.distinct_remote_count,
                remotes         = state.remote_counts(),
            )
            self._emit(unique)
            logger.info(
                "Unique connection peak: %d -> %d (%d remotes)",
                state.peak_unique_connections,
                state.total_unique_connections,
                state.distinct_remote_count,
            )
            state.peak_unique_connections = state.total_unique_connections
            reports.append(unique)

        return reports

    def _emit(self, report: Report) -> None:
        """리포트를 설정된 형식으로 출력 스트림에 쓴다."""
        stream = self._stream or sys.stdout
        if self._format == "json":
            stream.write(report.to_json() + "\n")
        else:
            stream.write(report.render_text())
        stream.flush()
