"""NatWatchService - 샘플링 → 상태 갱신 → 리포트 사이클을 반복하는 메인 루프."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, TextIO

from watchnet import metrics
from watchnet.classify.benign import BenignFilter
from watchnet.sampler.parser import ParseError
from watchnet.sampler.ss import CommandFailedError, ReadError, SamplerError, SocketSampler
from watchnet.tracking.reporter import Reporter
from watchnet.tracking.state import CycleState

if TYPE_CHECKING:
    from watchnet.tracking.models import Report
    from watchnet.utils.config import Config

logger = logging.getLogger("watchnet.services.watch_service")

ON_ERROR_POLICIES = ("abort", "continue")

# on_error=continue 일 때 건너뛸 수 있는 일시적 서브프로세스 오류.
# 실행 실패와 출력 형식 오류는 항상 치명적이다.
_TRANSIENT_ERRORS = (ReadError, CommandFailedError)


class NatWatchService:
    """한 사이클씩 순차적으로 실행하며 사이클이 겹치지 않는다.

    CycleState 는 사이클의 서브프로세스가 완전히 종료된 뒤 Reporter 에서만
    변경되므로 별도의 잠금이 필요 없다.
    """

    def __init__(
        self,
        config: Config,
        sampler: SocketSampler | None = None,
        reporter: Reporter | None = None,
        stream: TextIO | None = None,
    ) -> None:
        sampler_cfg  = config.section("sampler") or {}
        tracking_cfg = config.section("tracking") or {}
        service_cfg  = config.section("service") or {}

        on_error = str(service_cfg.get("on_error", "abort")).lower()
        if on_error not in ON_ERROR_POLICIES:
            raise ValueError(
                f"Unknown service.on_error policy: {on_error!r} (expected one of {ON_ERROR_POLICIES})"
            )

        self._sampler = sampler or SocketSampler(
            command = sampler_cfg.get("command"),
            benign  = BenignFilter(sampler_cfg),
        )
        self._reporter = reporter or Reporter(
            stream       = stream,
            fmt          = config.get("report.format", "text"),
            track_unique = bool(tracking_cfg.get("unique_connections", True)),
        )
        self.state     = CycleState(max_remotes=int(tracking_cfg.get("max_remotes") or 0))
        self._interval = float(service_cfg.get("interval_seconds") or 0)
        self._on_error = on_error
        self.cycles    = 0
        self._task: asyncio.Task | None = None

    @property
    def sampler(self) -> SocketSampler:
        return self._sampler

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    async def start(self) -> None:
        """사이클 루프 비동기 태스크를 시작한다."""
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "NatWatchService started (interval=%.1fs, on_error=%s, unique_tracking=%s)",
            self._interval,
            self._on_error,
            self._reporter.track_unique,
        )

    async def stop(self) -> None:
        """루프 태스크를 취소하고 정리한다. 진행 중인 ss 프로세스는 종료된다."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("NatWatchService stopped after %d cycles", self.cycles)

    async def run_cycle(self) -> list[Report]:
        """샘플링 한 번과 리포트 한 번을 수행한다. 오류는 그대로 전파한다."""
        started = time.monotonic()
        result  = await self._sampler.sample()
        reports = self._reporter.check(result.records, self.state)
        self.cycles += 1

        metrics.cycles_total.inc()
        metrics.cycle_duration.observe(time.monotonic() - started)
        metrics.benign_filtered_total.inc(result.filtered)
        metrics.nat_connections.set(len(result.records))
        metrics.peak_nat_connections.set(self.state.peak_nat_connections)
        metrics.unique_connections.set(self.state.total_unique_connections)
        metrics.distinct_remotes.set(self.state.distinct_remote_count)

        logger.debug(
            "Cycle %d: %d NAT-relevant, %d benign, %d reports",
            self.cycles, len(result.records), result.filtered, len(reports),
        )
        return reports

    async def _loop(self) -> None:
        """중단되거나 치명적 오류가 날 때까지 사이클을 반복하는 메인 루프."""
        while True:
            try:
                await self.run_cycle()
            except (SamplerError, ParseError) as exc:
                metrics.cycle_errors_total.labels(kind=type(exc).__name__).inc()
                if self._on_error == "continue" and isinstance(exc, _TRANSIENT_ERRORS):
                    logger.warning("Cycle failed, skipping: %s", exc)
                else:
                    raise

            if self._interval > 0:
                await asyncio.sleep(self._interval)
            else:
                # 대기 없이 반복하더라도 취소가 전달될 수 있도록 이벤트 루프에 양보
                await asyncio.sleep(0)
