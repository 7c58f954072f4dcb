"""메인 오케스트레이터: 로깅, 메트릭, 시그널 처리, 감시 서비스 통합 관리."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TextIO

from watchnet import metrics
from watchnet.services.watch_service import NatWatchService
from watchnet.utils.config import Config
from watchnet.utils.logging_setup import setup_logging

logger = logging.getLogger("watchnet.app")


class WatchNet:
    """최상위 애플리케이션 오케스트레이터.

    사이클 실행은 NatWatchService 에 위임하며,
    컴포넌트 연결, 시작 순서 제어, 정상 종료만 담당한다.
    서비스가 치명적 오류로 끝나면 그 예외를 run() 호출자에게 그대로 전파한다.
    """

    def __init__(self, config: Config, stream: TextIO | None = None) -> None:
        self.config  = config
        self.service = NatWatchService(config, stream=stream)

    async def run(self, once: bool = False) -> None:
        """메인 진입점: 서비스를 시작하고 종료 시그널 또는 치명적 오류를 기다린다."""
        setup_logging(self.config)
        logger.info("watchnet starting: %s", self.service.sampler.description)

        # ── 메트릭 ───────────────────────────────────────────────────────
        metrics_cfg = self.config.section("metrics") or {}
        if metrics_cfg.get("enabled", False):
            host = metrics_cfg.get("host", "0.0.0.0")
            port = int(metrics_cfg.get("port", 9464))
            metrics.serve(host, port)
            logger.info("Prometheus metrics on %s:%d", host, port)

        if once:
            await self.service.run_cycle()
            logger.info("Single cycle complete: %s", self.service.state.snapshot())
            return

        # ── 시그널 처리 ─────────────────────────────────────────────────
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        def _signal_handler() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

        # ── 감시 루프 ───────────────────────────────────────────────────
        await self.service.start()
        stop_task = asyncio.create_task(stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {self.service.task, stop_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stop_task.cancel()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

        if self.service.task in done:
            # 루프는 정상 종료하지 않으므로 여기 도달하면 치명적 오류다
            self.service.task.result()

        # ── 종료 ──────────────────────────────────────────────────────────
        logger.info("Shutting down...")
        await self.service.stop()
        logger.info("watchnet stopped: %s", self.service.state.snapshot())
