"""Shared fixtures for watchnet tests."""

from __future__ import annotations

import asyncio

import pytest

from watchnet.tracking.state import CycleState
from watchnet.utils.config import Config


class FakeProcess:
    """asyncio.subprocess.Process 대역: 미리 채운 stdout/stderr 와 종료 코드."""

    def __init__(self, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> None:
        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stdout.feed_eof()
        self.stderr = asyncio.StreamReader()
        self.stderr.feed_data(stderr)
        self.stderr.feed_eof()
        self.returncode: int | None = None
        self._exit_code = returncode
        self.killed = False

    async def wait(self) -> int:
        self.returncode = -9 if self.killed else self._exit_code
        return self.returncode

    def kill(self) -> None:
        self.killed = True


def ss_line(
    remote: str,
    local: str = "10.128.0.5:40000",
    state: str = "ESTAB",
    program: str | None = 'users:(("curl",pid=1234,fd=3))',
    netid: str = "tcp",
) -> str:
    """ss --oneline 형식의 한 줄을 만든다."""
    fields = [netid, state, "0", "0", local, remote]
    if program is not None:
        fields.append(program)
    return "   ".join(fields)


def ss_output(*lines: str) -> bytes:
    return "".join(line + "\n" for line in lines).encode()


@pytest.fixture
def make_proc():
    """FakeProcess 팩토리. 이벤트 루프 안에서 호출해야 한다."""
    return FakeProcess


@pytest.fixture
def line():
    return ss_line


@pytest.fixture
def output():
    return ss_output


@pytest.fixture(autouse=True)
def _clear_watchnet_env(monkeypatch):
    """개발자 환경의 WATCHNET_* 변수가 테스트에 섞이지 않도록 제거한다.
    load_dotenv()는 이미 설정된 변수를 덮어쓰지 않는다.
    """
    for var in (
        "WATCHNET_CONFIG",
        "WATCHNET_INTERVAL_SECONDS",
        "WATCHNET_ON_ERROR",
        "WATCHNET_REPORT_FORMAT",
        "WATCHNET_LOG_LEVEL",
        "WATCHNET_METRICS_ENABLED",
        "WATCHNET_METRICS_PORT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config() -> Config:
    return Config.defaults()


@pytest.fixture
def state() -> CycleState:
    return CycleState()
