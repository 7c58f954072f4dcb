"""SocketSampler - ss 서브프로세스를 실행하여 한 사이클의 연결 목록을 수집한다."""

from __future__ import annotations

import asyncio
import logging
import shlex

from watchnet.classify.benign import BenignFilter
from watchnet.sampler.models import SampleResult
from watchnet.sampler.parser import ParseError, parse_line
from watchnet.utils.config import DEFAULT_SS_COMMAND

logger = logging.getLogger("watchnet.sampler.ss")


class SamplerError(RuntimeError):
    """샘플링 사이클 실패의 기반 클래스."""


class LaunchError(SamplerError):
    """명령을 시작할 수 없음 (바이너리 없음, 권한 없음 등)."""


class ReadError(SamplerError):
    """EOF 이외의 이유로 stdout 을 줄 단위로 읽지 못함."""


class CommandFailedError(SamplerError):
    """명령이 0 이 아닌 종료 코드로 끝남."""

    def __init__(self, command: str, returncode: int, stderr: str) -> None:
        self.command    = command
        self.returncode = returncode
        self.stderr     = stderr
        message = f"{command}: exit status {returncode}"
        if stderr:
            message += f"\n{stderr}"
        super().__init__(message)


class SocketSampler:
    """ss 출력을 줄 단위로 파싱하여 NAT 관련 레코드와 benign 개수를 반환한다.

    ``asyncio.create_subprocess_exec`` 로 실행하므로 쉘 해석이 발생하지 않는다.
    필터 식 ``! ( dst = localhost || dst = metadata )`` 도 단일 인수로 전달된다.
    stderr 는 파이프가 가득 차 멈추지 않도록 stdout 과 동시에 읽어 둔다.
    """

    def __init__(
        self,
        command: list[str] | None = None,
        benign: BenignFilter | None = None,
    ) -> None:
        self._command = list(command or DEFAULT_SS_COMMAND)
        self._benign  = benign or BenignFilter()

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def description(self) -> str:
        """오류 메시지에 넣을 명령 표기 (쉘에 그대로 붙여 넣을 수 있는 형태)."""
        return shlex.join(self._command)

    async def sample(self) -> SampleResult:
        """명령을 한 번 실행하고 출력 전체를 소비한 뒤 종료를 기다린다.

        Raises:
            LaunchError: 명령을 시작할 수 없는 경우.
            ReadError: stdout 읽기 실패.
            ParseError: 필드가 부족하거나 원격 주소가 잘못된 줄.
            CommandFailedError: 0 이 아닌 종료 코드 (stderr 포함).
        """
        desc = self.description
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise LaunchError(f"{desc}: {exc}") from exc

        stderr_task = asyncio.ensure_future(proc.stderr.read())
        result = SampleResult()

        try:
            while True:
                try:
                    raw = await proc.stdout.readline()
                except (OSError, ValueError) as exc:
                    # ValueError: StreamReader 줄 길이 제한 초과
                    raise ReadError(f"{desc}:\nprocessing output: {exc}") from exc
                if not raw:
                    break

                line = raw.decode("utf-8", errors="replace").rstrip("\n")
                try:
                    record = parse_line(line)
                except ParseError as exc:
                    raise ParseError(f"{desc}:\n{exc}") from exc

                if self._benign.is_benign(record.host):
                    result.filtered += 1
                    continue
                result.records.append(record)

            returncode = await proc.wait()
            stderr = (await stderr_task).decode("utf-8", errors="replace").strip()
        except BaseException:
            # 파싱 실패 또는 취소: 자식 프로세스를 정리한 뒤 그대로 전파
            stderr_task.cancel()
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
            raise

        if returncode != 0:
            raise CommandFailedError(desc, returncode, stderr)

        logger.debug(
            "Sampled %d NAT-relevant connections (%d benign filtered)",
            len(result.records), result.filtered,
        )
        return result
