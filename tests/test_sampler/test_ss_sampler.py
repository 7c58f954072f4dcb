"""SocketSampler 단위 테스트 (ss 서브프로세스는 FakeProcess 로 대체)."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from watchnet.classify.benign import BenignFilter
from watchnet.sampler.parser import ParseError
from watchnet.sampler.ss import (
    CommandFailedError,
    LaunchError,
    ReadError,
    SocketSampler,
)
from watchnet.utils.config import DEFAULT_SS_COMMAND


class TestSocketSampler:
    @pytest.mark.asyncio
    async def test_default_command_arguments(self, make_proc):
        proc = make_proc()
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await SocketSampler().sample()

        args = mock_exec.call_args[0]
        assert list(args) == DEFAULT_SS_COMMAND
        assert args[0] == "ss"
        assert "--process" in args
        assert "--resolve" in args
        # 필터 식은 쉘 없이 단일 인수로 전달된다
        assert args[-1] == "! ( dst = localhost || dst = metadata )"

    @pytest.mark.asyncio
    async def test_records_in_output_order(self, make_proc, line, output):
        proc = make_proc(stdout=output(
            line("93.184.216.34:https", local="10.128.0.5:40001"),
            line("151.101.1.69:https", local="10.128.0.5:40002", state="SYN-SENT"),
            line("[2606:4700::1]:443", local="[2600:1900::5]:40003", program=None),
        ))
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            result = await SocketSampler().sample()

        assert [r.host for r in result.records] == [
            "93.184.216.34", "151.101.1.69", "2606:4700::1",
        ]
        assert result.records[1].state == "SYN-SENT"
        assert result.records[2].program == ""
        assert result.filtered == 0

    @pytest.mark.asyncio
    async def test_benign_hosts_counted_and_discarded(self, make_proc, line, output):
        proc = make_proc(stdout=output(
            line("lga25s71-in-f14.1e100.net:https", local="10.128.0.5:40001"),
            line("93.184.216.34:https", local="10.128.0.5:40002"),
            line("LGA34S32-IN-F3.1E100.NET:https", local="10.128.0.5:40003"),
        ))
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            result = await SocketSampler().sample()

        # 대문자 호스트명은 접미사와 일치하지 않으므로 NAT 관련으로 남는다
        assert [r.host for r in result.records] == ["93.184.216.34", "LGA34S32-IN-F3.1E100.NET"]
        assert result.filtered == 1

    @pytest.mark.asyncio
    async def test_custom_benign_filter(self, make_proc, line, output):
        proc = make_proc(stdout=output(
            line("cache.internal:443"),
            line("93.184.216.34:https"),
        ))
        sampler = SocketSampler(benign=BenignFilter({"benign_suffixes": [".internal"]}))
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            result = await sampler.sample()
        assert [r.host for r in result.records] == ["93.184.216.34"]
        assert result.filtered == 1

    @pytest.mark.asyncio
    async def test_empty_output(self, make_proc):
        with patch("asyncio.create_subprocess_exec", return_value=make_proc()):
            result = await SocketSampler().sample()
        assert result.records == []
        assert result.filtered == 0

    @pytest.mark.asyncio
    async def test_last_line_without_newline(self, make_proc, line):
        proc = make_proc(stdout=line("93.184.216.34:https").encode())
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            result = await SocketSampler().sample()
        assert len(result) == 1

    @pytest.mark.asyncio
    async def test_launch_failure(self):
        with patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("ss not found")):
            with pytest.raises(LaunchError, match="ss not found"):
                await SocketSampler().sample()

    @pytest.mark.asyncio
    async def test_nonzero_exit_includes_stderr(self, make_proc):
        proc = make_proc(stderr=b"Cannot open netlink socket: Permission denied\n", returncode=1)
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(CommandFailedError) as exc_info:
                await SocketSampler().sample()

        err = exc_info.value
        assert err.returncode == 1
        assert "Permission denied" in err.stderr
        assert "Permission denied" in str(err)
        assert "exit status 1" in str(err)

    @pytest.mark.asyncio
    async def test_short_line_aborts_and_kills(self, make_proc, line, output):
        proc = make_proc(stdout=output(
            line("93.184.216.34:https"),
            "tcp ESTAB 0 0",
            line("151.101.1.69:https"),
        ))
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ParseError) as exc_info:
                await SocketSampler().sample()

        message = str(exc_info.value)
        assert "tcp ESTAB 0 0" in message
        # 명령 설명이 메시지에 포함된다
        assert message.startswith("ss --process")
        assert proc.killed

    @pytest.mark.asyncio
    async def test_read_failure(self, make_proc):
        proc = make_proc()

        async def broken_readline():
            raise OSError("broken pipe")

        proc.stdout.readline = broken_readline
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ReadError) as exc_info:
                await SocketSampler().sample()
        assert "processing output" in str(exc_info.value)
        assert "broken pipe" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_cancel_kills_process(self, make_proc):
        proc = make_proc()
        started = asyncio.Event()

        async def hanging_readline():
            started.set()
            await asyncio.sleep(3600)
            return b""

        proc.stdout.readline = hanging_readline
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            task = asyncio.create_task(SocketSampler().sample())
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        assert proc.killed

    def test_description_is_shell_quoted(self):
        sampler = SocketSampler(command=["ss", "state", "! ( dst = localhost )"])
        assert sampler.description == "ss state '! ( dst = localhost )'"
