"""ss 한 줄 출력 파서.

ss --oneline 출력은 공백으로 구분된 필드이며 순서 위치로만 접근한다:

    [0] netid  [1] state  [2] recv-q  [3] send-q
    [4] local addr:port  [5] peer addr:port  [6] process (선택)

필드 순서나 개수가 달라지면 감지할 방법이 없으므로 ParseError 로 즉시 실패한다.
"""

from __future__ import annotations

from watchnet.sampler.models import ConnectionRecord

MIN_FIELDS = 6

_IDX_STATE   = 1
_IDX_LOCAL   = 4
_IDX_REMOTE  = 5
_IDX_PROGRAM = 6


class ParseError(ValueError):
    """ss 출력 파싱 실패. 출력 형식 가정이 깨진 경우이므로 복구하지 않는다."""


def split_host_port(hostport: str) -> tuple[str, str]:
    """'host:port' 또는 '[ipv6]:port' 를 (host, port) 로 분리한다.

    마지막 콜론을 기준으로 나누며, 대괄호로 감싼 IPv6 리터럴은 괄호를 벗긴다.
    포트 누락, 괄호 불균형, 괄호 없는 IPv6 (콜론이 여러 개) 는 ParseError.
    포트 문자열은 숫자가 아닐 수 있다 (--resolve 시 'https' 등 서비스명).
    """
    i = hostport.rfind(":")
    if i < 0:
        raise ParseError(f"missing port in address: {hostport!r}")

    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ParseError(f"missing ']' in address: {hostport!r}")
        if end + 1 == len(hostport):
            raise ParseError(f"missing port in address: {hostport!r}")
        if end + 1 != i:
            # ']' 바로 뒤가 마지막 콜론이어야 한다
            if hostport[end + 1] == ":":
                raise ParseError(f"too many colons in address: {hostport!r}")
            raise ParseError(f"missing port in address: {hostport!r}")
        host = hostport[1:end]
        if "[" in hostport[1:] or "]" in hostport[end + 1:]:
            raise ParseError(f"unexpected bracket in address: {hostport!r}")
    else:
        host = hostport[:i]
        if ":" in host:
            raise ParseError(f"too many colons in address: {hostport!r}")
        if "[" in hostport or "]" in hostport:
            raise ParseError(f"unexpected bracket in address: {hostport!r}")

    port = hostport[i + 1:]
    return host, port


def parse_line(line: str) -> ConnectionRecord:
    """ss 출력 한 줄을 ConnectionRecord 로 변환한다.

    Raises:
        ParseError: 필드가 6개 미만이거나 원격 주소를 분리할 수 없는 경우.
    """
    fields = line.split()
    if len(fields) < MIN_FIELDS:
        raise ParseError(f"unexpected short line: {line!r}")

    remote = fields[_IDX_REMOTE]
    try:
        host, port = split_host_port(remote)
    except ParseError as exc:
        raise ParseError(f"unexpected remote address {remote!r} in line {line!r}") from exc

    if not host or not port:
        raise ParseError(f"unexpected remote address {remote!r} in line {line!r}")

    return ConnectionRecord(
        state          = fields[_IDX_STATE],
        host           = host,
        port           = port,
        remote_address = remote,
        local_address  = fields[_IDX_LOCAL],
        program        = fields[_IDX_PROGRAM] if len(fields) > _IDX_PROGRAM else "",
    )
