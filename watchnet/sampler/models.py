"""소켓 테이블 샘플링 모델 - ConnectionRecord, SampleResult."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ConnectionRecord:
    """ss 출력 한 줄의 정규화된 표현.

    수명은 한 사이클이다. remote_address / local_address 원문 문자열만
    CycleState 의 중복 제거 키로 남는다.
    """
    state:          str
    host:           str
    port:           str
    remote_address: str   # "host:port" 원문 (ss 출력 그대로)
    local_address:  str   # "addr:port" 원문, 분해하지 않음
    program:        str = ""

    @property
    def endpoint(self) -> str:
        """리포트용 'host:port' 표기."""
        return f"{self.host}:{self.port}"


@dataclass
class SampleResult:
    """한 사이클의 샘플링 결과.

    records 는 ss 출력 순서를 유지하는 NAT 관련 레코드 목록이고,
    filtered 는 benign 으로 분류되어 버려진 레코드 수다.
    """
    records:  list[ConnectionRecord] = field(default_factory=list)
    filtered: int = 0

    def __len__(self) -> int:
        return len(self.records)
