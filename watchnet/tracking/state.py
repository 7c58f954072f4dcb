"""CycleState - 사이클 간에 유지되는 NAT 포트 관측 상태."""

from __future__ import annotations

import logging
from collections import OrderedDict

logger = logging.getLogger("watchnet.tracking.state")


class CycleState:
    """프로세스 수명 동안 유지되는 누적 상태.

    peak_nat_connections
      단일 사이클의 NAT 관련 레코드 수 중 최댓값

    remote_to_locals
      원격 addr:port → 이 원격에 연결된 적 있는 로컬 addr:port 집합

    total_unique_connections
      remote_to_locals 의 집합 크기 합계. (remote, local) 쌍마다 한 번만 증가

    peak_unique_connections
      total_unique_connections 가 도달한 최댓값

    max_remotes 가 0 보다 크면 가장 오래 관측되지 않은 원격부터 제거한다.
    제거된 원격의 로컬 수만큼 total_unique_connections 가 줄지만 peak 값은 내려가지 않는다.
    제거된 원격의 쌍은 기억하지 않으므로 다시 관측되면 새 쌍으로 집계된다.
    """

    def __init__(self, max_remotes: int = 0) -> None:
        self.max_remotes = int(max_remotes)
        self.peak_nat_connections = 0
        self.peak_unique_connections = 0
        self.total_unique_connections = 0
        self.evicted_remotes = 0
        self.remote_to_locals: OrderedDict[str, set[str]] = OrderedDict()

    @property
    def distinct_remote_count(self) -> int:
        """관측된 서로 다른 원격 주소 수."""
        return len(self.remote_to_locals)

    def register(self, remote: str, local: str) -> bool:
        """(remote, local) 쌍을 기록한다. 처음 보는 쌍이면 True 를 반환한다."""
        locals_ = self.remote_to_locals.get(remote)
        if locals_ is None:
            locals_ = set()
            self.remote_to_locals[remote] = locals_
        elif self.max_remotes > 0:
            self.remote_to_locals.move_to_end(remote)

        is_new = local not in locals_
        if is_new:
            locals_.add(local)
            self.total_unique_connections += 1

        if self.max_remotes > 0:
            self._evict()
        return is_new

    def _evict(self) -> None:
        """max_remotes 를 넘는 만큼 가장 오래된 원격을 제거한다 (LRU)."""
        while len(self.remote_to_locals) > self.max_remotes:
            remote, locals_ = self.remote_to_locals.popitem(last=False)
            self.total_unique_connections -= len(locals_)
            self.evicted_remotes += 1
            logger.debug("Evicted remote %s (%d locals)", remote, len(locals_))

    def remote_counts(self) -> list[tuple[str, int]]:
        """(원격 주소, 로컬 수) 목록을 원격 주소 오름차순으로 반환한다."""
        return [(r, len(self.remote_to_locals[r])) for r in sorted(self.remote_to_locals)]

    def snapshot(self) -> dict[str, int]:
        """현재 카운터 값을 직렬화한다."""
        return {
            "peak_nat_connections": self.peak_nat_connections,
            "peak_unique_connections": self.peak_unique_connections,
            "total_unique_connections": self.total_unique_connections,
            "distinct_remotes": self.distinct_remote_count,
            "evicted_remotes": self.evicted_remotes,
        }
