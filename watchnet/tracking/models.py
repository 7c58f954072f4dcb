"""피크 리포트 모델 - 최대 연결 수 / 고유 연결 수 갱신 시 출력되는 블록."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from watchnet.sampler.models import ConnectionRecord


def now_rfc3339() -> str:
    """로컬 시간대 오프셋을 포함한 RFC 3339 타임스탬프 (초 단위)."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


@dataclass
class PeakConnectionsReport:
    """한 사이클의 NAT 관련 연결 수가 이전 최댓값을 넘었을 때의 리포트."""
    timestamp: str
    count:     int
    records:   list[ConnectionRecord] = field(default_factory=list)

    kind = "peak_connections"

    def render_text(self) -> str:
        lines = [f"{self.timestamp}\treached {self.count} connected ports:"]
        for r in self.records:
            lines.append(f"{r.state}\t{r.endpoint}\t{r.program}")
        return "\n".join(lines) + "\n\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "timestamp": self.timestamp,
            "count": self.count,
            "connections": [
                {
                    "state": r.state,
                    "host": r.host,
                    "port": r.port,
                    "local": r.local_address,
                    "program": r.program,
                }
                for r in self.records
            ],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass
class PeakUniqueReport:
    """누적 고유 (remote, local) 쌍 수가 이전 최댓값을 넘었을 때의 리포트.

    remotes 는 (원격 addr:port, 로컬 주소 수) 목록이며 원격 주소 오름차순이다.
    """
    timestamp:       str
    total:           int
    distinct_remote: int
    remotes:         list[tuple[str, int]] = field(default_factory=list)

    kind = "peak_unique"

    def render_text(self) -> str:
        lines = [
            self.timestamp,
            f"saw {self.total} connections with {self.distinct_remote} unique remote addrs",
        ]
        for remote, n_locals in self.remotes:
            lines.append(f"{remote}\t{n_locals}")
        return "\n".join(lines) + "\n\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "timestamp": self.timestamp,
            "total": self.total,
            "distinct_remotes": self.distinct_remote,
            "remotes": {remote: n for remote, n in self.remotes},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


Report = PeakConnectionsReport | PeakUniqueReport
