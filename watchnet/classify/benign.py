"""NAT 포트 집계에서 제외할 benign 원격 호스트 필터."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("watchnet.classify.benign")

# Google 인프라의 역방향 해석 호스트명 접미사. 이 연결들은 Cloud NAT 를 거치지 않는다.
DEFAULT_BENIGN_SUFFIXES: tuple[str, ...] = (".1e100.net",)


class BenignFilter:
    """원격 호스트명이 알려진 안전한 엔드포인트인지 검사한다.

    지원 기능:
    - 정확한 호스트명 일치
    - 호스트명 접미사 일치 (예: ".1e100.net")

    기본적으로 ss 가 출력한 호스트명을 그대로 비교한다 (대소문자 구분).
    benign_ignore_case 가 켜져 있으면 대소문자를 무시한다.
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        """설정 딕셔너리(sampler 섹션)에서 필터를 초기화한다."""
        config = config or {}
        suffixes = config.get("benign_suffixes")
        if suffixes is None:
            suffixes = DEFAULT_BENIGN_SUFFIXES
        self._ignore_case = bool(config.get("benign_ignore_case", False))
        self._suffixes: list[str] = [self._fold(s) for s in suffixes]
        self._hosts: set[str] = {self._fold(h) for h in config.get("benign_hosts", [])}

        logger.debug(
            "BenignFilter loaded: %d hosts, %d suffixes (ignore_case=%s)",
            len(self._hosts), len(self._suffixes), self._ignore_case,
        )

    def _fold(self, name: str) -> str:
        return name.lower() if self._ignore_case else name

    def is_benign(self, host: str | None) -> bool:
        """호스트가 benign 목록에 해당하는지 확인한다 (정확 일치 또는 접미사 일치)."""
        if not host:
            return False
        name = self._fold(host)
        if name in self._hosts:
            return True
        for suffix in self._suffixes:
            if name.endswith(suffix):
                return True
        return False
