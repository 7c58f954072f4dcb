"""기본값 병합 기능을 갖춘 YAML 설정 로더."""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# ss 명령: 프로세스 정보, 한 줄 출력, 헤더 없음, 호스트명 해석, TCP+UDP,
# 연결 상태만, localhost / 메타데이터 서버 목적지 제외
DEFAULT_SS_COMMAND: list[str] = [
    "ss",
    "--process",
    "--oneline",
    "--no-header",
    "--resolve",
    "--tcp",
    "--udp",
    "state",
    "connected",
    "! ( dst = localhost || dst = metadata )",
]

DEFAULTS: dict[str, Any] = {
    "sampler": {
        "command": DEFAULT_SS_COMMAND,
        "benign_suffixes": [".1e100.net"],
        "benign_hosts": [],
        "benign_ignore_case": False,
    },
    "tracking": {
        "unique_connections": True,
        "max_remotes": 0,
    },
    "service": {
        "interval_seconds": 0,
        "on_error": "abort",
    },
    "report": {
        "format": "text",
    },
    "metrics": {
        "enabled": False,
        "host": "0.0.0.0",
        "port": 9464,
    },
    "logging": {
        "level": "INFO",
        "format": "text",
        "directory": None,
        "max_bytes": 10_485_760,
        "backup_count": 5,
    },
}


def _to_bool(value: str) -> bool:
    """환경변수 문자열을 bool로 변환한다 ('1', 'true', 'yes', 'on' → True)."""
    return value.strip().lower() in ("1", "true", "yes", "on")


# 환경변수 → Config 경로 매핑
_ENV_OVERRIDES: list[tuple[str, str, Any]] = [
    ("WATCHNET_INTERVAL_SECONDS", "service.interval_seconds", float),
    ("WATCHNET_ON_ERROR", "service.on_error", str),
    ("WATCHNET_REPORT_FORMAT", "report.format", str),
    ("WATCHNET_LOG_LEVEL", "logging.level", str),
    ("WATCHNET_METRICS_ENABLED", "metrics.enabled", _to_bool),
    ("WATCHNET_METRICS_PORT", "metrics.port", int),
]


def _deep_merge(base: dict, override: dict) -> dict:
    """override를 base에 재귀적으로 병합하여 새 dict를 반환한다."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _set_nested(data: dict, dotted_key: str, value: Any) -> None:
    """점 표기법을 사용하여 중첩 dict에 값을 설정한다."""
    keys = dotted_key.split(".")
    current = data
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def _apply_env_overrides(data: dict) -> None:
    """환경변수가 설정되어 있으면 YAML 값을 오버라이드한다."""
    for env_var, config_path, cast in _ENV_OVERRIDES:
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested(data, config_path, cast(value))


class Config:
    """YAML 파일과 기본값에서 로드된 불변 설정 컨테이너."""

    def __init__(self, data: dict[str, Any], config_path: str | Path | None = None) -> None:
        self._data = data
        self.config_path: str | None = str(config_path) if config_path else None

    @classmethod
    def defaults(cls) -> Config:
        """설정 파일 없이 내장 기본값만으로 Config를 만든다."""
        return cls(copy.deepcopy(DEFAULTS))

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> Config:
        """YAML 파일에서 설정을 로드하여 내장 기본값 위에 병합한다.

        경로 결정 순서: 인자 → 환경변수 WATCHNET_CONFIG → 프로젝트 루트의
        config/default.yaml. 명시적으로 지정한 파일이 없으면 FileNotFoundError,
        기본 경로에 파일이 없으면 내장 기본값만 사용한다.
        .env 파일이 존재하면 자동으로 로드하여 환경변수를 설정한다.
        """
        load_dotenv()

        explicit = True
        if config_path is None:
            config_path = os.environ.get("WATCHNET_CONFIG")
        if config_path is None:
            explicit = False
            project_root = Path(__file__).resolve().parent.parent.parent
            config_path = project_root / "config" / "default.yaml"

        config_path = Path(config_path)
        if not config_path.exists():
            if explicit:
                raise FileNotFoundError(f"Config file not found: {config_path}")
            data = copy.deepcopy(DEFAULTS)
            _apply_env_overrides(data)
            return cls(data)

        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        inner = raw.get("watchnet", raw)
        data = _deep_merge(copy.deepcopy(DEFAULTS), inner)
        _apply_env_overrides(data)

        return cls(data, config_path=config_path)

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """점 표기법으로 값을 조회한다: 'service.on_error' -> config['service']['on_error']."""
        keys = dotted_key.split(".")
        current = self._data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    def section(self, key: str) -> dict[str, Any]:
        """주어진 최상위 키에 대한 하위 dict를 반환한다."""
        return self._data.get(key, {})
