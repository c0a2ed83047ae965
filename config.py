"""
설정 모듈

우선순위 (뒤가 이김):
  1) 기본값
  2) YAML 파일 ($GROUPGRID_CONFIG 또는 ./config.yaml)
  3) 환경 변수 (GROUPGRID_*)
  4) overrides 인자
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, TypedDict

import yaml

from errors import ConfigError

logger = logging.getLogger(__name__)


class GridConfig(TypedDict):
    start_hour: int              # 그리드 시작 시각 (포함)
    end_hour: int                # 그리드 종료 시각 (미포함)
    slots_per_hour: int          # 시간당 슬롯 수 (4 = 15분 단위)
    max_span_days: int | None    # 최대 선택 일수, None 이면 제한 없음
    default_days: int            # 이벤트 생성 전 기본 일수
    supabase_url: str
    supabase_key: str
    poll_seconds: int            # 응답 새로고침 주기 (초)
    public_url: str              # 공유 링크에 쓸 앱 주소


DEFAULTS: GridConfig = {
    "start_hour": 8,
    "end_hour": 20,
    "slots_per_hour": 4,
    "max_span_days": 7,
    "default_days": 3,
    "supabase_url": "",
    "supabase_key": "",
    "poll_seconds": 5,
    "public_url": "http://localhost:8501",
}

ENV_PREFIX = "GROUPGRID_"
_INT_KEYS = ("start_hour", "end_hour", "slots_per_hour", "default_days", "poll_seconds")


def _config_path() -> Path:
    return Path(os.environ.get(f"{ENV_PREFIX}CONFIG", "config.yaml"))


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: 최상위는 mapping 이어야 합니다")
    logger.debug("Loaded config file %s", path)
    return data


def _load_env() -> dict[str, Any]:
    found: dict[str, Any] = {}
    for key in DEFAULTS:
        raw = os.environ.get(ENV_PREFIX + key.upper())
        if raw is not None:
            found[key] = raw
    return found


def _coerce(cfg: dict[str, Any]) -> GridConfig:
    try:
        for key in _INT_KEYS:
            cfg[key] = int(cfg[key])
        span = cfg["max_span_days"]
        if span in (None, "", "none", "None"):
            cfg["max_span_days"] = None
        else:
            cfg["max_span_days"] = int(span)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"설정 값 변환 실패: {e}") from e
    cfg["supabase_url"] = str(cfg["supabase_url"] or "").rstrip("/")
    cfg["supabase_key"] = str(cfg["supabase_key"] or "")
    cfg["public_url"] = str(cfg["public_url"] or "")
    return cfg  # type: ignore[return-value]


def validate_config(cfg: GridConfig) -> None:
    """
    설정 값을 검사합니다.

    Raises:
        ConfigError: 시간 범위, 슬롯 간격, 최대 일수가 잘못된 경우
    """
    if not 0 <= cfg["start_hour"] < cfg["end_hour"] <= 24:
        raise ConfigError(
            f"잘못된 시간 범위: {cfg['start_hour']}시 ~ {cfg['end_hour']}시"
        )
    if cfg["slots_per_hour"] <= 0 or 60 % cfg["slots_per_hour"] != 0:
        raise ConfigError(f"slots_per_hour 는 60의 약수여야 합니다: {cfg['slots_per_hour']}")
    if cfg["max_span_days"] is not None and cfg["max_span_days"] < 1:
        raise ConfigError(f"max_span_days 는 1 이상이어야 합니다: {cfg['max_span_days']}")
    if cfg["default_days"] < 1:
        raise ConfigError(f"default_days 는 1 이상이어야 합니다: {cfg['default_days']}")


def load_config(overrides: dict[str, Any] | None = None) -> GridConfig:
    """
    설정을 합쳐서 반환합니다.

    Args:
        overrides: 마지막에 덮어쓸 값들 (테스트용)

    Returns:
        검증된 GridConfig
    """
    merged: dict[str, Any] = dict(DEFAULTS)
    merged.update(_load_yaml(_config_path()))
    merged.update(_load_env())
    if overrides:
        merged.update(overrides)

    unknown = set(merged) - set(DEFAULTS)
    if unknown:
        raise ConfigError(f"알 수 없는 설정 키: {', '.join(sorted(unknown))}")

    cfg = _coerce(merged)
    validate_config(cfg)
    return cfg


def slot_minutes(cfg: GridConfig) -> int:
    """슬롯 간격 (분)"""
    return 60 // cfg["slots_per_hour"]
