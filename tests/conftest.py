"""
Pytest fixtures.
"""

import os
import sys
from datetime import date
from pathlib import Path

import pytest

# 최상위 모듈(grid, session, ...)을 바로 import 할 수 있도록
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from config import load_config  # noqa: E402
from store.memory import InMemoryStore  # noqa: E402


@pytest.fixture
def cfg(monkeypatch, tmp_path):
    """기본 설정 (8시~20시, 15분 단위, 최대 7일). 주변 환경/파일 영향 없음"""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("GROUPGRID_"):
            monkeypatch.delenv(key)
    return load_config()


@pytest.fixture
def small_cfg(cfg):
    """하루 4슬롯 (9시~10시, 15분 단위)짜리 작은 그리드"""
    return {**cfg, "start_hour": 9, "end_hour": 10, "slots_per_hour": 4}


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def today():
    return date(2025, 1, 1)
