"""
슬롯 인덱스 모듈

(날짜 오프셋, 하루 안의 슬롯) <-> 1차원 인덱스 변환.
인덱스 i = day_offset * slots_per_day + slot_offset
"""

from datetime import date, datetime, timedelta

from config import GridConfig, slot_minutes
from errors import IndexOutOfBounds


# =============================================================================
# 그리드 크기 (항상 계산해서 사용, 따로 저장하지 않음)
# =============================================================================

def _as_date(d: date | datetime) -> date:
    """시각을 버리고 날짜만 남깁니다."""
    return d.date() if isinstance(d, datetime) else d


def day_count(start: date | datetime, end: date | datetime) -> int:
    """시작~종료 날짜의 일수 (양 끝 포함). 1월 1일~1월 3일 → 3"""
    return (_as_date(end) - _as_date(start)).days + 1


def slots_per_day(cfg: GridConfig) -> int:
    return cfg["slots_per_hour"] * (cfg["end_hour"] - cfg["start_hour"])


def total_slots(start: date | datetime, end: date | datetime, cfg: GridConfig) -> int:
    days = day_count(start, end)
    if days < 1:
        return 0
    return days * slots_per_day(cfg)


def day_dates(start: date | datetime, end: date | datetime) -> list[date]:
    """범위 안의 날짜 리스트"""
    first = _as_date(start)
    return [first + timedelta(days=d) for d in range(max(day_count(start, end), 0))]


# =============================================================================
# 인덱스 변환
# =============================================================================

def to_index(day_offset: int, slot_offset: int, days: int, cfg: GridConfig) -> int:
    per_day = slots_per_day(cfg)
    if not 0 <= day_offset < days:
        raise IndexOutOfBounds(f"day_offset {day_offset} (0 ~ {days - 1})")
    if not 0 <= slot_offset < per_day:
        raise IndexOutOfBounds(f"slot_offset {slot_offset} (0 ~ {per_day - 1})")
    return day_offset * per_day + slot_offset


def from_index(index: int, days: int, cfg: GridConfig) -> tuple[int, int]:
    per_day = slots_per_day(cfg)
    if not 0 <= index < days * per_day:
        raise IndexOutOfBounds(f"index {index} (0 ~ {days * per_day - 1})")
    return divmod(index, per_day)


def is_hour_boundary(slot_offset: int, cfg: GridConfig) -> bool:
    return slot_offset % cfg["slots_per_hour"] == 0


def clamp_index(index: int, total: int) -> int:
    """드래그 중 그리드 밖으로 나간 좌표를 끝 칸으로 맞춥니다."""
    if total <= 0:
        raise IndexOutOfBounds("빈 그리드")
    return min(max(index, 0), total - 1)


# =============================================================================
# 표시용
# =============================================================================

def slot_time(start: date | datetime, index: int, days: int, cfg: GridConfig) -> datetime:
    """슬롯이 시작하는 시각"""
    day_offset, slot_offset = from_index(index, days, cfg)
    day = _as_date(start) + timedelta(days=day_offset)
    return datetime(day.year, day.month, day.day, cfg["start_hour"]) + timedelta(
        minutes=slot_offset * slot_minutes(cfg)
    )


def slot_label(slot_offset: int, cfg: GridConfig) -> str:
    """정시 슬롯이면 '9 AM', '12 PM' 같은 라벨, 아니면 빈 문자열"""
    if not is_hour_boundary(slot_offset, cfg):
        return ""
    hour = cfg["start_hour"] + slot_offset // cfg["slots_per_hour"]
    suffix = "PM" if hour >= 12 and hour != 24 else "AM"
    shown = hour % 12 or 12
    return f"{shown} {suffix}"
