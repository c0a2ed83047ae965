"""
날짜 범위 선택 모듈

상태: empty → start_only(시작) → full(시작, 종료)
모든 함수는 새 RangeSelection 을 반환하고 인자를 바꾸지 않습니다.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import TypedDict

from grid import day_count

EMPTY = "empty"
START_ONLY = "start_only"
FULL = "full"


class RangeSelection(TypedDict):
    start: date | None
    end: date | None
    picker_open: bool
    picker_month: date           # 달력에 보이는 달 (항상 1일)


def _clean(day: date | datetime) -> date:
    return day.date() if isinstance(day, datetime) else day


def _first_of_month(day: date) -> date:
    return day.replace(day=1)


def empty_selection(today: date) -> RangeSelection:
    return {"start": None, "end": None, "picker_open": False, "picker_month": _first_of_month(today)}


def initial_selection(today: date, default_days: int = 3) -> RangeSelection:
    """이벤트 생성 전 기본 범위 (오늘부터 default_days 일)"""
    today = _clean(today)
    return {
        "start": today,
        "end": today + timedelta(days=default_days - 1),
        "picker_open": False,
        "picker_month": _first_of_month(today),
    }


def fixed_selection(start: date, end: date) -> RangeSelection:
    """이미 만들어진 이벤트의 범위"""
    return {"start": start, "end": end, "picker_open": False, "picker_month": _first_of_month(start)}


def phase(sel: RangeSelection) -> str:
    if sel["start"] is None:
        return EMPTY
    if sel["end"] is None:
        return START_ONLY
    return FULL


# =============================================================================
# 상태 전이
# =============================================================================

def click_day(
    sel: RangeSelection,
    day: date | datetime,
    max_span_days: int | None,
    locked: bool = False,
) -> RangeSelection:
    """
    달력에서 날짜를 눌렀을 때의 다음 상태를 계산합니다.

    Args:
        sel: 현재 선택 상태
        day: 누른 날짜 (시각은 버림)
        max_span_days: 최대 일수 (양 끝 포함). None 이면 제한 없음
        locked: 이벤트가 이미 있으면 True. 이때는 아무것도 바뀌지 않음

    Returns:
        새 RangeSelection
    """
    if locked:
        return sel

    day = _clean(day)
    new = dict(sel)
    current = phase(sel)

    if current in (EMPTY, FULL):
        new.update(start=day, end=None)
    elif day < sel["start"]:
        new.update(start=day)
    elif max_span_days is not None and day_count(sel["start"], day) > max_span_days:
        # 너무 길면 그 날짜부터 다시 선택
        new.update(start=day, end=None)
    else:
        new.update(end=day, picker_open=False)

    return new  # type: ignore[return-value]


def entered_full(before: RangeSelection, after: RangeSelection) -> bool:
    """전이로 새 범위가 완성됐는지 (버퍼를 새로 만들어야 하는지)"""
    return phase(before) != FULL and phase(after) == FULL


def change_month(sel: RangeSelection, delta: int) -> RangeSelection:
    """보이는 달만 옮깁니다. 선택된 날짜는 그대로."""
    month = sel["picker_month"]
    idx = month.year * 12 + (month.month - 1) + delta
    return {**sel, "picker_month": date(idx // 12, idx % 12 + 1, 1)}


def toggle_picker(sel: RangeSelection, locked: bool = False) -> RangeSelection:
    if locked:
        return sel
    return {**sel, "picker_open": not sel["picker_open"]}


# =============================================================================
# 미니 달력
# =============================================================================

def month_cells(month: date) -> list[tuple[date, bool]]:
    """
    일요일부터 시작하는 6주(42칸) 달력을 만듭니다.

    Returns:
        [(날짜, 이번 달 여부), ...]
    """
    first = _first_of_month(month)
    lead = (first.weekday() + 1) % 7          # 일요일 = 0
    days_in_month = calendar.monthrange(first.year, first.month)[1]
    cells = []
    for i in range(42):
        day = first + timedelta(days=i - lead)
        cells.append((day, 0 <= i - lead < days_in_month))
    return cells


def day_role(day: date, sel: RangeSelection) -> str:
    """'endpoint' | 'inside' | 'outside'"""
    if day in (sel["start"], sel["end"]):
        return "endpoint"
    if phase(sel) == FULL and sel["start"] < day < sel["end"]:
        return "inside"
    return "outside"


def range_label(sel: RangeSelection) -> str:
    """'1/5 - 1/7' 형태"""
    def fmt(d):
        return f"{d.month}/{d.day}"

    if sel["start"] is None:
        return "선택"
    end = fmt(sel["end"]) if sel["end"] else "종료일 선택"
    return f"{fmt(sel['start'])} - {end}"
