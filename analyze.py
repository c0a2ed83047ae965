from datetime import date, datetime, timedelta
from itertools import combinations
from typing import Generator
from collections import defaultdict

from config import GridConfig, slot_minutes
from grid import day_count, slot_time, slots_per_day
from schemas import ResponseData


# =============================================================================
# 기본 함수
# =============================================================================

def find_available_indices(
    responses: list[ResponseData],
    participants: list[str],
    total_slots: int,
) -> Generator[int, None, None]:
    """
    특정 참가자들이 모두 가능한 슬롯 인덱스를 찾습니다.
    응답이 없는 참가자는 항상 불가능으로 봅니다.
    """
    vectors = {r["user_name"]: r.get("availability") or [] for r in responses}
    selected = [vectors.get(p, []) for p in participants]
    for i in range(total_slots):
        if all(i < len(v) and v[i] == 1 for v in selected):
            yield i


# =============================================================================
# 1. 연속된 시간대 묶기
# =============================================================================

def merge_consecutive_slots(
    slots: list[datetime],
    slot_minutes: int = 15,
    min_duration_minutes: int = 0
) -> list[tuple[datetime, datetime]]:
    """
    연속된 시간 슬롯들을 묶어서 (시작, 종료) 튜플 리스트로 반환합니다.
    날짜가 바뀌는 곳(전날 마지막 슬롯 → 다음날 첫 슬롯)은 시각이 이어지지 않으므로 끊깁니다.

    Args:
        slots: 슬롯 시작 시각 리스트
        slot_minutes: 슬롯 간격 (분)
        min_duration_minutes: 최소 연속 시간 (분). 이보다 짧은 범위는 제외

    Returns:
        [(시작시간, 종료시간), ...] 형태의 리스트
    """
    if not slots:
        return []

    step = timedelta(minutes=slot_minutes)
    ordered = sorted(slots)
    merged = []
    start = end = ordered[0]

    for slot in ordered[1:]:
        if slot - end == step:
            end = slot
        else:
            merged.append((start, end + step))
            start = end = slot
    merged.append((start, end + step))

    if min_duration_minutes > 0:
        min_duration = timedelta(minutes=min_duration_minutes)
        merged = [(s, e) for s, e in merged if (e - s) >= min_duration]

    return merged


def format_time_range(start: datetime, end: datetime) -> str:
    """'14:00 ~ 16:30 (2시간 30분)' 형태로 포맷팅합니다."""
    hours, remainder = divmod(int((end - start).total_seconds()), 3600)
    minutes = remainder // 60

    parts = []
    if hours:
        parts.append(f"{hours}시간")
    if minutes:
        parts.append(f"{minutes}분")

    return f"{start.strftime('%H:%M')} ~ {end.strftime('%H:%M')} ({' '.join(parts)})"


# =============================================================================
# 2. 날짜별 그룹핑
# =============================================================================

def group_by_date(
    time_ranges: list[tuple[datetime, datetime]]
) -> dict[str, list[tuple[datetime, datetime]]]:
    """
    시간 범위들을 날짜별로 그룹핑합니다.

    Returns:
        {"2025-01-05": [(시작, 종료), ...], ...} (날짜순)
    """
    grouped = defaultdict(list)
    for start, end in time_ranges:
        grouped[start.strftime("%Y-%m-%d")].append((start, end))
    return dict(sorted(grouped.items()))


def get_available_times_grouped(
    responses: list[ResponseData],
    participants: list[str],
    start_date: date,
    end_date: date,
    cfg: GridConfig,
    min_duration_minutes: int = 60
) -> dict[str, list[str]]:
    """
    참가자들이 모두 가능한 시간을 날짜별로 묶어서 반환합니다.

    Args:
        responses: 응답 목록
        participants: 참가자 이름 리스트
        start_date, end_date: 이벤트 범위
        cfg: 그리드 설정
        min_duration_minutes: 최소 연속 시간 (분). 기본값 60분

    Returns:
        {"2025-01-05": ["14:00 ~ 16:30 (2시간 30분)", ...], ...}
    """
    days = day_count(start_date, end_date)
    indices = find_available_indices(responses, participants, days * slots_per_day(cfg))
    slots = [slot_time(start_date, i, days, cfg) for i in indices]

    merged = merge_consecutive_slots(slots, slot_minutes(cfg), min_duration_minutes)
    return {
        date_str: [format_time_range(s, e) for s, e in ranges]
        for date_str, ranges in group_by_date(merged).items()
    }


# =============================================================================
# 3. 대안 제시
# =============================================================================

def find_alternatives(
    responses: list[ResponseData],
    participants: list[str],
    start_date: date,
    end_date: date,
    cfg: GridConfig,
    max_missing: int = 1
) -> dict[str, dict[str, list[str]]]:
    """
    전원이 안 될 때, N-1명 (또는 N-max_missing명) 가능한 시간을 찾습니다.

    Returns:
        {"빠지는 사람 제외": {"2025-01-05": ["14:00 ~ 16:30 (2시간 30분)"], ...}, ...}
    """
    alternatives = {}
    for i in range(1, min(max_missing + 1, len(participants))):
        for missing in combinations(participants, i):
            remaining = [p for p in participants if p not in missing]
            grouped = get_available_times_grouped(responses, remaining, start_date, end_date, cfg)
            if grouped:
                alternatives[", ".join(missing) + " 제외"] = grouped
    return alternatives


def find_who_blocks(
    responses: list[ResponseData],
    participants: list[str],
    total_slots: int
) -> dict[str, int]:
    """
    누가 가장 많은 시간대를 막고 있는지 분석합니다.

    Returns:
        {"이름": 해당 인원 제외시 추가되는 슬롯 수, ...} (내림차순 정렬)
    """
    base = set(find_available_indices(responses, participants, total_slots))
    blockers = {}

    for person in participants:
        remaining = [p for p in participants if p != person]
        added = len(set(find_available_indices(responses, remaining, total_slots)) - base)
        if added > 0:
            blockers[person] = added

    return dict(sorted(blockers.items(), key=lambda x: -x[1]))
