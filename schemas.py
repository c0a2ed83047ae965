from datetime import date
from typing import TypedDict, List

class EventData(TypedDict):
    id: str                                  # 이벤트 ID (공유 링크의 ?id=)
    name: str                                # 이벤트 이름
    start_date: date                         # 시작 날짜 (포함)
    end_date: date                           # 종료 날짜 (포함)

class ResponseData(TypedDict):
    user_name: str                           # 응답자 이름
    availability: List[int]                  # 슬롯별 0/1 (길이 = total_slots)

class AggregateCell(TypedDict):
    available_count: int                     # 가능한 인원 수
    available_names: List[str]               # 가능한 사람들 (응답 순서)
    unavailable_names: List[str]             # 안 되는 사람들 (응답 순서)
    intensity: float                         # available_count / 전체 응답자 수
