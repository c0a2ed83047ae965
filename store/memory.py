"""
메모리 저장소

Supabase 없이 돌릴 때(로컬 실행, 테스트) 쓰는 저장소입니다.
"""

import logging
import uuid
from datetime import date
from typing import Callable

from errors import CreateFailed, NotFound, SaveFailed
from schemas import EventData, ResponseData

logger = logging.getLogger(__name__)


class Subscription:
    """
    변경 알림 구독. Supabase 쪽 PollingSubscription 과 같은 방식으로 씁니다.

    저장은 표시만 해두고(notify) 콜백은 check() 에서 부릅니다.
    저장한 사람의 스크립트 실행 안에서 다른 세션의 상태를 바꾸지 않기 위함입니다.
    unsubscribe() 후에는 콜백이 불리지 않습니다.
    """

    def __init__(self, listeners: list, on_change: Callable[[], None]):
        self._listeners = listeners
        self._on_change = on_change
        self._dirty = False
        self.active = True
        listeners.append(self)

    def notify(self) -> None:
        if self.active:
            self._dirty = True

    def check(self) -> bool:
        """표시된 변경이 있으면 on_change 를 한 번 부르고 True"""
        if not (self.active and self._dirty):
            return False
        self._dirty = False
        self._on_change()
        return True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._listeners.remove(self)


class InMemoryStore:
    def __init__(self):
        self._events: dict[str, EventData] = {}
        self._responses: dict[str, dict[str, list[int]]] = {}   # {event_id: {이름: 벡터}}
        self._listeners: dict[str, list] = {}

    def create_event(self, name: str, start_date: date, end_date: date) -> str:
        if not name.strip():
            raise CreateFailed("이벤트 이름이 비어 있습니다")
        if start_date > end_date:
            raise CreateFailed(f"잘못된 날짜 범위: {start_date} ~ {end_date}")

        event_id = uuid.uuid4().hex
        self._events[event_id] = {
            "id": event_id,
            "name": name,
            "start_date": start_date,
            "end_date": end_date,
        }
        self._responses[event_id] = {}
        logger.info("Created event %s (%s ~ %s)", event_id, start_date, end_date)
        return event_id

    def load_event(self, event_id: str) -> EventData:
        if event_id not in self._events:
            raise NotFound(event_id)
        return dict(self._events[event_id])  # type: ignore[return-value]

    def list_responses(self, event_id: str) -> list[ResponseData]:
        if event_id not in self._events:
            raise NotFound(event_id)
        # dict 는 처음 들어온 순서를 유지 → 덮어써도 순서 그대로
        return [
            {"user_name": name, "availability": list(vector)}
            for name, vector in self._responses[event_id].items()
        ]

    def upsert_response(self, event_id: str, user_name: str, availability: list[int]) -> None:
        if event_id not in self._events:
            raise SaveFailed(f"이벤트가 없습니다: {event_id}")
        if not user_name.strip():
            raise SaveFailed("이름이 비어 있습니다")

        self._responses[event_id][user_name] = list(availability)
        logger.info("Saved response of %r for event %s", user_name, event_id)

        for subscription in list(self._listeners.get(event_id, [])):
            subscription.notify()

    def subscribe_to_response_changes(
        self, event_id: str, on_change: Callable[[], None]
    ) -> Subscription:
        return Subscription(self._listeners.setdefault(event_id, []), on_change)
