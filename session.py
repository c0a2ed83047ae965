"""
세션 컨트롤러

한 사용자의 화면 상태(선택한 날짜, 내 버퍼, 드래그, 불러온 응답)를 한곳에서 관리합니다.
저장소는 create_event / load_event / list_responses / upsert_response /
subscribe_to_response_changes 를 가진 객체면 됩니다 (store/ 참고).
"""

import logging
from datetime import date
from urllib.parse import urlencode

import date_range
from aggregate import cell_at, heatmap, merge_local, names_label
from buffer import AvailabilityBuffer, PaintGesture
from config import GridConfig
from errors import IndexOutOfBounds, LoadFailed, ValidationError
from grid import day_count, total_slots
from schemas import AggregateCell, EventData, ResponseData

logger = logging.getLogger(__name__)

DEFAULT_EVENT_NAME = "Team Sync"


class SchedulerSession:
    def __init__(self, store, cfg: GridConfig, today: date | None = None):
        self.store = store
        self.cfg = cfg
        self.event_id: str | None = None
        self.event_name = DEFAULT_EVENT_NAME
        self.user_name = ""
        self.selection = date_range.initial_selection(today or date.today(), cfg["default_days"])
        self.start_date: date = self.selection["start"]
        self.end_date: date = self.selection["end"]
        self.buffer = AvailabilityBuffer(total_slots(self.start_date, self.end_date, cfg))
        self.gesture = PaintGesture(self.buffer)
        self.responses: list[ResponseData] = []
        self.window_version = 0
        self.subscription = None
        self.hovered = ""

    # -------------------------------------------------------------------------
    # 범위
    # -------------------------------------------------------------------------

    @property
    def locked(self) -> bool:
        """이벤트가 이미 만들어졌으면 범위를 바꿀 수 없음"""
        return self.event_id is not None

    @property
    def days(self) -> int:
        return day_count(self.start_date, self.end_date)

    @property
    def total_slots(self) -> int:
        return total_slots(self.start_date, self.end_date, self.cfg)

    def _reset_window(self, start: date, end: date) -> None:
        self.start_date, self.end_date = start, end
        self.gesture.release()
        self.buffer.reallocate(self.total_slots)
        self.window_version += 1
        logger.debug("Grid reset to %s ~ %s (%d slots)", start, end, self.total_slots)

    def click_day(self, day: date) -> None:
        before = self.selection
        self.selection = date_range.click_day(before, day, self.cfg["max_span_days"], self.locked)
        if date_range.entered_full(before, self.selection):
            self._reset_window(self.selection["start"], self.selection["end"])

    def change_month(self, delta: int) -> None:
        self.selection = date_range.change_month(self.selection, delta)

    def toggle_picker(self) -> None:
        self.selection = date_range.toggle_picker(self.selection, self.locked)

    # -------------------------------------------------------------------------
    # 드래그 / hover
    # -------------------------------------------------------------------------

    def press(self, index: int) -> None:
        self.gesture.press(index)

    def enter(self, index: int) -> str:
        self.gesture.enter(index)
        return self.hover(index)

    def release(self) -> None:
        self.gesture.release()

    def leave_grid(self) -> None:
        self.gesture.leave()
        self.hovered = ""

    def hover(self, index: int) -> str:
        """툴팁 문구를 갱신합니다. 버퍼는 건드리지 않음."""
        try:
            cell = self.cell_at(index)
        except IndexOutOfBounds:
            logger.debug("hover outside grid ignored: %s", index)
            return self.hovered
        self.hovered = names_label(cell, self.user_name.strip() or None)
        return self.hovered

    # -------------------------------------------------------------------------
    # 집계
    # -------------------------------------------------------------------------

    def merged_responses(self) -> list[ResponseData]:
        return merge_local(self.responses, self.user_name, self.buffer.to_list())

    def cell_at(self, index: int) -> AggregateCell:
        if not 0 <= index < self.total_slots:
            raise IndexOutOfBounds(f"index {index} (0 ~ {self.total_slots - 1})")
        return cell_at(index, self.merged_responses())

    def heatmap(self) -> list[int]:
        return heatmap(self.merged_responses(), self.total_slots)

    def participants(self) -> list[str]:
        return [r["user_name"] for r in self.responses]

    # -------------------------------------------------------------------------
    # 저장소
    # -------------------------------------------------------------------------

    def open_event(self, event_id: str) -> EventData:
        """
        기존 이벤트를 불러옵니다.

        Raises:
            NotFound: 없는 이벤트
            LoadFailed: 응답 목록 읽기 실패
        """
        event = self.store.load_event(event_id)
        self.close()

        self.event_id = event["id"]
        self.event_name = event["name"]
        self.selection = date_range.fixed_selection(event["start_date"], event["end_date"])
        self._reset_window(event["start_date"], event["end_date"])
        self.responses = []
        self._subscribe()
        self.refresh_responses()
        # 이름을 먼저 입력하고 링크를 연 경우
        self._load_saved()
        return event

    def _subscribe(self) -> None:
        if self.subscription is not None:
            self.subscription.unsubscribe()
        self.subscription = self.store.subscribe_to_response_changes(
            self.event_id, self._refresh_quietly
        )

    def refresh_responses(self) -> bool:
        """응답 목록을 다시 불러옵니다. 여러 번 불러도 결과는 같음."""
        if self.event_id is None:
            return False
        event_id, version = self.event_id, self.window_version
        return self.apply_responses(self.store.list_responses(event_id), event_id, version)

    def _refresh_quietly(self) -> bool:
        """변경 알림이나 저장 직후의 새로고침. 읽기 실패는 다음 새로고침에 맡김."""
        try:
            return self.refresh_responses()
        except LoadFailed as e:
            logger.warning("Refreshing responses for %s failed: %s", self.event_id, e)
            return False

    def apply_responses(self, fetched: list[ResponseData], event_id: str, version: int) -> bool:
        """
        불러온 응답을 반영합니다. 그 사이 이벤트나 범위가 바뀌었으면 버립니다.

        Returns:
            반영했으면 True
        """
        if event_id != self.event_id or version != self.window_version:
            logger.debug("Discarded stale responses for %s (version %s)", event_id, version)
            return False
        self.responses = fetched
        return True

    def set_user_name(self, name: str) -> bool:
        """
        이름을 바꿉니다. 이름이 바뀌었고, 이미 응답한 사람의 이름이고, 내 버퍼가 비어 있으면
        저장돼 있던 가능 시간을 버퍼에 불러옵니다. 같은 이름으로 다시 불러도 아무 일 없음.

        Returns:
            버퍼를 불러왔으면 True
        """
        key = name.strip()
        changed = key != self.user_name.strip()
        self.user_name = name
        return changed and self._load_saved()

    def _load_saved(self) -> bool:
        key = self.user_name.strip()
        if not key or not self.locked or not self.buffer.is_blank():
            return False
        for response in self.responses:
            if response["user_name"] == key:
                self.buffer.load(response["availability"])
                logger.info("Loaded saved availability of %r", key)
                return True
        return False

    def validate(self) -> None:
        if not self.user_name.strip():
            raise ValidationError("이름을 먼저 입력해주세요!")
        if not self.locked:
            if not self.event_name.strip():
                raise ValidationError("이벤트 이름을 입력해주세요!")
            if date_range.phase(self.selection) != date_range.FULL:
                raise ValidationError("날짜 범위를 끝까지 선택해주세요!")

    def save(self) -> str:
        """
        이벤트가 없으면 만들고, 내 응답을 저장합니다.

        Returns:
            이벤트 ID

        Raises:
            ValidationError: 이름 등이 비어 있음 (저장소 호출 없음)
            CreateFailed: 이벤트 생성 실패 (응답 저장도 하지 않음)
            SaveFailed: 응답 저장 실패
        """
        self.validate()
        name = self.user_name.strip()

        if not self.locked:
            event_id = self.store.create_event(
                self.event_name.strip(), self.start_date, self.end_date
            )
            # 응답 저장이 실패해도 다시 시도하면 같은 이벤트에 저장되도록 먼저 잠금
            self.event_id = event_id
            self.selection = date_range.fixed_selection(self.start_date, self.end_date)
            self._subscribe()

        self.store.upsert_response(self.event_id, name, self.buffer.to_list())
        logger.info("Saved availability of %r for event %s", name, self.event_id)
        # 저장은 이미 끝났으므로 목록 읽기가 실패해도 성공으로 처리
        self._refresh_quietly()
        return self.event_id

    def share_link(self, base_url: str) -> str:
        if self.event_id is None:
            raise ValidationError("이벤트를 먼저 만들어주세요!")
        return f"{base_url.split('?')[0]}?{urlencode({'id': self.event_id})}"

    def close(self) -> None:
        if self.subscription is not None:
            self.subscription.unsubscribe()
            self.subscription = None
