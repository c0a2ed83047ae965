"""
Supabase 저장소 모듈

PostgREST API (events, responses 테이블)를 requests 로 호출합니다.
"""

import hashlib
import json
import logging
from datetime import date, datetime
from typing import Any, Callable

import requests

from errors import CreateFailed, LoadFailed, NotFound, SaveFailed
from schemas import EventData, ResponseData

logger = logging.getLogger(__name__)

TIMEOUT = 10


def _parse_date(value: Any) -> date:
    """'2025-01-05' 또는 '2025-01-05T00:00:00.000Z' → date"""
    if isinstance(value, date):
        return value.date() if isinstance(value, datetime) else value
    text = str(value).replace("Z", "+00:00")
    return datetime.fromisoformat(text).date()


def _parse_event(row: dict) -> EventData:
    return {
        "id": str(row["id"]),
        "name": row.get("name") or "",
        "start_date": _parse_date(row["start_date"]),
        "end_date": _parse_date(row["end_date"]),
    }


def _parse_response(row: dict) -> ResponseData:
    """
    응답 row 를 정규화합니다.
    availability 가 없으면 빈 벡터(= 전부 불가능), 0/1 이 아닌 값은 0 으로 바꿉니다.
    """
    raw = row.get("availability")
    if not isinstance(raw, list):
        raw = []
    return {
        "user_name": str(row.get("user_name") or ""),
        "availability": [1 if v == 1 else 0 for v in raw],
    }


def _fingerprint(responses: list[ResponseData]) -> str:
    payload = json.dumps(responses, sort_keys=True)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class PollingSubscription:
    """
    응답 목록을 주기적으로 다시 읽어서 바뀌었을 때만 on_change 를 부릅니다.
    첫 체크는 항상 알립니다 (구독 직후 들어온 변경을 놓치지 않도록).
    같은 변경이 여러 번 감지돼도 한 번만 알립니다.
    """

    def __init__(self, store: "SupabaseStore", event_id: str, on_change: Callable[[], None]):
        self._store = store
        self._event_id = event_id
        self._on_change = on_change
        self._last: str | None = None
        self.active = True

    def check(self) -> bool:
        """바뀌었으면 on_change 를 부르고 True"""
        if not self.active:
            return False
        try:
            current = _fingerprint(self._store.list_responses(self._event_id))
        except (LoadFailed, NotFound) as e:
            # 알림은 힌트일 뿐이라 한 번 놓쳐도 다음 체크에서 잡힘
            logger.warning("Polling responses for %s failed: %s", self._event_id, e)
            return False

        changed = current != self._last
        self._last = current
        if changed:
            self._on_change()
        return changed

    def unsubscribe(self) -> None:
        self.active = False


class SupabaseStore:
    def __init__(self, url: str, key: str, session: requests.Session | None = None):
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.session = session or requests.Session()
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _get(self, table: str, params: dict) -> list[dict]:
        response = self.session.get(
            f"{self.base_url}/{table}", params=params, headers=self.headers, timeout=TIMEOUT
        )
        response.raise_for_status()
        return response.json()

    def _post(self, table: str, payload: dict, params: dict | None = None, prefer: str = "") -> requests.Response:
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer
        response = self.session.post(
            f"{self.base_url}/{table}",
            params=params or {},
            json=payload,
            headers=headers,
            timeout=TIMEOUT,
        )
        response.raise_for_status()
        return response

    def create_event(self, name: str, start_date: date, end_date: date) -> str:
        payload = {
            "name": name,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        }
        try:
            rows = self._post("events", payload, prefer="return=representation").json()
            event_id = str(rows[0]["id"])
        except (requests.RequestException, ValueError, KeyError, IndexError) as e:
            logger.warning("Creating event failed: %s", e)
            raise CreateFailed(f"이벤트 생성 실패: {e}") from e

        logger.info("Created event %s", event_id)
        return event_id

    def load_event(self, event_id: str) -> EventData:
        try:
            rows = self._get("events", {"id": f"eq.{event_id}", "select": "*"})
        except requests.HTTPError as e:
            # uuid 형식이 아닌 id 는 400 으로 옴
            if e.response is not None and 400 <= e.response.status_code < 500:
                raise NotFound(event_id) from e
            raise
        if not rows:
            raise NotFound(event_id)
        return _parse_event(rows[0])

    def list_responses(self, event_id: str) -> list[ResponseData]:
        try:
            rows = self._get(
                "responses",
                {
                    "event_id": f"eq.{event_id}",
                    "select": "user_name,availability",
                    # 처음 응답한 순서. upsert(UPDATE)는 created_at 을 바꾸지 않음
                    "order": "created_at.asc",
                },
            )
        except requests.RequestException as e:
            logger.warning("Listing responses for %s failed: %s", event_id, e)
            raise LoadFailed(f"응답 불러오기 실패: {e}") from e
        return [_parse_response(row) for row in rows]

    def upsert_response(self, event_id: str, user_name: str, availability: list[int]) -> None:
        payload = {"event_id": event_id, "user_name": user_name, "availability": availability}
        try:
            self._post(
                "responses",
                payload,
                params={"on_conflict": "event_id,user_name"},
                prefer="resolution=merge-duplicates",
            )
        except requests.RequestException as e:
            logger.warning("Saving response of %r failed: %s", user_name, e)
            raise SaveFailed(f"저장 실패: {e}") from e

    def subscribe_to_response_changes(
        self, event_id: str, on_change: Callable[[], None]
    ) -> PollingSubscription:
        return PollingSubscription(self, event_id, on_change)
