"""
Tests for the store adapters (memory, Supabase over a stubbed HTTP session).
"""

from datetime import date

import pytest
import requests

from errors import CreateFailed, LoadFailed, NotFound, SaveFailed
from fakes import FakeResponse, FakeSession
from store.supabase import SupabaseStore, _parse_response

JAN_1 = date(2025, 1, 1)
JAN_3 = date(2025, 1, 3)


class TestInMemoryStore:
    def test_create_and_load(self, store):
        event_id = store.create_event("Sync", JAN_1, JAN_3)
        assert store.load_event(event_id) == {
            "id": event_id,
            "name": "Sync",
            "start_date": JAN_1,
            "end_date": JAN_3,
        }

    def test_unknown_event(self, store):
        with pytest.raises(NotFound):
            store.load_event("nope")
        with pytest.raises(NotFound):
            store.list_responses("nope")

    def test_create_requires_name(self, store):
        with pytest.raises(CreateFailed):
            store.create_event(" ", JAN_1, JAN_3)

    def test_no_responses_is_empty(self, store):
        event_id = store.create_event("Sync", JAN_1, JAN_3)
        assert store.list_responses(event_id) == []

    def test_upsert_overwrites_in_place(self, store):
        event_id = store.create_event("Sync", JAN_1, JAN_3)
        store.upsert_response(event_id, "A", [1, 0])
        store.upsert_response(event_id, "B", [0, 1])
        store.upsert_response(event_id, "A", [1, 1])
        assert store.list_responses(event_id) == [
            {"user_name": "A", "availability": [1, 1]},
            {"user_name": "B", "availability": [0, 1]},
        ]

    def test_upsert_failures(self, store):
        with pytest.raises(SaveFailed):
            store.upsert_response("nope", "A", [1])
        event_id = store.create_event("Sync", JAN_1, JAN_3)
        with pytest.raises(SaveFailed):
            store.upsert_response(event_id, "", [1])

    def test_stored_vector_is_a_copy(self, store):
        event_id = store.create_event("Sync", JAN_1, JAN_3)
        vector = [1, 0]
        store.upsert_response(event_id, "A", vector)
        vector[1] = 1
        store.list_responses(event_id)[0]["availability"][0] = 0
        assert store.list_responses(event_id)[0]["availability"] == [1, 0]

    def test_subscription(self, store):
        event_id = store.create_event("Sync", JAN_1, JAN_3)
        other_id = store.create_event("Other", JAN_1, JAN_3)
        calls = []
        sub = store.subscribe_to_response_changes(event_id, lambda: calls.append(1))

        store.upsert_response(event_id, "A", [1])
        store.upsert_response(other_id, "A", [1])
        # 저장할 때는 표시만 하고 콜백은 check 에서
        assert calls == []
        assert sub.check() is True
        assert calls == [1]

        sub.unsubscribe()
        sub.unsubscribe()
        store.upsert_response(event_id, "A", [0])
        assert sub.check() is False
        assert calls == [1]
        assert not sub.active

    def test_subscription_coalesces_saves(self, store):
        event_id = store.create_event("Sync", JAN_1, JAN_3)
        calls = []
        sub = store.subscribe_to_response_changes(event_id, lambda: calls.append(1))
        assert sub.check() is False

        store.upsert_response(event_id, "A", [1])
        store.upsert_response(event_id, "B", [1])
        assert [sub.check(), sub.check()] == [True, False]
        assert calls == [1]

    def test_failing_listener_does_not_break_save(self, store):
        event_id = store.create_event("Sync", JAN_1, JAN_3)

        def boom():
            raise RuntimeError("listener broke")

        store.subscribe_to_response_changes(event_id, boom)
        store.upsert_response(event_id, "A", [1])
        assert store.list_responses(event_id) == [{"user_name": "A", "availability": [1]}]


# =============================================================================
# Supabase (HTTP 는 가짜 세션으로 대체)
# =============================================================================

@pytest.fixture
def http():
    return FakeSession()


@pytest.fixture
def supabase(http):
    return SupabaseStore("https://demo.supabase.co/", "secret", session=http)


class TestSupabaseStore:
    def test_create_event(self, supabase, http):
        http.reply(FakeResponse(201, [{"id": "abc"}]))
        assert supabase.create_event("Sync", JAN_1, JAN_3) == "abc"

        method, url, kwargs = http.calls[0]
        assert method == "POST"
        assert url == "https://demo.supabase.co/rest/v1/events"
        assert kwargs["json"] == {"name": "Sync", "start_date": "2025-01-01", "end_date": "2025-01-03"}
        assert kwargs["headers"]["Prefer"] == "return=representation"
        assert kwargs["headers"]["apikey"] == "secret"

    @pytest.mark.parametrize(
        "reply",
        [FakeResponse(500), FakeResponse(201, []), requests.ConnectionError("down")],
    )
    def test_create_event_failed(self, supabase, http, reply):
        http.reply(reply)
        with pytest.raises(CreateFailed):
            supabase.create_event("Sync", JAN_1, JAN_3)

    def test_load_event_parses_timestamps(self, supabase, http):
        http.reply(FakeResponse(200, [{
            "id": "abc",
            "name": "Sync",
            "start_date": "2025-01-01T00:00:00.000Z",
            "end_date": "2025-01-03",
        }]))
        event = supabase.load_event("abc")
        assert event == {"id": "abc", "name": "Sync", "start_date": JAN_1, "end_date": JAN_3}
        assert http.calls[0][2]["params"]["id"] == "eq.abc"

    @pytest.mark.parametrize("reply", [FakeResponse(200, []), FakeResponse(400)])
    def test_load_event_not_found(self, supabase, http, reply):
        http.reply(reply)
        with pytest.raises(NotFound):
            supabase.load_event("abc")

    def test_load_event_server_error_propagates(self, supabase, http):
        http.reply(FakeResponse(503))
        with pytest.raises(requests.HTTPError):
            supabase.load_event("abc")

    def test_list_responses_normalizes_rows(self, supabase, http):
        http.reply(FakeResponse(200, [
            {"user_name": "A", "availability": [1, 0, 2]},
            {"user_name": "B"},
        ]))
        assert supabase.list_responses("abc") == [
            {"user_name": "A", "availability": [1, 0, 0]},
            {"user_name": "B", "availability": []},
        ]
        params = http.calls[0][2]["params"]
        assert params["event_id"] == "eq.abc"
        # 처음 응답한 순서로 받아야 이름 목록 순서가 매번 같음
        assert params["order"] == "created_at.asc"

    @pytest.mark.parametrize(
        "reply",
        [requests.ConnectionError("read blip"), requests.Timeout("slow"), FakeResponse(500)],
    )
    def test_list_responses_failed(self, supabase, http, reply):
        http.reply(reply)
        with pytest.raises(LoadFailed):
            supabase.list_responses("abc")

    def test_upsert(self, supabase, http):
        http.reply(FakeResponse(201))
        supabase.upsert_response("abc", "A", [1, 0])
        _, url, kwargs = http.calls[0]
        assert url.endswith("/rest/v1/responses")
        assert kwargs["params"] == {"on_conflict": "event_id,user_name"}
        assert kwargs["headers"]["Prefer"] == "resolution=merge-duplicates"
        assert kwargs["json"] == {"event_id": "abc", "user_name": "A", "availability": [1, 0]}

    def test_upsert_failed(self, supabase, http):
        http.reply(FakeResponse(409))
        with pytest.raises(SaveFailed):
            supabase.upsert_response("abc", "A", [1])

    def test_polling_subscription_coalesces(self, supabase, http):
        calls = []
        sub = supabase.subscribe_to_response_changes("abc", lambda: calls.append(1))
        same = [{"user_name": "A", "availability": [1]}]
        changed = [{"user_name": "A", "availability": [0]}]
        http.reply(
            FakeResponse(200, same),
            FakeResponse(200, same),
            FakeResponse(200, changed),
            FakeResponse(200, changed),
        )
        # 첫 체크는 구독 전에 들어온 변경일 수도 있으니 항상 알림
        assert [sub.check() for _ in range(4)] == [True, False, True, False]
        assert calls == [1, 1]

    def test_change_before_first_check_is_delivered(self, supabase, http):
        # 구독한 뒤 첫 폴링 전에 다른 사람이 저장한 경우
        calls = []
        sub = supabase.subscribe_to_response_changes("abc", lambda: calls.append(1))
        http.reply(FakeResponse(200, [{"user_name": "Late", "availability": [1]}]))
        assert sub.check() is True
        assert calls == [1]

    def test_polling_error_is_not_fatal(self, supabase, http):
        sub = supabase.subscribe_to_response_changes("abc", lambda: None)
        http.reply(requests.ConnectionError("down"), FakeResponse(503))
        assert sub.check() is False
        assert sub.check() is False

    def test_unsubscribed_polling_does_nothing(self, supabase, http):
        sub = supabase.subscribe_to_response_changes("abc", lambda: None)
        sub.unsubscribe()
        assert sub.check() is False
        assert http.calls == []


def test_parse_response_defaults():
    assert _parse_response({"availability": "oops"}) == {"user_name": "", "availability": []}
