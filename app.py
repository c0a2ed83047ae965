import logging

import pandas as pd
import streamlit as st

import date_range
from aggregate import heat_style
from analyze import find_alternatives, find_who_blocks, get_available_times_grouped
from buffer import paint_run
from config import load_config
from errors import CreateFailed, NotFound, SaveFailed, ValidationError
from grid import day_dates, slot_label, slot_time, slots_per_day, to_index
from session import SchedulerSession
from store.memory import InMemoryStore
from store.supabase import SupabaseStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("groupgrid")

st.set_page_config(page_title="모두 되는 시간 찾기", page_icon="🗓️", layout="wide")


# =============================================================================
# 캐싱된 리소스 (앱 프로세스당 하나)
# =============================================================================
@st.cache_resource(show_spinner=False)
def get_config():
    return load_config()


@st.cache_resource(show_spinner=False)
def get_store():
    cfg = get_config()
    if cfg["supabase_url"] and cfg["supabase_key"]:
        return SupabaseStore(cfg["supabase_url"], cfg["supabase_key"])
    logger.warning("Supabase 설정이 없어 메모리 저장소를 사용합니다")
    return InMemoryStore()


cfg = get_config()
PER_DAY = slots_per_day(cfg)


# =============================================================================
# 세션 초기화 + ?id= 로 들어온 이벤트 불러오기
# =============================================================================
if "session" not in st.session_state:
    st.session_state.session = SchedulerSession(get_store(), cfg)

if "editor_key" not in st.session_state:
    st.session_state.editor_key = 0

if "event_name" not in st.session_state:
    st.session_state.event_name = st.session_state.session.event_name

if "user_name" not in st.session_state:
    st.session_state.user_name = ""

session: SchedulerSession = st.session_state.session
event_id = st.query_params.get("id")

if event_id and event_id != session.event_id:
    with st.spinner("이벤트 불러오는 중..."):
        try:
            session.open_event(event_id)
        except NotFound:
            st.error("❌ 이벤트를 찾을 수 없습니다. 링크를 다시 확인해주세요!")
            st.stop()
        except Exception as e:
            logger.exception("Loading event %s failed", event_id)
            st.error(f"❌ 오류: {e}")
            st.stop()


# =============================================================================
# 표 만들기 함수
# =============================================================================
def time_labels() -> list[str]:
    """행 이름: 정시면 '9 AM', 아니면 '09:15'"""
    return [
        slot_label(s, cfg) or slot_time(session.start_date, s, session.days, cfg).strftime("%H:%M")
        for s in range(PER_DAY)
    ]


def day_labels() -> list[str]:
    return [f"{d.strftime('%a')} {d.month}/{d.day}" for d in day_dates(session.start_date, session.end_date)]


def to_frame(values: list) -> pd.DataFrame:
    """1차원 슬롯 리스트 → (시간 × 날짜) 표"""
    columns = {
        day: values[d * PER_DAY:(d + 1) * PER_DAY]
        for d, day in enumerate(day_labels())
    }
    return pd.DataFrame(columns, index=time_labels())


# =============================================================================
# 상단: 이벤트 이름 / 내 이름 / 기간
# =============================================================================
st.title("🗓️ 모두 되는 시간 찾기")

col1, col2, col3 = st.columns(3)
with col1:
    if session.locked:
        st.text_input("이벤트 이름", value=session.event_name, disabled=True)
    else:
        session.event_name = st.text_input("이벤트 이름", key="event_name")
with col2:
    if session.set_user_name(st.text_input("내 이름", key="user_name", placeholder="필수")):
        # 이미 응답한 사람이면 저장된 가능 시간으로 표를 다시 그림
        st.session_state.editor_key += 1
with col3:
    st.caption("기간")
    if st.button(f"📅 {date_range.range_label(session.selection)}", disabled=session.locked, use_container_width=True):
        session.toggle_picker()
        st.rerun()

# -----------------------------------------------------------------------------
# 날짜 선택 달력
# -----------------------------------------------------------------------------
if session.selection["picker_open"] and not session.locked:
    with st.container(border=True):
        prev_col, month_col, next_col = st.columns([1, 3, 1])
        if prev_col.button("◀", key="prev_month"):
            session.change_month(-1)
            st.rerun()
        month_col.markdown(f"**{session.selection['picker_month'].strftime('%Y년 %m월')}**")
        if next_col.button("▶", key="next_month"):
            session.change_month(1)
            st.rerun()

        cells = date_range.month_cells(session.selection["picker_month"])
        for week in range(6):
            cols = st.columns(7)
            for col, (day, in_month) in zip(cols, cells[week * 7:(week + 1) * 7]):
                role = date_range.day_role(day, session.selection)
                clicked = col.button(
                    str(day.day),
                    key=f"day_{day.isoformat()}",
                    disabled=not in_month,
                    type="primary" if role != "outside" else "secondary",
                    use_container_width=True,
                )
                if clicked:
                    session.click_day(day)
                    st.rerun()

        if cfg["max_span_days"]:
            st.caption(f"최대 {cfg['max_span_days']}일까지 선택할 수 있어요")

st.divider()

# =============================================================================
# 메인: 그룹 히트맵 + 내 가능 시간
# =============================================================================
heat_col, mine_col = st.columns(2)

with heat_col:
    st.subheader("👥 그룹 히트맵")
    counts = session.heatmap()
    total = len(session.responses)
    if session.locked:
        st.dataframe(
            to_frame(counts).style.map(lambda c: heat_style(c, total)),
            use_container_width=True,
            height=min(35 * PER_DAY + 40, 700),
        )
        st.caption(f"응답 {total}명 · 진할수록 많은 사람이 가능")
    else:
        st.info("이벤트를 만들면 다른 사람들의 응답이 여기에 보여요")

with mine_col:
    st.subheader("🟩 내 가능 시간")
    mine = to_frame([bool(v) for v in session.buffer.to_list()])
    edited = st.data_editor(
        mine,
        key=f"mine_{session.window_version}_{st.session_state.editor_key}",
        use_container_width=True,
        height=min(35 * PER_DAY + 40, 700),
    )
    # 바뀐 칸만 버퍼에 반영
    changed_on, changed_off = [], []
    for d, day in enumerate(edited.columns):
        for s, value in enumerate(edited[day]):
            i = to_index(d, s, session.days, cfg)
            if bool(value) != bool(session.buffer.value_at(i)):
                (changed_on if value else changed_off).append(i)
    session.buffer.set_range(changed_on, 1)
    session.buffer.set_range(changed_off, 0)

# -----------------------------------------------------------------------------
# 범위 칠하기 (드래그 대신)
# -----------------------------------------------------------------------------
with st.expander("🖌️ 범위 한번에 칠하기"):
    days = day_labels()
    times = [slot_time(session.start_date, s, session.days, cfg).strftime("%H:%M") for s in range(PER_DAY)]
    c1, c2, c3 = st.columns(3)
    day_pick = c1.selectbox("날짜", range(len(days)), format_func=lambda d: days[d])
    from_pick = c2.selectbox("부터", range(PER_DAY), format_func=lambda s: times[s])
    to_pick = c3.selectbox("까지", range(PER_DAY), index=PER_DAY - 1, format_func=lambda s: times[s])
    st.caption("첫 칸이 비어 있으면 칠하고, 칠해져 있으면 지웁니다")
    if st.button("칠하기"):
        step = 1 if to_pick >= from_pick else -1
        paint_run(
            session.gesture,
            (to_index(day_pick, s, session.days, cfg) for s in range(from_pick, to_pick + step, step)),
        )
        st.session_state.editor_key += 1
        st.rerun()

# -----------------------------------------------------------------------------
# 슬롯 살펴보기 (hover 대신)
# -----------------------------------------------------------------------------
if session.locked:
    slot_pick = st.select_slider(
        "🔍 슬롯 살펴보기",
        options=range(session.total_slots),
        format_func=lambda i: slot_time(session.start_date, i, session.days, cfg).strftime("%m/%d %H:%M"),
    )
    session.hover(slot_pick)
    st.write(f"**{session.hovered}**")
    unavailable = session.cell_at(slot_pick)["unavailable_names"]
    if unavailable:
        st.caption(f"안 되는 사람: {', '.join(unavailable)}")

# =============================================================================
# 저장 / 링크 복사
# =============================================================================
st.divider()
save_col, link_col = st.columns([1, 3])

with save_col:
    label = "가능 시간 업데이트" if session.locked else "이벤트 만들기"
    if st.button(label, type="primary", use_container_width=True):
        created = not session.locked
        try:
            with st.spinner("저장 중..."):
                new_id = session.save()
        except ValidationError as e:
            st.warning(str(e))
        except (CreateFailed, SaveFailed) as e:
            st.error(f"❌ {e}")
        else:
            if created:
                st.query_params["id"] = new_id
                st.success("✅ 이벤트가 만들어졌어요!")
            else:
                st.success("✅ 저장 완료!")

with link_col:
    if session.locked:
        st.code(session.share_link(cfg["public_url"]), language=None)
        st.caption("이 링크를 공유하면 다른 사람들도 응답할 수 있어요")

# =============================================================================
# 모두 되는 시간 분석
# =============================================================================
if session.locked and session.responses:
    st.divider()
    st.subheader("⏱️ 모두 되는 시간")

    selected = st.multiselect("참여 인원 선택", options=session.participants(), default=session.participants())
    if selected:
        responses = session.merged_responses()
        result = get_available_times_grouped(responses, selected, session.start_date, session.end_date, cfg)

        if result:
            st.success(f"✅ {len(selected)}명 전원 가능한 시간대")
            for date_str, ranges in result.items():
                with st.expander(f"📅 {date_str}", expanded=True):
                    for t in ranges:
                        st.write(f"  🕐 {t}")
        else:
            st.warning("😢 전원 가능한 시간이 없습니다!")

            st.subheader("🚫 안 되는 사람")
            blockers = find_who_blocks(responses, selected, session.total_slots)
            if blockers:
                for name, count in blockers.items():
                    st.write(f"- **{name}**: 제외 시 +{count}개 슬롯 확보")
            else:
                st.write("분석 불가")

            st.subheader("💡 대안 (1명 제외 시)")
            alternatives = find_alternatives(responses, selected, session.start_date, session.end_date, cfg)
            for missing_info, grouped in alternatives.items():
                with st.expander(f"📌 {missing_info}"):
                    for date_str, ranges in grouped.items():
                        st.write(f"**{date_str}**")
                        for t in ranges:
                            st.write(f"  🕐 {t}")


# =============================================================================
# 다른 사람의 응답 변경 감지
# =============================================================================
@st.fragment(run_every=cfg["poll_seconds"])
def watch_responses():
    subscription = session.subscription
    if subscription is not None and subscription.check():
        st.rerun()


if session.locked:
    watch_responses()
