"""
히트맵 집계 모듈

응답자들의 0/1 벡터를 슬롯별로 합칩니다. 캐시하지 않고 매번 계산합니다.
"""

from schemas import AggregateCell, ResponseData


def _available(response: ResponseData, index: int) -> bool:
    # 예전 범위로 저장된 짧은 벡터 → 없는 칸은 불가능으로 취급
    vector = response.get("availability") or []
    return 0 <= index < len(vector) and vector[index] == 1


def merge_local(
    responses: list[ResponseData],
    user_name: str,
    local_vector: list[int],
) -> list[ResponseData]:
    """
    이미 저장한 사용자라면 서버 값 대신 지금 칠하고 있는 값을 씁니다.
    순서는 그대로 유지하고, 저장 전인 사용자는 추가하지 않습니다.
    """
    name = user_name.strip()
    if not name:
        return responses
    return [
        {"user_name": r["user_name"], "availability": list(local_vector)}
        if r["user_name"] == name
        else r
        for r in responses
    ]


def cell_at(index: int, responses: list[ResponseData]) -> AggregateCell:
    """
    슬롯 하나의 집계 결과를 계산합니다.

    Args:
        index: 슬롯 인덱스
        responses: 응답 목록 (불러온 순서)

    Returns:
        AggregateCell. 응답자가 없으면 intensity 0
    """
    available_names = []
    unavailable_names = []
    for r in responses:
        if _available(r, index):
            available_names.append(r["user_name"])
        else:
            unavailable_names.append(r["user_name"])

    total = len(responses)
    count = len(available_names)
    return {
        "available_count": count,
        "available_names": available_names,
        "unavailable_names": unavailable_names,
        "intensity": count / total if total else 0.0,
    }


def heatmap(responses: list[ResponseData], total_slots: int) -> list[int]:
    """슬롯별 가능 인원 수"""
    counts = [0] * total_slots
    for r in responses:
        vector = r.get("availability") or []
        for i, val in enumerate(vector[:total_slots]):
            if val == 1:
                counts[i] += 1
    return counts


def intensities(responses: list[ResponseData], total_slots: int) -> list[float]:
    total = len(responses)
    if not total:
        return [0.0] * total_slots
    return [c / total for c in heatmap(responses, total_slots)]


def names_label(cell: AggregateCell, self_name: str | None = None) -> str:
    """툴팁 문구: 'A, B (You) available' 또는 'No one is available'"""
    if not cell["available_names"]:
        return "No one is available"
    names = [
        f"{n} (You)" if self_name and n == self_name else n
        for n in cell["available_names"]
    ]
    return ", ".join(names) + " available"


# 밝은 테마/어두운 테마 어디서나 보이도록 흰색 대신 초록 계열
HEAT_RGB = (34, 139, 34)


def heat_style(count: int, total: int) -> str:
    """히트맵 칸의 CSS. 아무도 안 되면 빈 문자열."""
    if not count or not total:
        return ""
    intensity = count / total
    r, g, b = HEAT_RGB
    # 진한 칸은 흰 글씨, 옅은 칸은 검은 글씨
    text = "white" if intensity > 0.5 else "black"
    return f"background-color: rgba({r}, {g}, {b}, {0.15 + 0.85 * intensity:.2f}); color: {text}"
