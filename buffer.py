"""
내 가용 시간 버퍼 + 드래그 칠하기

버퍼는 0/1 리스트. 드래그는 누른 칸의 값으로 모드(paint/erase)를 정하고,
드래그 동안 지나가는 칸을 모두 그 모드 값으로 맞춥니다.
"""

import logging
from typing import Iterable

from errors import IndexOutOfBounds

logger = logging.getLogger(__name__)

AVAILABLE = 1
UNAVAILABLE = 0

PAINT = "paint"
ERASE = "erase"


class AvailabilityBuffer:
    """현재 사용자의 (저장 전) 가용 시간"""

    def __init__(self, length: int = 0):
        self._marks = [UNAVAILABLE] * length

    def _check(self, index: int) -> None:
        if not 0 <= index < len(self._marks):
            raise IndexOutOfBounds(f"index {index} (길이 {len(self._marks)})")

    def get_length(self) -> int:
        return len(self._marks)

    __len__ = get_length

    def value_at(self, index: int) -> int:
        self._check(index)
        return self._marks[index]

    def set_at(self, index: int, value: int) -> bool:
        """값을 씁니다. 실제로 바뀌었으면 True"""
        self._check(index)
        value = AVAILABLE if value else UNAVAILABLE
        if self._marks[index] == value:
            return False
        self._marks[index] = value
        return True

    def toggle_at(self, index: int) -> int:
        self._check(index)
        self._marks[index] ^= 1
        return self._marks[index]

    def set_range(self, indices: Iterable[int], value: int) -> int:
        """
        여러 칸을 한 번에 씁니다. 범위 밖 인덱스가 하나라도 있으면 아무것도 쓰지 않습니다.

        Returns:
            바뀐 칸 수
        """
        indices = list(indices)
        for i in indices:
            self._check(i)
        return sum(self.set_at(i, value) for i in indices)

    def reallocate(self, length: int) -> None:
        """날짜 범위가 바뀌면 새로 만듭니다. 기존 값은 옮기지 않음."""
        self._marks = [UNAVAILABLE] * length

    def load(self, vector: list[int]) -> None:
        """저장된 벡터로 채웁니다. 길이는 그대로, 넘치는 값은 버리고 모자라면 0."""
        length = len(self._marks)
        loaded = [AVAILABLE if v == AVAILABLE else UNAVAILABLE for v in vector[:length]]
        self._marks = loaded + [UNAVAILABLE] * (length - len(loaded))

    def is_blank(self) -> bool:
        return AVAILABLE not in self._marks

    def to_list(self) -> list[int]:
        return list(self._marks)


class PaintGesture:
    """마우스 누름 ~ 뗌 사이의 드래그 상태"""

    def __init__(self, buffer: AvailabilityBuffer):
        self.buffer = buffer
        self.active = False
        self.mode: str | None = None

    def press(self, index: int) -> None:
        try:
            current = self.buffer.value_at(index)
        except IndexOutOfBounds:
            logger.debug("press outside grid ignored: %s", index)
            return
        self.mode = ERASE if current == AVAILABLE else PAINT
        self.active = True
        self.buffer.set_at(index, self._value())

    def enter(self, index: int) -> None:
        # 누르지 않은 채로 지나가는 건 hover 일 뿐
        if not self.active:
            return
        try:
            self.buffer.set_at(index, self._value())
        except IndexOutOfBounds:
            logger.debug("drag outside grid ignored: %s", index)

    def release(self) -> None:
        self.active = False

    # 그리드 밖으로 나가면 뗀 것과 같음
    leave = release

    def _value(self) -> int:
        return AVAILABLE if self.mode == PAINT else UNAVAILABLE


def paint_run(gesture: PaintGesture, indices: Iterable[int]) -> None:
    """첫 칸을 누르고 나머지를 차례로 지나간 뒤 떼는 드래그 한 번"""
    it = iter(indices)
    first = next(it, None)
    if first is None:
        return
    gesture.press(first)
    for i in it:
        gesture.enter(i)
    gesture.release()
