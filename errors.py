"""
에러 정의 모듈
"""


class GroupGridError(Exception):
    """모든 groupgrid 에러의 기본 클래스"""


class ValidationError(GroupGridError):
    """저장 전에 필수 입력(이름 등)이 비어 있을 때. 네트워크 호출 없이 막습니다."""


class NotFound(GroupGridError):
    """존재하지 않는 이벤트 ID. 재시도 없이 에러 화면을 보여줍니다."""

    def __init__(self, event_id: str):
        super().__init__(f"이벤트를 찾을 수 없습니다: {event_id}")
        self.event_id = event_id


class CreateFailed(GroupGridError):
    """이벤트 생성 실패"""


class SaveFailed(GroupGridError):
    """응답 저장(upsert) 실패"""


class IndexOutOfBounds(GroupGridError, IndexError):
    """슬롯 인덱스가 그리드 범위를 벗어남"""


class ConfigError(GroupGridError):
    """설정 값이 잘못됨"""


class LoadFailed(GroupGridError):
    """응답 목록 읽기 실패 (네트워크 오류 등)"""
