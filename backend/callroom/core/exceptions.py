"""토큰 발급 게이트웨이 예외

모든 예외는 main.py의 예외 핸들러에서 ErrorResponse JSON으로 변환됩니다.
"""

from callroom.core.room_config import ROOM_CAPACITY, ErrorCode


class GatewayError(Exception):
    """게이트웨이 기본 예외"""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(f"[{self.code}] {self.message}")


class InvalidRequestError(GatewayError):
    """요청 값 누락 또는 형식 오류 (재시도 전에 입력 수정 필요)"""

    code = ErrorCode.INVALID_REQUEST
    status_code = 400
    default_message = "roomName and participantName are required"


class NotConfiguredError(GatewayError):
    """LiveKit 자격 증명 미설정 (운영자 조치 필요)"""

    code = ErrorCode.NOT_CONFIGURED
    status_code = 500
    default_message = "LiveKit credentials not configured. Please check your .env file."


class RoomFullError(GatewayError):
    """방 정원 초과 (자동 재시도하지 않음)"""

    code = ErrorCode.ROOM_FULL
    status_code = 403

    def __init__(self, capacity: int = ROOM_CAPACITY):
        self.capacity = capacity
        super().__init__(
            f"Room is full. Maximum {capacity} participants allowed for 1-to-1 calls."
        )


class IssuanceFailedError(GatewayError):
    """토큰 서명/발급 실패 (일시적 오류, 클라이언트가 재시도 가능)"""

    code = ErrorCode.ISSUANCE_FAILED
    status_code = 500
    default_message = "Failed to generate token"
