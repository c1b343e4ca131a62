"""통화방 관련 설정"""

# 1:1 통화이므로 방당 최대 2명
ROOM_CAPACITY = 2

# 토큰 기본 유효 시간 (2시간)
DEFAULT_TOKEN_TTL_SECONDS = 2 * 60 * 60


class ErrorCode:
    """API 에러 코드"""
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_CONFIGURED = "NOT_CONFIGURED"
    ROOM_FULL = "ROOM_FULL"
    ISSUANCE_FAILED = "ISSUANCE_FAILED"
