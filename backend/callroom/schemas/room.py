"""통화방 API Pydantic 스키마"""

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """토큰 발급 요청

    필드 누락은 422가 아닌 400 INVALID_REQUEST로 처리하기 위해 Optional로 받습니다.
    """
    room_name: str | None = Field(default=None, alias="roomName")
    participant_name: str | None = Field(default=None, alias="participantName")

    class Config:
        populate_by_name = True


class TokenResponse(BaseModel):
    """토큰 발급 응답"""
    token: str
    ws_url: str = Field(serialization_alias="wsUrl")
    room_name: str = Field(serialization_alias="roomName")
    participant_name: str = Field(serialization_alias="participantName")

    class Config:
        populate_by_name = True


class LeaveRequest(BaseModel):
    """퇴장 요청"""
    room_name: str | None = Field(default=None, alias="roomName")
    participant_name: str | None = Field(default=None, alias="participantName")

    class Config:
        populate_by_name = True


class LeaveResponse(BaseModel):
    """퇴장 응답 (항상 성공)"""
    success: bool = True


class RoomStatusResponse(BaseModel):
    """방 상태 응답"""
    room_name: str = Field(serialization_alias="roomName")
    participant_count: int = Field(serialization_alias="participantCount")
    is_full: bool = Field(serialization_alias="isFull")

    class Config:
        populate_by_name = True


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str = "ok"
    configured: bool
