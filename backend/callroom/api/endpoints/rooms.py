"""통화방 토큰 발급 / 퇴장 / 상태 조회 엔드포인트"""

import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError

from callroom.api.dependencies import GatewayDep
from callroom.schemas.common import ErrorResponse
from callroom.schemas.room import (
    LeaveRequest,
    LeaveResponse,
    RoomStatusResponse,
    TokenRequest,
    TokenResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Rooms"])


@router.post(
    "/token",
    response_model=TokenResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def create_token(body: TokenRequest, gateway: GatewayDep):
    """방 입장 슬롯 확보 후 LiveKit 액세스 토큰 발급"""
    grant = await gateway.request_access(body.room_name, body.participant_name)

    return TokenResponse(
        token=grant.token,
        ws_url=grant.ws_url,
        room_name=grant.room_name,
        participant_name=grant.participant_name,
    )


@router.post("/leave", response_model=LeaveResponse)
async def leave_room(request: Request, gateway: GatewayDep):
    """방 퇴장 (항상 성공)

    브라우저 종료 시 sendBeacon 등으로 text/plain 본문이 올 수 있어
    Content-Type과 관계없이 본문을 직접 파싱합니다.
    """
    leave = await _parse_leave_request(request)
    if leave is not None:
        await gateway.release_access(leave.room_name, leave.participant_name)

    return LeaveResponse(success=True)


@router.get("/room/{room_name}", response_model=RoomStatusResponse)
async def get_room_status(room_name: str, gateway: GatewayDep):
    """방 점유 상태 조회 (존재하지 않는 방은 0명)"""
    status = await gateway.room_status(room_name)

    return RoomStatusResponse(
        room_name=room_name.strip(),
        participant_count=status.participant_count,
        is_full=status.is_full,
    )


async def _parse_leave_request(request: Request) -> LeaveRequest | None:
    body = await request.body()
    if not body:
        return None

    try:
        return LeaveRequest.model_validate_json(body)
    except ValidationError:
        logger.debug("[Rooms] Ignoring malformed leave request body")
        return None
