"""LiveKit 웹훅 엔드포인트

LiveKit 서버에서 발생하는 이벤트를 처리합니다:
- 참여자 입장/퇴장 (participant_joined/left): 로그만 남김
- 룸 종료 (room_finished): 남아 있는 슬롯을 모두 반환

participant_left로 슬롯을 반환하지 않는 이유: 새로고침 후 같은 identity로
이미 재입장한 참여자의 슬롯까지 지워질 수 있기 때문입니다.
"""

import logging

from fastapi import APIRouter, Header, HTTPException, Request

from callroom.api.dependencies import GatewayDep, LiveKitDep
from callroom.services.token_gateway import TokenGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/livekit", tags=["LiveKit Webhooks"])


@router.post("/webhook")
async def livekit_webhook(
    request: Request,
    livekit: LiveKitDep,
    gateway: GatewayDep,
    authorization: str | None = Header(None),
):
    """LiveKit 이벤트 웹훅"""
    body = livekit.parse_webhook(await request.body(), authorization)
    if body is None:
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    event_type = body.get("event")
    logger.info(f"[LiveKit Webhook] Received event: {event_type}")

    if event_type in ("participant_joined", "participant_left"):
        handle_participant_event(event_type, body)
    elif event_type == "room_finished":
        await handle_room_finished(body, gateway)
    else:
        logger.debug(f"[LiveKit Webhook] Unhandled event type: {event_type}")

    return {"status": "ok"}


def handle_participant_event(event_type: str, body: dict) -> None:
    """참여자 입장/퇴장 이벤트 처리"""
    participant = body.get("participant", {})
    room = body.get("room", {})

    logger.info(
        f"[LiveKit] {event_type}: room={room.get('name', '')}, "
        f"id={participant.get('identity', '')}"
    )


async def handle_room_finished(body: dict, gateway: TokenGateway) -> None:
    """룸 종료 이벤트 처리

    마지막 참여자가 LiveKit 룸을 떠나면 발생합니다.
    /api/leave 호출 없이 끊긴 참여자의 슬롯이 남아 있을 수 있으므로 모두 반환합니다.
    """
    room_name = body.get("room", {}).get("name", "")

    freed = await gateway.release_room(room_name, source="room_finished")
    logger.info(f"[LiveKit] Room finished: {room_name}, freed={freed}")
