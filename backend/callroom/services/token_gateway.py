"""토큰 발급 게이트웨이

입장 요청을 검증하고 RoomRegistry로 정원을 확인한 뒤 LiveKit 토큰을 발급합니다.
- 발급이 실패하거나 시간 초과되면 새로 잡은 슬롯을 되돌립니다.
  같은 identity의 다른 요청이 이미 토큰을 받았다면 슬롯은 유지됩니다.
- 퇴장(release)은 best-effort이며 호출자에게 에러를 전달하지 않습니다.
- 자동 재시도는 하지 않습니다. 재시도는 클라이언트가 입장 흐름 전체를 다시 수행합니다.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from callroom.core.exceptions import (
    InvalidRequestError,
    IssuanceFailedError,
    NotConfiguredError,
    RoomFullError,
)
from callroom.core.room_config import DEFAULT_TOKEN_TTL_SECONDS
from callroom.core.telemetry import CallRoomMetrics
from callroom.services.livekit_service import LiveKitService
from callroom.services.room_registry import AdmissionResult, RoomRegistry, RoomStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessGrant:
    """발급된 토큰과 접속 정보"""

    token: str
    ws_url: str
    room_name: str
    participant_name: str


@dataclass
class _PendingAdmission:
    """같은 (방, identity)에 대해 발급 중인 요청 상태"""

    in_flight: int = 0
    fresh: bool = False  # 진행 중인 요청 중 하나가 슬롯을 새로 잡았는지
    confirmed: bool = False  # 진행 중인 요청 중 하나가 토큰을 돌려받았는지


def _normalize(value: Any) -> str:
    """문자열이면 앞뒤 공백 제거, 아니면 빈 문자열"""
    return value.strip() if isinstance(value, str) else ""


class TokenGateway:
    """토큰 발급 게이트웨이"""

    def __init__(
        self,
        registry: RoomRegistry,
        livekit: LiveKitService,
        token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        issuance_timeout_seconds: float = 5.0,
        metrics: CallRoomMetrics | None = None,
    ):
        self._registry = registry
        self._livekit = livekit
        self._token_ttl_seconds = token_ttl_seconds
        self._issuance_timeout_seconds = issuance_timeout_seconds
        self._metrics = metrics
        # (room_id, participant_id) -> 발급 중인 요청 상태
        self._pending: dict[tuple[str, str], _PendingAdmission] = {}
        # 입장 확보와 롤백이 서로 끼어들지 않도록 직렬화
        self._admission_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return self._livekit.is_configured

    async def request_access(self, room_name: Any, participant_name: Any) -> AccessGrant:
        """방 입장 슬롯을 확보하고 액세스 토큰 발급

        Args:
            room_name: 방 이름
            participant_name: 참여자 identity

        Returns:
            AccessGrant

        Raises:
            InvalidRequestError: 방 이름 또는 참여자 이름이 비어 있음
            NotConfiguredError: LiveKit 자격 증명 미설정
            RoomFullError: 정원 초과
            IssuanceFailedError: 토큰 서명 실패 또는 시간 초과
        """
        room_id = _normalize(room_name)
        participant_id = _normalize(participant_name)

        if not room_id or not participant_id:
            self._record_request("invalid_request")
            raise InvalidRequestError()

        if not self._livekit.is_configured:
            self._record_request("not_configured")
            raise NotConfiguredError()

        key = (room_id, participant_id)
        async with self._admission_lock:
            admission = await self._registry.try_admit(room_id, participant_id)
            if admission.admitted:
                pending = self._pending.setdefault(key, _PendingAdmission())
                pending.in_flight += 1
                if admission is AdmissionResult.ADMITTED:
                    pending.fresh = True

        if not admission.admitted:
            self._record_request("room_full")
            raise RoomFullError(self._registry.capacity)

        start_time = time.perf_counter()
        try:
            token = await asyncio.wait_for(
                asyncio.to_thread(
                    self._livekit.generate_token,
                    room_id,
                    participant_id,
                    self._token_ttl_seconds,
                ),
                timeout=self._issuance_timeout_seconds,
            )
        except asyncio.CancelledError:
            await self._finish(key, issued=False)
            raise
        except Exception as e:
            logger.error(
                f"[Gateway] Token generation failed: room={room_id}, id={participant_id}, "
                f"error={e!r}"
            )
            await self._finish(key, issued=False)
            self._record_request("issuance_failed")
            raise IssuanceFailedError() from e

        await self._finish(key, issued=True)

        if self._metrics:
            self._metrics.token_issuance_duration.record(time.perf_counter() - start_time)
        self._record_request("issued")

        return AccessGrant(
            token=token,
            ws_url=self._livekit.ws_url,
            room_name=room_id,
            participant_name=participant_id,
        )

    async def release_access(
        self, room_name: Any, participant_name: Any, source: str = "leave"
    ) -> None:
        """참여자 슬롯 반환 (best-effort, 예외를 전파하지 않음)"""
        room_id = _normalize(room_name)
        participant_id = _normalize(participant_name)
        if not room_id or not participant_id:
            logger.debug("[Gateway] Release ignored: missing room or participant")
            return

        try:
            await self._registry.remove(room_id, participant_id)
        except Exception as e:
            logger.warning(
                f"[Gateway] Release failed: room={room_id}, id={participant_id}, error={e!r}"
            )
            return

        if self._metrics:
            self._metrics.room_releases_total.add(1, {"source": source})

    async def release_room(self, room_name: Any, source: str = "room_finished") -> int:
        """방의 모든 슬롯 반환

        Returns:
            반환한 슬롯 수
        """
        room_id = _normalize(room_name)
        if not room_id:
            return 0

        members = await self._registry.members(room_id)
        for participant_id in members:
            await self.release_access(room_id, participant_id, source=source)

        if members:
            logger.info(f"[Gateway] Room released: room={room_id}, freed={len(members)}")
        return len(members)

    async def room_status(self, room_name: Any) -> RoomStatus:
        """방 점유 상태 조회 (토큰 발급과 같은 공백 정리 규칙)"""
        return await self._registry.status(_normalize(room_name))

    async def _finish(self, key: tuple[str, str], issued: bool) -> None:
        # 마지막으로 끝난 요청이 슬롯 유지/반환을 결정
        async with self._admission_lock:
            pending = self._pending[key]
            pending.in_flight -= 1
            if issued:
                pending.confirmed = True
            if pending.in_flight > 0:
                return

            del self._pending[key]
            # 이전 요청에서 이미 확보된 슬롯(REJOINED만 있던 경우)이나
            # 토큰이 한 번이라도 전달된 슬롯은 유지
            if not pending.fresh or pending.confirmed:
                return

            room_id, participant_id = key
            await self._registry.remove(room_id, participant_id)

        logger.info(f"[Gateway] Admission rolled back: room={room_id}, id={participant_id}")

    def _record_request(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.token_requests_total.add(1, {"outcome": outcome})
