"""LiveKit 서비스 - 액세스 토큰 생성, 웹훅 검증

LiveKit SDK를 사용하여 방 하나, identity 하나로 범위가 제한된
참여자 액세스 토큰(JWT)을 서명합니다. 미디어 연결은 브라우저 SDK가 담당합니다.
"""

import logging
from datetime import timedelta
from typing import Any

from google.protobuf.json_format import MessageToDict
from livekit import api

from callroom.core.config import Settings, get_settings
from callroom.core.room_config import DEFAULT_TOKEN_TTL_SECONDS

logger = logging.getLogger(__name__)


class LiveKitService:
    """LiveKit 서버 연동 서비스"""

    def __init__(self, settings: Settings | None = None):
        settings = settings or get_settings()
        self._api_key = settings.api_key
        self._api_secret = settings.api_secret
        self._ws_url = settings.ws_url

        # 웹훅 서명 검증은 키/시크릿만 있으면 가능
        self._webhook_receiver: api.WebhookReceiver | None = None
        if self._api_key and self._api_secret:
            self._webhook_receiver = api.WebhookReceiver(
                api.TokenVerifier(api_key=self._api_key, api_secret=self._api_secret)
            )

    @property
    def is_configured(self) -> bool:
        """LiveKit 설정 완료 여부 (키, 시크릿, 접속 URL)"""
        return bool(self._api_key and self._api_secret and self._ws_url)

    @property
    def ws_url(self) -> str:
        """클라이언트용 WebSocket URL"""
        return self._ws_url

    def generate_token(
        self,
        room_name: str,
        participant_id: str,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
    ) -> str:
        """참여자용 액세스 토큰 생성

        1:1 통화이므로 두 참여자 모두 동일한 권한을 받습니다.

        Args:
            room_name: 룸 이름
            participant_id: 참여자 identity
            ttl_seconds: 토큰 유효 시간 (초)

        Returns:
            JWT 토큰 문자열
        """
        if not self.is_configured:
            raise ValueError("LiveKit is not configured")

        grant = api.VideoGrants(
            room=room_name,
            room_join=True,
            can_publish=True,
            can_subscribe=True,
            can_publish_data=True,
        )

        token = (
            api.AccessToken(self._api_key, self._api_secret)
            .with_identity(participant_id)
            .with_name(participant_id)
            .with_ttl(timedelta(seconds=ttl_seconds))
            .with_grants(grant)
        )

        logger.info(f"[LiveKit] Token generated for {participant_id} (room={room_name})")

        return token.to_jwt()

    def parse_webhook(self, body: bytes, authorization: str | None) -> dict[str, Any] | None:
        """LiveKit 웹훅 서명 검증 및 이벤트 파싱

        Args:
            body: 요청 본문 (서명 대상 원문)
            authorization: Authorization 헤더 값

        Returns:
            검증된 이벤트 딕셔너리 또는 None (검증 실패 시)
        """
        if not authorization:
            logger.warning("[LiveKit Webhook] Missing Authorization header")
            return None

        if self._webhook_receiver is None:
            logger.warning("[LiveKit Webhook] LiveKit not configured")
            return None

        try:
            # receive()가 서명 검증 + 이벤트 파싱 수행
            event = self._webhook_receiver.receive(body.decode(), authorization)
        except Exception as e:
            logger.error(f"[LiveKit Webhook] Signature verification failed: {e}")
            return None

        if event is None:
            logger.warning("[LiveKit Webhook] Invalid webhook signature")
            return None

        return MessageToDict(event, preserving_proto_field_name=False)
