"""LiveKit 웹훅 API 단위 테스트

테스트 케이스:
- 서명 실패: 401 ErrorResponse
- 서명된 실제 요청: room_finished 처리
- 이벤트 처리: room_finished (슬롯 반환), participant_left (슬롯 유지)
"""

import base64
import hashlib
import json
from unittest.mock import patch

from fastapi.testclient import TestClient
from livekit import api

from callroom.core.config import Settings
from callroom.services.livekit_service import LiveKitService


def _post_event(client: TestClient, event: dict):
    with patch.object(LiveKitService, "parse_webhook", return_value=event):
        return client.post(
            "/api/livekit/webhook", content=b"{}", headers={"Authorization": "signed"}
        )


def test_webhook_endpoint_returns_401_on_invalid_signature(client: TestClient):
    """서명 검증 실패 시 401, 다른 에러와 같은 본문 형식"""
    response = client.post("/api/livekit/webhook", content=b"{}")

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid webhook signature", "code": "UNAUTHORIZED"}


def test_webhook_signed_room_finished(client: TestClient, test_settings: Settings):
    """LiveKit 서버와 같은 방식으로 서명된 요청 처리"""
    client.post("/api/token", json={"roomName": "demo", "participantName": "alice"})

    body = json.dumps({"event": "room_finished", "room": {"name": "demo"}}).encode()
    body_hash = base64.b64encode(hashlib.sha256(body).digest()).decode()
    auth = (
        api.AccessToken(test_settings.api_key, test_settings.api_secret)
        .with_sha256(body_hash)
        .to_jwt()
    )

    response = client.post(
        "/api/livekit/webhook", content=body, headers={"Authorization": auth}
    )

    assert response.status_code == 200
    assert client.get("/api/room/demo").json()["participantCount"] == 0


def test_webhook_room_finished_frees_slots(client: TestClient):
    """room_finished 이벤트 시 남은 슬롯 모두 반환"""
    client.post("/api/token", json={"roomName": "demo", "participantName": "alice"})
    client.post("/api/token", json={"roomName": "demo", "participantName": "bob"})

    response = _post_event(client, {"event": "room_finished", "room": {"name": "demo"}})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert client.get("/api/room/demo").json()["participantCount"] == 0


def test_webhook_participant_left_keeps_slot(client: TestClient):
    """participant_left는 로그만 남기고 슬롯은 유지"""
    client.post("/api/token", json={"roomName": "demo", "participantName": "alice"})

    response = _post_event(
        client,
        {
            "event": "participant_left",
            "room": {"name": "demo"},
            "participant": {"identity": "alice"},
        },
    )

    assert response.status_code == 200
    assert client.get("/api/room/demo").json()["participantCount"] == 1


def test_webhook_unhandled_event(client: TestClient):
    response = _post_event(client, {"event": "track_published"})

    assert response.status_code == 200
