"""pytest 설정 및 공유 fixture

테스트 인프라:
- 테스트용 Settings (LiveKit 키 포함/미포함)
- 레지스트리, LiveKit 서비스, 게이트웨이
- FastAPI TestClient / AsyncClient (게이트웨이 의존성 오버라이드)
"""

from collections.abc import AsyncGenerator, Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient

from callroom.api.dependencies import get_livekit_service, get_token_gateway
from callroom.core.config import Settings
from callroom.main import app
from callroom.services.livekit_service import LiveKitService
from callroom.services.room_registry import InMemoryRoomRegistry
from callroom.services.token_gateway import TokenGateway

TEST_API_KEY = "test-api-key"
TEST_API_SECRET = "test-api-secret-that-is-long-enough-for-hs256"
TEST_WS_URL = "ws://localhost:7880"


# ===== 테스트 설정 =====


@pytest.fixture
def test_settings() -> Settings:
    """LiveKit이 설정된 테스트용 설정"""
    return Settings(
        app_env="test",
        debug=True,
        api_key=TEST_API_KEY,
        api_secret=TEST_API_SECRET,
        ws_url=TEST_WS_URL,
        issuance_timeout_seconds=2.0,
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    """LiveKit 자격 증명이 없는 설정"""
    return Settings(app_env="test", api_key="", api_secret="", ws_url="")


# ===== 서비스 Fixture =====


@pytest.fixture
def registry() -> InMemoryRoomRegistry:
    return InMemoryRoomRegistry()


@pytest.fixture
def livekit_service(test_settings: Settings) -> LiveKitService:
    return LiveKitService(test_settings)


@pytest.fixture
def mock_livekit() -> MagicMock:
    """토큰 서명을 대신하는 LiveKitService Mock"""
    mock = MagicMock(spec=LiveKitService)
    mock.is_configured = True
    mock.ws_url = TEST_WS_URL
    mock.generate_token.return_value = "mock-jwt"
    return mock


@pytest.fixture
def gateway(
    registry: InMemoryRoomRegistry,
    livekit_service: LiveKitService,
    test_settings: Settings,
) -> TokenGateway:
    """실제 LiveKit 토큰 서명을 사용하는 게이트웨이"""
    return TokenGateway(
        registry=registry,
        livekit=livekit_service,
        token_ttl_seconds=test_settings.token_ttl_seconds,
        issuance_timeout_seconds=test_settings.issuance_timeout_seconds,
    )


# ===== FastAPI Client Fixture =====


@pytest.fixture
def override_dependencies(gateway: TokenGateway, test_settings: Settings):
    """게이트웨이/LiveKit 서비스 의존성 오버라이드 (테스트 후 원복)"""

    def _apply(target_gateway: TokenGateway = gateway, settings: Settings = test_settings):
        livekit = LiveKitService(settings)
        app.dependency_overrides[get_token_gateway] = lambda: target_gateway
        app.dependency_overrides[get_livekit_service] = lambda: livekit

    _apply()
    yield _apply
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_dependencies) -> Generator[TestClient, None, None]:
    """동기 FastAPI TestClient"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def async_client(override_dependencies) -> AsyncGenerator[AsyncClient, None]:
    """비동기 FastAPI TestClient

    동시 요청 테스트에 사용
    """
    from httpx import ASGITransport

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
