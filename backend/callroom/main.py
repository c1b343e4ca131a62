import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from callroom.api.dependencies import GatewayDep
from callroom.api.router import api_router
from callroom.core.config import Settings, get_settings
from callroom.core.exceptions import GatewayError, InvalidRequestError
from callroom.core.telemetry import get_callroom_metrics, instrument_fastapi, setup_telemetry
from callroom.schemas.common import ErrorResponse
from callroom.schemas.room import HealthResponse
from callroom.services.livekit_service import LiveKitService
from callroom.services.room_registry import InMemoryRoomRegistry
from callroom.services.token_gateway import TokenGateway

settings = get_settings()

# 로깅 설정
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_token_gateway(settings: Settings, livekit: LiveKitService) -> TokenGateway:
    """레지스트리와 LiveKit 서비스를 묶어 게이트웨이 생성"""
    return TokenGateway(
        registry=InMemoryRoomRegistry(),
        livekit=livekit,
        token_ttl_seconds=settings.token_ttl_seconds,
        issuance_timeout_seconds=settings.issuance_timeout_seconds,
        metrics=get_callroom_metrics(),
    )


def mount_static(app: FastAPI, directory: str | Path) -> bool:
    """정적 클라이언트를 "/"에 마운트

    API 라우트가 먼저 매칭되도록 모든 라우터 등록 후 호출합니다.

    Returns:
        디렉터리가 있어 마운트했으면 True
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.info(f"Static directory not found, skipping: {directory}")
        return False

    app.mount("/", StaticFiles(directory=directory, html=True), name="static")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 라이프사이클"""
    setup_telemetry(settings.app_name, settings.otel_exporter_otlp_endpoint, settings.app_env)

    # 프로세스 재시작 시 모든 방은 빈 상태로 시작
    livekit = LiveKitService(settings)
    app.state.livekit_service = livekit
    app.state.token_gateway = build_token_gateway(settings, livekit)

    logger.info(f"Video call server running on http://{settings.host}:{settings.port}")
    logger.info(f"LiveKit configured: {settings.is_livekit_configured}")
    yield
    logger.info("Video call server stopped")


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="1:1 video call token server",
    lifespan=lifespan,
)

# OpenTelemetry FastAPI 계측
if settings.otel_exporter_otlp_endpoint:
    instrument_fastapi(app)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str, code: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code).model_dump(),
        headers=headers,
    )


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """게이트웨이 예외를 ErrorResponse로 변환"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc}")

    return _error_response(exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """본문 파싱/타입 오류는 422 대신 400 INVALID_REQUEST"""
    logger.info(f"{request.method} {request.url.path} -> invalid body: {exc.errors()}")
    error = InvalidRequestError()

    return _error_response(error.status_code, error.message, error.code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """프레임워크 HTTP 예외도 ErrorResponse 형식으로 변환

    본문 디코딩 실패 같은 400은 INVALID_REQUEST, 그 외는 상태 이름을 코드로 사용
    """
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.detail}")

    if exc.status_code == 400:
        error = InvalidRequestError()
        return _error_response(error.status_code, error.message, error.code, exc.headers)

    try:
        code = HTTPStatus(exc.status_code).name
    except ValueError:
        code = "HTTP_ERROR"
    return _error_response(exc.status_code, str(exc.detail), code, exc.headers)


# API 라우터 등록
app.include_router(api_router)


@app.get("/api/health", response_model=HealthResponse)
async def health_check(gateway: GatewayDep) -> HealthResponse:
    """헬스 체크"""
    return HealthResponse(status="ok", configured=gateway.is_configured)


# 정적 클라이언트는 모든 API 라우트 뒤에 마운트
mount_static(app, settings.static_dir)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "callroom.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
