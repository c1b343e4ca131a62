"""OpenTelemetry 계측 설정

OTLP 엔드포인트가 설정된 경우에만 MeterProvider를 등록합니다.
설정이 없으면 noop meter가 사용되고 get_callroom_metrics()는 None을 반환합니다.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def init_telemetry(
    service_name: str,
    otlp_endpoint: str,
    service_version: str = "0.1.0",
    environment: str = "development",
) -> metrics.Meter:
    """OpenTelemetry MeterProvider 초기화

    Args:
        service_name: 서비스 이름
        otlp_endpoint: OTLP gRPC 수신 엔드포인트
        service_version: 서비스 버전
        environment: 배포 환경 이름

    Returns:
        Meter 인스턴스
    """
    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: environment,
        }
    )

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=otlp_endpoint, insecure=True),
        export_interval_millis=10000,  # 10초마다 export
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)

    logger.info(
        "Telemetry initialized: service=%s, endpoint=%s",
        service_name,
        otlp_endpoint,
    )

    return metrics.get_meter(service_name, service_version)


def instrument_fastapi(app: FastAPI) -> None:
    """FastAPI 자동 계측"""
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumentation enabled")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


class CallRoomMetrics:
    """통화방 커스텀 메트릭"""

    def __init__(self, meter: metrics.Meter):
        self.meter = meter
        self.token_requests_total = self.meter.create_counter(
            name="callroom_token_requests_total",
            description="토큰 요청 수 (outcome별)",
        )
        self.token_issuance_duration = self.meter.create_histogram(
            name="callroom_token_issuance_duration_seconds",
            description="LiveKit 토큰 서명 소요 시간",
            unit="s",
        )
        self.room_releases_total = self.meter.create_counter(
            name="callroom_room_releases_total",
            description="참여자 슬롯 반환 수 (source별)",
        )


_callroom_metrics: CallRoomMetrics | None = None


def get_callroom_metrics() -> CallRoomMetrics | None:
    """메트릭 인스턴스 반환 (초기화 안 된 경우 None)"""
    return _callroom_metrics


def setup_telemetry(
    service_name: str,
    otlp_endpoint: str | None,
    environment: str = "development",
) -> CallRoomMetrics | None:
    """전역 telemetry 설정 (애플리케이션 시작 시 호출)"""
    global _callroom_metrics

    if _callroom_metrics is not None:
        logger.warning("Telemetry already initialized, skipping")
        return _callroom_metrics

    if not otlp_endpoint:
        logger.info("Telemetry disabled: no OTLP endpoint configured")
        return None

    meter = init_telemetry(service_name, otlp_endpoint, environment=environment)
    _callroom_metrics = CallRoomMetrics(meter)
    return _callroom_metrics
