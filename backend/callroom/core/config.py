from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 앱 설정
    app_name: str = "callroom"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # 서버
    host: str = "0.0.0.0"
    port: int = 3000

    # LiveKit (LIVEKIT_ 접두사 없는 이름도 허용)
    api_key: str = Field(default="", validation_alias=AliasChoices("api_key", "livekit_api_key"))
    api_secret: str = Field(
        default="", validation_alias=AliasChoices("api_secret", "livekit_api_secret")
    )
    ws_url: str = Field(default="", validation_alias=AliasChoices("ws_url", "livekit_ws_url"))

    # 토큰 발급
    token_ttl_seconds: int = 2 * 60 * 60
    issuance_timeout_seconds: float = 5.0

    # 정적 클라이언트 디렉터리 (존재할 때만 마운트)
    static_dir: str = "public"

    # CORS
    cors_origins: list[str] = ["*"]

    # OpenTelemetry (None이면 비활성)
    otel_exporter_otlp_endpoint: str | None = None

    @property
    def is_livekit_configured(self) -> bool:
        """API 키/시크릿과 접속 URL이 모두 설정되었는지 여부"""
        return bool(self.api_key and self.api_secret and self.ws_url)


@lru_cache
def get_settings() -> Settings:
    """설정 싱글톤 반환"""
    return Settings()
