from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Huddle Signaling", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:8080",
        ],
        description="List of allowed CORS origins",
    )

    admin_secret: str = Field(
        default="",
        validation_alias=AliasChoices("OPENVIDU_SECRET", "ADMIN_SECRET"),
        description="Server wide secret granting trusted status; empty disables it.",
    )
    admin_user: str = Field(
        default="OPENVIDUAPP",
        description="User name expected in HTTP Basic credentials of the REST API.",
    )

    rpc_path: str = Field(default="/openvidu", description="Websocket path of the JSON-RPC endpoint")
    metadata_max_length: int = Field(
        default=10000, ge=0, description="Maximum accepted length of client metadata"
    )
    websocket_keepalive_timeout_seconds: float = Field(
        default=30.0, description="Idle receive timeout before a keepalive ping is sent"
    )
    websocket_keepalive_ping_interval_seconds: float = Field(
        default=25.0, description="Minimum interval between keepalive pings"
    )

    media_server_url: AnyHttpUrl | None = Field(
        default=None, description="Base URL of the SFU HTTP API; unset disables media"
    )
    media_server_api_key: str = Field(default="", description="API key sent to the SFU")
    media_server_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout of SFU HTTP calls"
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("rpc_path", mode="before")
    @classmethod
    def normalise_rpc_path(cls, value: str) -> str:
        value = str(value).strip() or "/openvidu"
        return value if value.startswith("/") else f"/{value}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
