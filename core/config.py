"""
配置文件 - 项目配置管理
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseModel):
    url: Optional[str] = None


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./texter_storage.db"


class S3StorageSettings(BaseModel):
    """S3-compatible (Cloudflare R2, MinIO, AWS) image storage settings."""

    enabled: bool = False
    endpoint: str = ""
    bucket: str = ""
    access_key: str = ""
    secret_key: str = ""
    region: str = "auto"  # R2 convention
    public_url: str = ""
    path_prefix: str = ""
    preferred_storage: Literal["gallery", "s3"] = "gallery"
    # HTTP timeout for a single bucket request (seconds)
    timeout: float = 60.0
    # Periodic bucket sync; 0 disables the beat entry
    sync_interval_seconds: int = 3600
    sync_prune_missing: bool = False

    @field_validator("region", mode="before")
    @classmethod
    def _default_region(cls, v):
        return (v or "").strip() or "auto"


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Texter Media Storage", env=["PROJECT_NAME", "APP_NAME"])
    VERSION: str = Field(default="1.0.0", env=["VERSION", "APP_VERSION"])
    DEBUG: bool = Field(default=True, env="DEBUG")
    ENVIRONMENT: str = Field(default="development", env="ENVIRONMENT")

    # 分组配置：Redis/Database/S3 采用嵌套模型
    redis: RedisSettings = Field(default_factory=RedisSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    s3: S3StorageSettings = Field(default_factory=S3StorageSettings)

    # 安全配置：X-API-Key 请求头校验
    API_KEY: Optional[str] = Field(
        default=None,
        description="API key expected in the X-API-Key header",
    )

    CORS_ORIGINS: list = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        env="CORS_ORIGINS"
    )

    # 分页配置
    DEFAULT_PAGE_SIZE: int = Field(default=100, env="DEFAULT_PAGE_SIZE")
    MAX_PAGE_SIZE: int = Field(default=10000, env="MAX_PAGE_SIZE")

    # 日志/请求体记录配置
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True, env="LOG_REQUEST_BODY_ENABLE_BY_DEFAULT")
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048, env="LOG_REQUEST_BODY_MAX_BYTES")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @model_validator(mode="after")
    def _validate_api_key(self):
        # 所有环境均要求显式配置 API_KEY，否则网关无法校验请求
        if not self.API_KEY:
            raise ValueError(
                "API_KEY 未配置。请在环境变量或 .env 中设置 API_KEY"
            )
        return self

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
