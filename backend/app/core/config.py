import logging
from pathlib import Path
from typing import List, Union

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "InventoryHub 库存订单管理"
    API_PREFIX: str = "/api"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置（sqlite:/// 会自动换成 aiosqlite 驱动）
    SQLITE_DATABASE_URI: str = "sqlite:///./inventory_hub.db"

    # 日志配置（文件按天写入 LOG_DIR/app_YYYY-MM-DD.log 和 error_YYYY-MM-DD.log）
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")
    LOG_TO_FILE: bool = True

    # 业务配置
    DEFAULT_CURRENCY: str = "JPY"
    LOW_STOCK_THRESHOLD: int = Field(default=5, ge=1, description="低库存阈值（库存 < 阈值 计为低库存）")

    # 煤炉（Mercari）订单导入
    MARKETPLACE_PAGE_SIZE: int = 100
    MARKETPLACE_TIMEOUT_SECONDS: float = 30.0

    class Config:
        case_sensitive = True
        env_file = ".env"

    @property
    def async_database_uri(self) -> str:
        """异步驱动的数据库地址"""
        if self.SQLITE_DATABASE_URI.startswith("sqlite:///"):
            return self.SQLITE_DATABASE_URI.replace("sqlite:///", "sqlite+aiosqlite:///")
        return self.SQLITE_DATABASE_URI


settings = Settings()
logger.info(f"加载配置: API_PREFIX={settings.API_PREFIX}, CORS={settings.BACKEND_CORS_ORIGINS}")
