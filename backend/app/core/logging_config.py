"""
日志配置

- 控制台：彩色输出，级别由 LOG_LEVEL 决定
- 文件：LOG_DIR 下按天分文件，app_YYYY-MM-DD.log 记 INFO 以上，error_YYYY-MM-DD.log 只记 ERROR
- LOG_TO_FILE=false 时只输出到控制台（测试）
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 第三方库只看警告以上
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "httpx")


class ColoredFormatter(logging.Formatter):
    """彩色日志格式（控制台用）"""

    COLORS = {
        'DEBUG': '\033[36m',     # 青色
        'INFO': '\033[32m',      # 绿色
        'WARNING': '\033[33m',   # 黄色
        'ERROR': '\033[31m',     # 红色
        'CRITICAL': '\033[35m',  # 紫色
    }
    RESET = '\033[0m'

    def format(self, record):
        # 复制一份，颜色码不能带进文件日志
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def daily_log_path(log_dir: Path, prefix: str, day: Optional[date] = None) -> Path:
    """LOG_DIR/<prefix>_YYYY-MM-DD.log"""
    return log_dir / f"{prefix}_{(day or date.today()).isoformat()}.log"


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    to_file: Optional[bool] = None,
) -> None:
    """
    配置根日志器，参数缺省时取 settings 中的 LOG_LEVEL / LOG_DIR / LOG_TO_FILE

    重复调用会先清掉已有的处理器。
    """
    level_name = (log_level or settings.LOG_LEVEL).upper()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if settings.LOG_TO_FILE if to_file is None else to_file:
        target_dir = Path(log_dir or settings.LOG_DIR)
        target_dir.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_file_handler(daily_log_path(target_dir, "app"), logging.INFO))
        root_logger.addHandler(_file_handler(daily_log_path(target_dir, "error"), logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"📋 日志系统初始化完成 (级别 {level_name})")


def get_logger(name: str) -> logging.Logger:
    """
    获取命名日志器

    Usage:
        logger = get_logger(__name__)
        logger.info("Hello")
    """
    return logging.getLogger(name)
