from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.api_v1.api import api_router
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import setup_logging, get_logger
from app.db.session import SessionLocal, engine
from app.db.migrations import run_migrations
from app.db.init_db import ensure_tables_exist

# 初始化日志系统（LOG_LEVEL / LOG_DIR / LOG_TO_FILE 见 settings）
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("🚀 应用启动中...")

    # 确保数据库表存在
    await ensure_tables_exist()
    logger.info("📊 数据库表已就绪")

    # 运行数据库迁移（仅 SQLite）
    if engine.dialect.name == "sqlite":
        async with SessionLocal() as db:
            result = await run_migrations(db)

        for col in result.get("columns_added", []):
            logger.info(f"   ✅ 添加字段 {col}")
        for col in result.get("columns_dropped", []):
            logger.info(f"   🗑️ 移除字段 {col}")
        if result.get("old_version") != result.get("new_version"):
            logger.info(f"📊 数据库版本: {result.get('old_version') or '初始'} → {result.get('new_version')}")
        for error in result.get("errors", []):
            logger.warning(f"数据库迁移跳过: {error}")

    yield
    logger.info("🛑 应用关闭中...")
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    description="库存订单管理 - 单机版",
    lifespan=lifespan
)

# CORS配置
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# 业务异常 → {"detail": ..., "code": ...}
register_exception_handlers(app)

logger.info(f"注册API路由，前缀: {settings.API_PREFIX}")
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
