"""
FastAPI应用入口点
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recap.config import settings
from recap.core import (
    setup_logging,
    RequestLoggingMiddleware,
    ExceptionHandlingMiddleware,
    api_logger
)
from recap.db.session import init_db
from recap.services.ai.ai_service import init_ai_service, shutdown_ai_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    api_logger.info("Starting Study Recap API...")

    try:
        # 初始化数据库
        await init_db()
        api_logger.info("Database initialized successfully")

        # 初始化AI服务
        init_ai_service(settings.ai_config)
        api_logger.info("AI service initialized successfully")
    except Exception as e:
        api_logger.error(f"Failed to initialize application: {e}")
        raise

    api_logger.info("Study Recap API started successfully")

    yield

    api_logger.info("Shutting down Study Recap API...")

    try:
        await shutdown_ai_service()
        api_logger.info("AI service shutdown successfully")
    except Exception as e:
        api_logger.error(f"Error shutting down AI service: {e}")

    api_logger.info("Study Recap API shutdown completed")


# 设置日志
setup_logging()

# 创建FastAPI应用实例
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Transcribes and summarizes students' uploaded recordings and documents",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# 添加中间件（注意顺序很重要）
app.add_middleware(ExceptionHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# 配置CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": "Welcome to Study Recap API",
        "version": settings.app_version,
        "docs_url": "/docs" if settings.debug else None
    }


@app.get("/health")
async def health_check():
    """简单健康检查"""
    return {"status": "healthy", "version": settings.app_version}


# 导入路由
from recap.api.v1.api import api_router  # noqa: E402
app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "recap.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug"
    )
