from contextlib import asynccontextmanager
import logging
import uuid
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

# 引入配置和工厂
from audio_pipeline.config import HOST, PORT, LOG_LEVEL, ALLOWED_ORIGINS, load_processing_config
from audio_pipeline.core.factory import create_engine
from audio_pipeline.services.converter import AudioConverter
from audio_pipeline.api.routes import router as api_router

# === 基础日志配置 ===
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger("audio_pipeline.main")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    生命周期管理器 (The System Lifecycle)
    FastAPI 启动前执行 yield 前的代码，关闭后执行 yield 后的代码。
    """
    logger.info("🌱 System starting up...")
    config = load_processing_config()
    logger.info(f"📋 Engine type: {config.engine}")
    logger.info(f"📋 Processing mode: {config.processing_mode}")

    # 1. 使用工厂创建并校验引擎（配置错误在此直接失败）
    engine = create_engine(config)

    # 2. 初始化转码器
    converter = AudioConverter(config=config)

    # 3. 依赖注入
    app.state.engine = engine
    app.state.converter = converter
    app.state.processing_mode = str(getattr(config.processing_mode, "value", config.processing_mode))

    logger.info("✅ System ready! Listening for requests...")

    yield  # --- 服务运行中 ---

    logger.info("🛑 System shutting down...")
    if hasattr(app.state, "engine"):
        app.state.engine.shutdown()

# === 初始化 FastAPI ===
app = FastAPI(
    title="Audio Pipeline Service",
    version="1.0.0",
    lifespan=lifespan  # 挂载生命周期
)

# 解析 CORS origins
cors_origins = ALLOWED_ORIGINS.split(",") if ALLOWED_ORIGINS != "*" else ["*"]
logger.info(f"🔒 CORS allowed origins: {cors_origins}")

# CORS 中间件（默认仅本地）
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 请求日志中间件（生成 request_id 并记录耗时）
@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()
    logger.info(f"[{request_id}] {request.method} {request.url.path}")

    response = await call_next(request)

    duration = time.time() - start_time
    logger.info(f"[{request_id}] Completed in {duration:.2f}s - Status: {response.status_code}")

    response.headers["X-Request-ID"] = request_id
    return response

# 注册路由
app.include_router(api_router)

# 简单的健康检查
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "engine": app.state.engine.name if hasattr(app.state, "engine") else "unknown",
        "processing_mode": app.state.processing_mode if hasattr(app.state, "processing_mode") else "unknown"
    }

if __name__ == "__main__":
    # 开发模式启动
    uvicorn.run(app, host=HOST, port=PORT)
