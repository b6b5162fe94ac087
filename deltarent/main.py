"""
delta-rent 应用入口：FastAPI 应用实例、路由注册、生命周期和统一异常处理。
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

# 日志配置
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    force=True,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


# ── Lifespan ──────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期：启动时初始化数据库。"""
    from deltarent.database import init_db

    init_db()
    logger.info("数据库初始化完成")
    yield


app = FastAPI(title="delta-rent", description="游戏账号租赁记账服务", lifespan=lifespan)

# ── CORS 中间件（前端跨域） ────────────────────────────────

if os.environ.get("CORS_ENABLED", "1") == "1":
    from fastapi.middleware.cors import CORSMiddleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
        allow_methods=["*"],
        allow_headers=["*"],
    )

# ── 统一异常处理 ──────────────────────────────────────────

from deltarent.routes.common import error_response
from deltarent.services.errors import ServiceError


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("请求处理失败 %s %s: %s", request.method, request.url.path, exc.message)
    return error_response(exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p not in ("body", "query"))
        message = f"参数错误: {loc} {errors[0].get('msg', '')}".strip()
    else:
        message = "参数错误"
    return error_response(message, 400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(str(exc.detail), exc.status_code)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("未处理异常 %s %s", request.method, request.url.path)
    return error_response(str(exc) or "服务器内部错误", 500)


# ── 路由注册 ──────────────────────────────────────────────

from deltarent.routes.accounts import router as accounts_router
from deltarent.routes.reports import router as reports_router
from deltarent.routes.export import router as export_router

app.include_router(accounts_router)
app.include_router(reports_router)
app.include_router(export_router)


# ── 健康检查 ──────────────────────────────────────────────

@app.get("/health")
async def health_check():
    return {"status": "ok"}


# ── 前端静态页面 ──────────────────────────────────────────

PUBLIC_DIR = Path(os.environ.get("PUBLIC_DIR", BASE_DIR.parent / "public"))

if PUBLIC_DIR.exists():
    app.mount("/", StaticFiles(directory=str(PUBLIC_DIR), html=True), name="public")
