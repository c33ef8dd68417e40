"""
server
------

GitHub webhook 을 받는 FastAPI 앱.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .errors import RelayError
from .gcp_auth import AppContext
from .logging_utils import get_logger
from .orchestrator import run_pipeline
from .webhook import SIGNATURE_HEADER


logger = get_logger(__name__)


def create_app(ctx: Optional[AppContext] = None,
               context_factory: Optional[Callable[[], AppContext]] = None) -> FastAPI:
    """
    ctx 를 넘기지 않으면 시작 시 context_factory 로 한 번 만든다.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "ctx", None) is None:
            if context_factory is None:
                raise RuntimeError("AppContext 또는 context_factory 가 필요합니다.")
            app.state.ctx = context_factory()
        yield

    app = FastAPI(
        title="GCF auto deployer",
        description="GitHub push webhook -> Cloud Functions 배포 릴레이",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> PlainTextResponse:
        if exc.status_code >= 500:
            logger.error("요청 처리 실패 (%s): %s", type(exc).__name__, exc.message, exc_info=exc)
        else:
            logger.warning("요청 거부 (%d): %s", exc.status_code, exc.message)
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
        logger.error("예상하지 못한 오류: %s", exc, exc_info=exc)
        return PlainTextResponse(str(exc) or type(exc).__name__, status_code=500)

    async def _handle(request: Request) -> JSONResponse:
        # 서명 검증은 수신한 raw bytes 로 해야 한다.
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER)
        results = await run_pipeline(request.app.state.ctx, body, signature)
        return JSONResponse(results, status_code=200)

    app.add_api_route("/", _handle, methods=["POST"])
    app.add_api_route("/webhook", _handle, methods=["POST"])

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"status": "ok"}

    return app
