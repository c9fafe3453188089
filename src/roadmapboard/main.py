# src/roadmapboard/main.py
from __future__ import annotations

import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from roadmapboard import config
from roadmapboard.editor import EditorSession
from roadmapboard.routes.admin import router as admin_router
from roadmapboard.routes.editor import router as editor_router
from roadmapboard.routes.media import router as media_router
from roadmapboard.routes.printing import router as printing_router
from roadmapboard.routes.viewer import router as viewer_router
from roadmapboard.session import SessionRegistry, session_middleware
from roadmapboard.store import RoadmapGateway, build_gateway


def _run_startup_warnings() -> None:
    """收集配置告警，统一以 WARN: 打印到 stderr（仅启动时一次）。"""
    for msg in getattr(config, "_STARTUP_WARNINGS", []) or []:
        print("WARN:", msg, file=sys.stderr)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    _run_startup_warnings()
    yield


def create_app(
    gateway: RoadmapGateway | None = None,
    prune_replaced_images: bool | None = None,
    max_sessions: int = config.MAX_SESSIONS,
    session_idle_ttl_seconds: int = config.SESSION_IDLE_TTL_SECONDS,
) -> FastAPI:
    """网关显式注入；不传时按 config 构造。"""
    gw = gateway if gateway is not None else build_gateway()
    prune = config.PRUNE_REPLACED_IMAGES if prune_replaced_images is None else prune_replaced_images

    app = FastAPI(title="Roadmap Board", lifespan=_lifespan)
    app.state.gateway = gw
    app.state.sessions = SessionRegistry(
        lambda: EditorSession(gw, prune_replaced_images=prune),
        max_sessions=max_sessions,
        idle_ttl_seconds=session_idle_ttl_seconds,
    )
    app.middleware("http")(session_middleware)
    app.include_router(viewer_router)
    app.include_router(admin_router)
    app.include_router(editor_router)
    app.include_router(printing_router)
    app.include_router(media_router)
    return app


app = create_app()


def run() -> None:
    """roadmap-board 命令：单 worker 启动（编辑会话是进程内内存态）。"""
    import uvicorn

    host = os.environ.get("ROADMAP_HOST", "127.0.0.1")
    port = config._env_int("ROADMAP_PORT", 8000)
    uvicorn.run("roadmapboard.main:app", host=host, port=port, workers=1)
