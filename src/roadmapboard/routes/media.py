from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response

from roadmapboard import config
from roadmapboard.store import MemoryStore

router = APIRouter()


@router.get("/media/{name}")
def media_blob(name: str, request: Request):
    """memory 存储的图片公开 URL；supabase 存储的图片直接走 Storage 公开地址。"""
    gateway = request.app.state.gateway
    if not isinstance(gateway, MemoryStore):
        raise HTTPException(status_code=404, detail="not found")
    blob = gateway.get_blob(name)
    if blob is None:
        raise HTTPException(status_code=404, detail="not found")
    data, content_type = blob
    return Response(content=data, media_type=content_type)


@router.get("/healthz")
def healthz(request: Request):
    return {
        "ok": True,
        "store_backend": type(request.app.state.gateway).__name__,
        "configured_backend": config.STORE_BACKEND,
    }
