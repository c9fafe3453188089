# 管理端 JSON API：每次变更先改会话内本地副本，再整体写回远端；写失败 502 并带回当前本地 games。
from __future__ import annotations

import logging
from typing import Callable

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from roadmapboard.board_render import verify_image
from roadmapboard.config import MAX_UPLOAD_BYTES
from roadmapboard.document import Game, IndexOutOfRange, UnknownField, dump_document
from roadmapboard.editor import EditorSession
from roadmapboard.routes._input_norm import check_extension_matches, norm_extension, norm_text
from roadmapboard.store import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/editor")


class FieldUpdateIn(BaseModel):
    field: str
    value: str


class ReorderIn(BaseModel):
    from_index: int
    to_index: int


class DragStartIn(BaseModel):
    game_index: int
    step_index: int


class DragEnterIn(BaseModel):
    step_index: int


def _editor(request: Request) -> EditorSession:
    return request.state.editor


def _games_out(games: list[Game]) -> dict:
    return {"games": dump_document(games)}


def _run(request: Request, op: Callable[[EditorSession], list[Game]]):
    """统一错误映射：越界 404，未知字段 400，远端写失败 502（本地已乐观更新，不回滚）。"""
    session = _editor(request)
    try:
        games = op(session)
    except IndexOutOfRange as e:
        raise HTTPException(status_code=404, detail=f"invalid {e.name}")
    except UnknownField:
        raise HTTPException(status_code=400, detail="invalid field")
    except StoreError:
        return JSONResponse(
            status_code=502,
            content={"detail": "save failed", **_games_out(session.games)},
        )
    return _games_out(games)


@router.get("/document")
def editor_document(request: Request):
    """挂载：从远端重新读取到本会话；记录不存在返回空列表。"""
    session = _editor(request)
    try:
        games = session.load()
    except StoreError:
        logger.exception("editor load failed")
        raise HTTPException(status_code=503, detail="load failed")
    return _games_out(games)


@router.post("/games")
def editor_add_game(request: Request):
    return _run(request, lambda s: s.add_game())


@router.patch("/games/{game_index}")
def editor_update_game(game_index: int, req: FieldUpdateIn, request: Request):
    value = norm_text("value", req.value)
    return _run(request, lambda s: s.update_game(game_index, req.field, value))


@router.delete("/games/{game_index}")
def editor_delete_game(game_index: int, request: Request):
    """删除确认由页面 confirm() 完成。"""
    return _run(request, lambda s: s.delete_game(game_index))


@router.post("/games/{game_index}/steps")
def editor_add_step(game_index: int, request: Request):
    return _run(request, lambda s: s.add_step(game_index))


@router.patch("/games/{game_index}/steps/{step_index}")
def editor_update_step(game_index: int, step_index: int, req: FieldUpdateIn, request: Request):
    value = norm_text("value", req.value)
    return _run(request, lambda s: s.update_step(game_index, step_index, req.field, value))


@router.delete("/games/{game_index}/steps/{step_index}")
def editor_delete_step(game_index: int, step_index: int, request: Request):
    return _run(request, lambda s: s.delete_step(game_index, step_index))


@router.post("/games/{game_index}/steps/reorder")
def editor_reorder_step(game_index: int, req: ReorderIn, request: Request):
    """越界或 from == to 时不写远端，原样返回。"""
    return _run(request, lambda s: s.reorder_step(game_index, req.from_index, req.to_index))


@router.post("/drag/start")
def editor_drag_start(req: DragStartIn, request: Request):
    def op(s: EditorSession) -> list[Game]:
        s.drag_start(req.game_index, req.step_index)
        return s.games

    return _run(request, op)


@router.post("/drag/enter")
def editor_drag_enter(req: DragEnterIn, request: Request):
    """只改本地副本（即时重排 id），不写远端。"""
    return _run(request, lambda s: s.drag_enter(req.step_index))


@router.post("/drag/end")
def editor_drag_end(request: Request):
    return _run(request, lambda s: s.drag_end())


@router.post("/games/{game_index}/steps/{step_index}/image")
def editor_upload_image(game_index: int, step_index: int, request: Request, file: UploadFile = File(...)):
    ext = norm_extension(file.filename)
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    if not data:
        raise HTTPException(status_code=400, detail="invalid file")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="file too large")
    try:
        image_format = verify_image(data)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid image")
    check_extension_matches(ext, image_format)
    return _run(request, lambda s: s.set_step_image(game_index, step_index, data, ext))


@router.delete("/games/{game_index}/steps/{step_index}/image")
def editor_clear_image(game_index: int, step_index: int, request: Request):
    return _run(request, lambda s: s.clear_step_image(game_index, step_index))
