# 印刷用スタンプラリー台紙：固定 4 列布局，只读。
from __future__ import annotations

import html

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response

from roadmapboard.board_render import render_print_sheet_png
from roadmapboard.document import Game, find_game
from roadmapboard.layout import PRINT_LAYOUT
from roadmapboard.routes._view_common import LOAD_FAILED_MESSAGE, gateway_of, message_page, page, read_games

router = APIRouter()

_STYLE = """
* { box-sizing: border-box; }
body { margin: 0; font-family: system-ui, sans-serif; background: #eee; color: #333; }
.print-container { display: flex; flex-direction: column; align-items: center; padding: 16px; }
.print-controls { display: flex; gap: 12px; margin-bottom: 16px; }
.print-controls button { padding: 8px 16px; font-size: 16px; cursor: pointer; }
.print-sheet { background: #fff; width: 1100px; padding: 24px; }
.print-title { text-align: center; margin: 0; }
.print-desc { text-align: center; }
.print-grid { position: relative; }
.print-lines { position: absolute; inset: 0; width: 100%; height: 100%; z-index: 0; }
.print-card { position: absolute; z-index: 1; width: 160px; height: 160px; border: 2px solid #333; border-radius: 12px; background: #fff; display: flex; flex-direction: column; }
.stamp-area { flex: 1; display: flex; align-items: center; justify-content: center; border-bottom: 1px dashed #aaa; }
.stamp-placeholder { color: #aaa; font-weight: bold; }
.card-info { padding: 4px 8px; display: flex; align-items: center; justify-content: space-between; }
.card-info h3 { margin: 0; font-size: 13px; }
.mini-icon { width: 28px; height: 28px; object-fit: contain; }
.print-footer { margin-top: 24px; font-size: 18px; }
.print-error { padding: 48px; text-align: center; }
@media print { .no-print { display: none !important; } body { background: #fff; } .print-sheet { width: auto; } }
"""

_SCRIPT = """
document.getElementById('btnPrint').addEventListener('click', function () { window.print(); });
document.getElementById('btnClose').addEventListener('click', function () { window.close(); });
"""


def render_sheet(game: Game) -> str:
    layout = PRINT_LAYOUT
    cards: list[str] = []
    for index, step in enumerate(game.steps):
        pos = layout.position(index)
        icon = f'<img src="{html.escape(step.image)}" alt="" class="mini-icon">' if step.image else ""
        cards.append(
            f'<div class="print-card" data-step-id="{step.id}" style="top: {pos.y}px; left: {pos.x}px;">'
            f'<div class="stamp-area"><span class="stamp-placeholder">Step {step.id}</span></div>'
            f'<div class="card-info"><h3>{html.escape(step.title)}</h3>{icon}</div></div>'
        )
    cards_html = "".join(cards)
    name = html.escape(game.game_name)
    body = f"""
<div class="print-container">
  <div class="print-controls no-print">
    <button type="button" id="btnPrint">🖨️ このページを印刷する</button>
    <button type="button" id="btnClose">とじる</button>
  </div>
  <div class="print-sheet">
    <h1 class="print-title">🏁 {name} スタンプラリー 🏁</h1>
    <p class="print-desc">{html.escape(game.description)}</p>
    <div class="print-grid" style="height: {layout.board_height(len(game.steps))}px;">
      <svg class="print-lines"><path d="{layout.connector_path(game.steps)}" stroke="#333" stroke-width="4" fill="none" stroke-dasharray="15 10" stroke-linecap="round"/></svg>
      {cards_html}
    </div>
    <div class="print-footer">名前: ____________________ &nbsp;&nbsp; 開始日: ____/____/____</div>
  </div>
</div>"""
    return page(f"{game.game_name} スタンプラリー", body, style=_STYLE, script=_SCRIPT)


def _load_game(request: Request, game_id: str | None) -> tuple[Game | None, Response | None]:
    games, ok = read_games(gateway_of(request))
    if not ok:
        return None, HTMLResponse(message_page("印刷", LOAD_FAILED_MESSAGE, "print-error"), status_code=503)
    game = find_game(games, game_id)
    if game is None:
        return None, HTMLResponse(
            message_page("印刷", f"ゲームが見つかりません: {game_id or ''}", "print-error"),
            status_code=404,
        )
    return game, None


@router.get("/print", response_class=HTMLResponse)
def print_by_query(request: Request, gameId: str | None = None):
    """/print?gameId=xxx（静的路由可用的写法）。"""
    game, error = _load_game(request, gameId)
    if error is not None:
        return error
    return HTMLResponse(render_sheet(game))


PNG_SUFFIX = ".png"


# gameId 可自由编辑，可能含 "/" 或以 .png 结尾：整段按 path 收下，先精确匹配 game，再按 .png 后缀找 PNG。
@router.get("/print/{game_id:path}")
def print_by_path(request: Request, game_id: str):
    games, ok = read_games(gateway_of(request))
    if not ok:
        return HTMLResponse(message_page("印刷", LOAD_FAILED_MESSAGE, "print-error"), status_code=503)
    game = find_game(games, game_id)
    if game is not None:
        return HTMLResponse(render_sheet(game))
    if game_id.endswith(PNG_SUFFIX):
        game = find_game(games, game_id[: -len(PNG_SUFFIX)])
        if game is not None:
            return Response(content=render_print_sheet_png(game), media_type="image/png")
    return HTMLResponse(
        message_page("印刷", f"ゲームが見つかりません: {game_id}", "print-error"),
        status_code=404,
    )
