# 访客用すごろくロードマップ：只读，服务端按布局引擎排好卡片与连线。
from __future__ import annotations

import html
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from roadmapboard.document import Game, Step, find_game
from roadmapboard.layout import MOBILE_BREAKPOINT_PX, viewer_layout
from roadmapboard.routes._input_norm import norm_step_id, norm_viewport_width
from roadmapboard.routes._view_common import LOAD_FAILED_MESSAGE, gateway_of, message_page, page, read_games

router = APIRouter()

_STYLE = """
* { box-sizing: border-box; }
body { margin: 0; font-family: system-ui, sans-serif; background: #fffaf0; color: #333; }
.app-nav { display: flex; gap: 8px; padding: 8px 16px; background: #333; }
.app-nav a { color: #fff; text-decoration: none; padding: 4px 10px; border-radius: 6px; }
.app-nav .admin-link { display: none; }
body.admin-visible .app-nav .admin-link { display: inline; background: #007bff; }
.admin-reveal { position: fixed; top: 60px; right: 5px; z-index: 100; padding: 20px; opacity: 0.01; cursor: pointer; }
.roadmap-container { padding: 16px; }
.game-selector { display: flex; gap: 8px; flex-wrap: wrap; }
.game-selector a { padding: 6px 14px; border-radius: 16px; border: 2px solid #ff9800; color: #ff9800; text-decoration: none; }
.game-selector a.active { background: #ff9800; color: #fff; }
.main-layout { display: flex; gap: 16px; flex-wrap: wrap; }
.roadmap-grid-container { flex: 3; min-width: 320px; overflow-x: auto; }
.roadmap-steps { position: relative; }
.roadmap-lines { position: absolute; inset: 0; width: 100%; height: 100%; pointer-events: none; z-index: 0; }
.step-card { position: absolute; z-index: 1; width: 140px; min-height: 120px; padding: 8px; background: #fff; border: 3px solid #ff9800; border-radius: 12px; color: inherit; text-decoration: none; }
.step-card.active { background: #fff3e0; box-shadow: 0 0 0 4px rgba(255,152,0,0.3); }
.step-image { width: 100%; height: 48px; object-fit: contain; }
.step-id { margin: 0; font-size: 14px; }
.step-title { margin: 4px 0 0 0; font-size: 13px; }
.detail-panel { flex: 1; min-width: 240px; background: #fff; border-radius: 12px; padding: 12px; }
.roadmap-message { padding: 48px; text-align: center; }
"""

_SCRIPT_TEMPLATE = """
(function () {
  var rendered = %(vw)d, breakpoint = %(breakpoint)d;
  function mobile(w) { return w <= breakpoint; }
  function sync() {
    var w = window.innerWidth;
    if (mobile(w) !== mobile(rendered)) {
      var u = new URL(window.location.href);
      u.searchParams.set('vw', String(w));
      window.location.replace(u.toString());
    }
  }
  function reveal() { document.body.classList.add('admin-visible'); }
  window.addEventListener('resize', sync);
  window.addEventListener('keydown', function (e) {
    if (e.ctrlKey && e.altKey && (e.key === 'a' || e.key === 'A')) { e.preventDefault(); reveal(); }
  });
  var dot = document.getElementById('adminReveal');
  if (dot) dot.addEventListener('click', reveal);
  sync();
})();
"""


def _href(game_id: str, vw: int, step_id: int | None = None) -> str:
    params: dict[str, str] = {"game": game_id, "vw": str(vw)}
    if step_id is not None:
        params["step"] = str(step_id)
    return "?" + urlencode(params)


def _select_step(game: Game, step_id: int | None) -> Step | None:
    for step in game.steps:
        if step.id == step_id:
            return step
    return game.steps[0] if game.steps else None


def _scratch_link_html(step: Step) -> str:
    """旧数据里的 scratchLink（extra 字段）；有值才显示，只有 http(s) 才做成链接。"""
    link = (step.model_extra or {}).get("scratchLink")
    if not isinstance(link, str) or not link.strip():
        return ""
    text = html.escape(link)
    if link.startswith(("http://", "https://")):
        text = f'<a href="{text}" target="_blank" rel="noopener noreferrer">{text}</a>'
    return f'<p>Scratch 参照リンク: <span data-testid="scratch-link">{text}</span></p>'


def _detail_html(step: Step | None) -> str:
    if step is None:
        return "<p>ステップを選択してください。</p>"
    return (
        f"<div><h3>{html.escape(step.title)}</h3>"
        f"<p>{html.escape(step.content)}</p>"
        f'<p>タイプ: <span data-testid="step-type">{html.escape(step.type)}</span></p>'
        f"{_scratch_link_html(step)}</div>"
    )


def render_board(games: list[Game], game_id: str | None, step_id: int | None, vw: int) -> str:
    game = find_game(games, game_id) or games[0]
    selected = _select_step(game, step_id)
    layout = viewer_layout(vw)

    tabs = "".join(
        f'<a href="{html.escape(_href(g.game_id, vw))}" class="{"active" if g.game_id == game.game_id else ""}">'
        f"{html.escape(g.game_name)}</a>"
        for g in games
    )
    cards: list[str] = []
    for index, step in enumerate(game.steps):
        pos = layout.position(index)
        active = " active" if selected is not None and step.id == selected.id else ""
        image = (
            f'<img src="{html.escape(step.image)}" alt="{html.escape(step.title)}" class="step-image">'
            if step.image
            else ""
        )
        cards.append(
            f'<a class="step-card{active}" href="{html.escape(_href(game.game_id, vw, step.id))}" '
            f'data-step-id="{step.id}" style="top: {pos.y}px; left: {pos.x}px;">'
            f'{image}<h3 class="step-id">Step {step.id}</h3><p class="step-title">{html.escape(step.title)}</p></a>'
        )
    cards_html = "".join(cards)
    path = layout.connector_path(game.steps)
    height = layout.board_height(len(game.steps))

    body = f"""
<div id="adminReveal" class="admin-reveal">.</div>
<div class="app-nav">
  <a href="/" style="background-color: #ff9800">生徒用ロードマップ</a>
  <a href="/admin" class="admin-link">管理・編集ツールへ</a>
</div>
<div class="roadmap-container">
  <div class="game-selector">{tabs}</div>
  <h1>{html.escape(game.game_name)} ロードマップ</h1>
  <div class="main-layout">
    <div class="roadmap-grid-container">
      <div class="roadmap-steps" data-columns="{layout.columns}" style="height: {height}px;">
        {cards_html}
        <svg class="roadmap-lines"><path d="{path}" stroke="#ff9800" stroke-width="6" fill="none" stroke-dasharray="10 5"/></svg>
      </div>
    </div>
    <div class="detail-panel">
      <h2>ステップ詳細</h2>
      {_detail_html(selected)}
    </div>
  </div>
</div>"""
    script = _SCRIPT_TEMPLATE % {"vw": vw, "breakpoint": MOBILE_BREAKPOINT_PX}
    return page(f"{game.game_name} ロードマップ", body, style=_STYLE, script=script)


@router.get("/", response_class=HTMLResponse)
def viewer_page(request: Request, game: str | None = None, step: str | None = None, vw: str | None = None):
    """?game=<gameId>&step=<id>&vw=<viewport width>；缺省选第一个 game 的第一步。"""
    games, ok = read_games(gateway_of(request))
    if not ok:
        return HTMLResponse(message_page("ロードマップ", LOAD_FAILED_MESSAGE), status_code=503)
    if not games:
        return HTMLResponse(message_page("ロードマップ", "ロードマップデータがありません。"))
    return HTMLResponse(render_board(games, game, norm_step_id(step), norm_viewport_width(vw)))
