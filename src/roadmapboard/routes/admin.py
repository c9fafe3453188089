# 管理・編集ツール页面：数据全部走 /api/editor/*；页面里不拼未转义字符串（DOM 用 textContent/value）。
# 隐藏入口不是权限边界。
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from roadmapboard.config import AUTOSCROLL_EDGE_PX, AUTOSCROLL_INTERVAL_MS, AUTOSCROLL_STEP_PX
from roadmapboard.routes._view_common import page

router = APIRouter()

_STYLE = """
* { box-sizing: border-box; }
body { margin: 0; font-family: system-ui, sans-serif; background: #f4f6f9; color: #333; }
.app-nav { display: flex; gap: 8px; padding: 8px 16px; background: #333; color: #fff; }
.app-nav a { color: #fff; text-decoration: none; padding: 4px 10px; border-radius: 6px; }
.admin-container { max-width: 960px; margin: 0 auto; padding: 16px; }
.admin-header .note { font-size: 13px; color: #666; }
.admin-game-card { background: #fff; border-radius: 12px; padding: 16px; margin-bottom: 24px; box-shadow: 0 2px 8px rgba(0,0,0,0.06); }
.game-header { display: flex; justify-content: space-between; gap: 10px; }
.game-actions { display: flex; gap: 10px; }
.input-title { flex: 1; font-size: 20px; padding: 6px; }
.form-group, .form-row { display: flex; gap: 8px; align-items: center; margin: 8px 0; }
.form-row label { width: 80px; flex: 0 0 auto; }
.form-row input, .form-row textarea { flex: 1; padding: 4px; }
.admin-step-card { border: 1px solid #ddd; border-radius: 8px; padding: 8px; margin: 8px 0; background: #fafafa; }
.admin-step-card.dragging { opacity: 0.4; }
.step-header { display: flex; justify-content: space-between; }
.drag-handle { cursor: grab; margin-right: 8px; }
.step-preview { max-height: 60px; }
.delete-btn, .print-btn { background: #dc3545; color: #fff; border: none; border-radius: 6px; padding: 6px 12px; cursor: pointer; text-decoration: none; font-size: 14px; }
.print-btn { background: #6f42c1; }
.delete-btn-sm { background: none; border: none; font-size: 18px; cursor: pointer; }
.add-step-btn, .add-game-btn { width: 100%; padding: 10px; border: 2px dashed #aaa; background: none; border-radius: 8px; cursor: pointer; }
#loading { padding: 50px; text-align: center; }
"""

_SCRIPT_TEMPLATE = """
(function () {
  var EDGE = %(edge)d, STEP = %(step)d, INTERVAL = %(interval)d;
  var API = '/api/editor';
  var games = [];
  var root = document.getElementById('games');
  var queue = Promise.resolve();
  var drag = null, pointerY = null, scrollTimer = null;

  function notifyFailure(status, data) {
    console.error('editor request failed', status, data);
    if (status === 502 || status === 0) {
      alert('保存に失敗しました... 😭');
    } else {
      alert('エラー: ' + ((data && data.detail) || status));
    }
  }

  // 请求按发出顺序串行；响应里带 games 就覆盖本地副本
  function call(method, url, body, isForm) {
    var opts = { method: method, headers: {}, credentials: 'same-origin' };
    if (body !== undefined) {
      if (isForm) {
        opts.body = body;
      } else {
        opts.headers['Content-Type'] = 'application/json';
        opts.body = JSON.stringify(body);
      }
    }
    var p = queue.then(function () {
      return fetch(API + url, opts).then(function (r) {
        return r.json().catch(function () { return {}; }).then(function (data) {
          if (data && Array.isArray(data.games)) { games = data.games; }
          if (!r.ok) { notifyFailure(r.status, data); }
          return data;
        });
      }, function (err) {
        console.error(err);
        notifyFailure(0, null);
        return null;
      });
    });
    queue = p;
    return p;
  }

  function mutate(method, url, body, isForm) {
    return call(method, url, body, isForm).then(render);
  }

  function el(tag, cls, text) {
    var e = document.createElement(tag);
    if (cls) { e.className = cls; }
    if (text !== undefined) { e.textContent = text; }
    return e;
  }

  function field(value, onChange, tag) {
    var e = document.createElement(tag || 'input');
    if (!tag) { e.type = 'text'; }
    e.value = value || '';
    e.addEventListener('change', function () { onChange(e.value); });
    return e;
  }

  function row(label, control) {
    var r = el('div', 'form-row');
    r.appendChild(el('label', '', label));
    r.appendChild(control);
    return r;
  }

  function renumber(list) {
    var cards = list.querySelectorAll('.admin-step-card');
    for (var i = 0; i < cards.length; i++) {
      cards[i].dataset.stepIndex = String(i);
      cards[i].querySelector('.step-number').textContent = 'Step ' + (i + 1);
    }
  }

  function autoScroll() {
    if (pointerY === null) { return; }
    if (pointerY < EDGE) {
      window.scrollBy(0, -STEP);
    } else if (pointerY > window.innerHeight - EDGE) {
      window.scrollBy(0, STEP);
    }
  }

  function onDragStart(e, card, gi) {
    var si = Number(card.dataset.stepIndex);
    drag = { gi: gi, node: card, list: card.parentNode };
    card.classList.add('dragging');
    e.dataTransfer.effectAllowed = 'move';
    e.dataTransfer.setData('text/plain', String(si));
    call('POST', '/drag/start', { game_index: gi, step_index: si });
    scrollTimer = window.setInterval(autoScroll, INTERVAL);
  }

  function onDragEnter(card, gi) {
    if (!drag || drag.gi !== gi || card === drag.node) { return; }
    var cards = Array.prototype.slice.call(drag.list.querySelectorAll('.admin-step-card'));
    var from = cards.indexOf(drag.node), to = cards.indexOf(card);
    if (from < 0 || to < 0 || from === to) { return; }
    // 与服务端一致：取出再插入到 to
    if (from < to) {
      drag.list.insertBefore(drag.node, card.nextSibling);
    } else {
      drag.list.insertBefore(drag.node, card);
    }
    renumber(drag.list);
    call('POST', '/drag/enter', { step_index: to });
  }

  function onDragEnd(card) {
    card.classList.remove('dragging');
    window.clearInterval(scrollTimer);
    scrollTimer = null;
    pointerY = null;
    drag = null;
    mutate('POST', '/drag/end');
  }

  document.addEventListener('dragover', function (e) {
    if (drag) { pointerY = e.clientY; }
  });

  function renderStep(step, gi, si) {
    var base = '/games/' + gi + '/steps/' + si;
    var card = el('div', 'admin-step-card');
    card.draggable = true;
    card.dataset.stepIndex = String(si);

    var header = el('div', 'step-header');
    var left = el('div', 'step-header-left');
    left.appendChild(el('span', 'drag-handle', '☰'));
    left.appendChild(el('span', 'step-number', 'Step ' + step.id));
    header.appendChild(left);
    var del = el('button', 'delete-btn-sm', '×');
    del.type = 'button';
    del.addEventListener('click', function () { mutate('DELETE', base); });
    header.appendChild(del);
    card.appendChild(header);

    function update(name) {
      return function (v) { mutate('PATCH', base, { field: name, value: v }); };
    }
    card.appendChild(row('タイトル:', field(step.title, update('title'))));
    card.appendChild(row('内容:', field(step.content, update('content'), 'textarea')));
    card.appendChild(row('タイプ:', field(step.type, update('type'))));
    card.appendChild(row('画像パス:', field(step.image, update('image'))));

    var imageRow = el('div', 'form-row');
    imageRow.appendChild(el('label', '', '画像:'));
    if (step.image) {
      var img = el('img', 'step-preview');
      img.src = step.image;
      img.alt = step.title || '';
      imageRow.appendChild(img);
      var clear = el('button', 'delete-btn', '画像を削除');
      clear.type = 'button';
      clear.addEventListener('click', function () { mutate('DELETE', base + '/image'); });
      imageRow.appendChild(clear);
    }
    var file = el('input');
    file.type = 'file';
    file.accept = 'image/*';
    file.addEventListener('change', function () {
      if (!file.files.length) { return; }
      var fd = new FormData();
      fd.append('file', file.files[0]);
      mutate('POST', base + '/image', fd, true);
    });
    imageRow.appendChild(file);
    card.appendChild(imageRow);

    card.addEventListener('dragstart', function (e) { onDragStart(e, card, gi); });
    card.addEventListener('dragenter', function () { onDragEnter(card, gi); });
    card.addEventListener('dragover', function (e) { e.preventDefault(); });
    card.addEventListener('dragend', function () { onDragEnd(card); });
    return card;
  }

  function renderGame(game, gi) {
    var base = '/games/' + gi;
    var card = el('div', 'admin-game-card');

    var header = el('div', 'game-header');
    var title = field(game.gameName, function (v) { mutate('PATCH', base, { field: 'gameName', value: v }); });
    title.className = 'input-title';
    title.placeholder = 'ゲーム名';
    header.appendChild(title);
    var actions = el('div', 'game-actions');
    var printLink = el('a', 'print-btn', '🖨️ 台紙を印刷');
    printLink.href = '/print?gameId=' + encodeURIComponent(game.gameId);
    printLink.target = '_blank';
    printLink.rel = 'noopener noreferrer';
    actions.appendChild(printLink);
    var del = el('button', 'delete-btn', '削除');
    del.type = 'button';
    del.addEventListener('click', function () {
      if (window.confirm('本当にこのゲームを削除しますか？')) { mutate('DELETE', base); }
    });
    actions.appendChild(del);
    header.appendChild(actions);
    card.appendChild(header);

    card.appendChild(row('ID:', field(game.gameId, function (v) { mutate('PATCH', base, { field: 'gameId', value: v }); })));
    card.appendChild(row('説明:', field(game.description, function (v) { mutate('PATCH', base, { field: 'description', value: v }); })));

    card.appendChild(el('h3', '', 'ステップ一覧 (≡ をドラッグして並び替え)'));
    var list = el('div', 'steps-list');
    (game.steps || []).forEach(function (step, si) { list.appendChild(renderStep(step, gi, si)); });
    var add = el('button', 'add-step-btn', '＋ ステップを追加');
    add.type = 'button';
    add.addEventListener('click', function () { mutate('POST', base + '/steps'); });
    list.appendChild(add);
    card.appendChild(list);
    return card;
  }

  function render() {
    if (drag) { return; }
    root.textContent = '';
    games.forEach(function (game, gi) { root.appendChild(renderGame(game, gi)); });
  }

  document.getElementById('addGame').addEventListener('click', function () { mutate('POST', '/games'); });
  call('GET', '/document').then(function () {
    document.getElementById('loading').style.display = 'none';
    render();
  });
})();
"""

_BODY = """
<div class="app-nav">
  <a href="/">生徒用ページへ（確認）</a>
  <span>|</span>
  <a href="/admin" style="background-color: #007bff">管理・編集ツール</a>
</div>
<div class="admin-container">
  <div class="admin-header">
    <h1>🛠️ ロードマップ作成ツール (クラウド版)</h1>
    <p class="note">※ 編集内容は自動保存されます。<br>ここでの変更は、リロードすると生徒用ページにも反映されます。</p>
  </div>
  <div id="loading">データを読み込んでいます...</div>
  <div id="games"></div>
  <button type="button" class="add-game-btn" id="addGame">＋ 新しいゲームを追加</button>
</div>
"""


@router.get("/admin", response_class=HTMLResponse)
def admin_page(request: Request) -> str:
    """页面外壳；数据在页面加载后由 GET /api/editor/document 读取（挂载即重新读取）。"""
    script = _SCRIPT_TEMPLATE % {
        "edge": AUTOSCROLL_EDGE_PX,
        "step": AUTOSCROLL_STEP_PX,
        "interval": AUTOSCROLL_INTERVAL_MS,
    }
    return page("ロードマップ作成ツール", _BODY, style=_STYLE, script=script)
