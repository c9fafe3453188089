"""访客页/印刷页共用：读取文档（只读）+ HTML 外壳。所有动态内容必须 html.escape。"""
from __future__ import annotations

import html
import logging

from fastapi import Request

from roadmapboard.document import Game
from roadmapboard.store import NotFound, RoadmapGateway, StoreError

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "ロードマップを読み込めませんでした。時間をおいて再読み込みしてください。"


def gateway_of(request: Request) -> RoadmapGateway:
    return request.app.state.gateway


def read_games(gateway: RoadmapGateway) -> tuple[list[Game], bool]:
    """返回 (games, ok)；记录不存在视为空文档，StoreError 记日志后返回 ([], False)。"""
    try:
        return gateway.fetch_document(), True
    except NotFound:
        return [], True
    except StoreError:
        logger.exception("roadmap load failed")
        return [], False


def page(title: str, body: str, style: str = "", script: str = "") -> str:
    script_tag = f"<script>{script}</script>" if script else ""
    return f"""<!DOCTYPE html>
<html lang="ja">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>{html.escape(title)}</title>
<style>{style}</style>
</head>
<body>
{body}
{script_tag}
</body></html>"""


def message_page(title: str, message: str, css_class: str = "roadmap-message") -> str:
    return page(title, f'<div class="{css_class}"><p>{html.escape(message)}</p></div>')
