"""
印刷台纸 PNG 渲染：按 PRINT_LAYOUT 在内存里画卡片、Step 编号和虚线连接线。
不写文件，只返回 bytes。
"""
from __future__ import annotations

import io
import math

from PIL import Image, ImageDraw

from roadmapboard.document import Game
from roadmapboard.layout import BoardLayout, PRINT_LAYOUT, Point

CARD_SIZE = 160
DASH_ON = 15
DASH_OFF = 10
LINE_WIDTH = 4

_BACKGROUND = (255, 255, 255)
_INK = (51, 51, 51)
_CARD_FILL = (255, 255, 255)
_STAMP_OUTLINE = (170, 170, 170)


def _dashed_line(draw: ImageDraw.ImageDraw, start: Point, end: Point) -> None:
    dx = end.x - start.x
    dy = end.y - start.y
    length = math.hypot(dx, dy)
    if length == 0:
        return
    ux, uy = dx / length, dy / length
    pos = 0.0
    while pos < length:
        seg_end = min(pos + DASH_ON, length)
        draw.line(
            [(start.x + ux * pos, start.y + uy * pos), (start.x + ux * seg_end, start.y + uy * seg_end)],
            fill=_INK,
            width=LINE_WIDTH,
        )
        pos = seg_end + DASH_OFF


def sheet_size(layout: BoardLayout, step_count: int) -> tuple[int, int]:
    cols_used = min(layout.columns, step_count) if step_count > 0 else 1
    width = layout.padding.x * 2 + (cols_used - 1) * layout.spacing.x + CARD_SIZE
    return width, max(layout.board_height(step_count), layout.padding.y * 2)


def render_print_sheet_png(game: Game, layout: BoardLayout = PRINT_LAYOUT) -> bytes:
    """0 步的 game 也能渲染（只有标题）。"""
    steps = game.steps
    w, h = sheet_size(layout, len(steps))
    img = Image.new("RGB", (w, h), color=_BACKGROUND)
    draw = ImageDraw.Draw(img)

    draw.text((layout.padding.x, layout.padding.y // 3), game.game_name, fill=_INK)

    # 先画线，卡片盖在线上
    points = [layout.position(i) for i in range(len(steps))]
    off = layout.center_offset
    for cur, nxt in zip(points, points[1:]):
        _dashed_line(draw, Point(cur.x + off.x, cur.y + off.y), Point(nxt.x + off.x, nxt.y + off.y))

    for step, pos in zip(steps, points):
        draw.rectangle([pos.x, pos.y, pos.x + CARD_SIZE, pos.y + CARD_SIZE], fill=_CARD_FILL, outline=_INK, width=2)
        inset = 20
        draw.ellipse(
            [pos.x + inset, pos.y + inset, pos.x + CARD_SIZE - inset, pos.y + CARD_SIZE - inset - 30],
            outline=_STAMP_OUTLINE,
            width=2,
        )
        draw.text((pos.x + 50, pos.y + 55), f"Step {step.id}", fill=_STAMP_OUTLINE)
        draw.text((pos.x + 10, pos.y + CARD_SIZE - 28), step.title[:20], fill=_INK)

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def verify_image(data: bytes) -> str:
    """校验上传内容确实是图片，返回 Pillow 识别出的格式（小写，如 "png"）；否则抛 ValueError。"""
    try:
        with Image.open(io.BytesIO(data)) as probe:
            fmt = (probe.format or "").lower()
            probe.verify()
    except Exception as e:
        raise ValueError(f"not an image: {e}") from e
    if not fmt:
        raise ValueError("unknown image format")
    return fmt
