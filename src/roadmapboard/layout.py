"""
すごろく盘面布局：step 序号 → 坐标（蛇形/boustrophedon：偶数行左→右，奇数行右→左），
以及按逻辑顺序连接相邻 step 的 SVG path。纯函数，不读配置。
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Sequence


@dataclass(frozen=True)
class Point:
    x: int
    y: int


def compute_position(index: int, columns_per_row: int, spacing: Point, padding: Point) -> Point:
    """index 必须是 0..n-1 的整数，由调用方保证。"""
    row = index // columns_per_row
    col = index % columns_per_row
    if row % 2 != 0:
        col = (columns_per_row - 1) - col
    return Point(padding.x + col * spacing.x, padding.y + row * spacing.y)


def compute_connector_path(
    steps: Sequence[object],
    position_fn: Callable[[int], Point],
    center_offset: Point,
) -> str:
    """相邻两步一段 "M x y L x y"，按 steps 顺序拼接；少于 2 步返回空串。"""
    if len(steps) < 2:
        return ""
    segments: list[str] = []
    for i in range(len(steps) - 1):
        cur = position_fn(i)
        nxt = position_fn(i + 1)
        segments.append(
            f"M{cur.x + center_offset.x} {cur.y + center_offset.y} "
            f"L{nxt.x + center_offset.x} {nxt.y + center_offset.y}"
        )
    return " ".join(segments)


# --- 访客盘面（响应式）---
MOBILE_BREAKPOINT_PX = 768
MOBILE_COLUMNS = 2
BOARD_WIDTH = 1000
X_SPACING = 300
MOBILE_X_SPACING = 160
Y_SPACING = 180
PADDING_X = 50
PADDING_Y = 50
CARD_CENTER_OFFSET_X = 70
CARD_CENTER_OFFSET_Y = 60
MIN_BOARD_HEIGHT = 600
BOARD_BOTTOM_MARGIN = 50

# --- 印刷台纸（固定 4 列）---
PRINT_COLUMNS = 4
PRINT_X_SPACING = 240
PRINT_Y_SPACING = 200
PRINT_PADDING_X = 100
PRINT_PADDING_Y = 100
PRINT_CARD_OFFSET_X = 80
PRINT_CARD_OFFSET_Y = 80


@dataclass(frozen=True)
class BoardLayout:
    columns: int
    spacing: Point
    padding: Point
    center_offset: Point
    min_height: int = 0
    bottom_margin: int = 0
    # 印刷版上下都留 padding，访客盘面只在底部加 bottom_margin
    symmetric_padding: bool = False

    def position(self, index: int) -> Point:
        return compute_position(index, self.columns, self.spacing, self.padding)

    def positions(self, count: int) -> list[Point]:
        return [self.position(i) for i in range(count)]

    def connector_path(self, steps: Sequence[object]) -> str:
        return compute_connector_path(steps, self.position, self.center_offset)

    def rows(self, count: int) -> int:
        return math.ceil(count / self.columns) if count > 0 else 0

    def board_height(self, count: int) -> int:
        rows = self.rows(count)
        if self.symmetric_padding:
            height = self.padding.y * 2 + rows * self.spacing.y
        else:
            height = self.padding.y + rows * self.spacing.y + self.bottom_margin
        return max(self.min_height, height)


def is_mobile(viewport_width: int) -> bool:
    return viewport_width <= MOBILE_BREAKPOINT_PX


def columns_for_viewport(viewport_width: int) -> int:
    if is_mobile(viewport_width):
        return MOBILE_COLUMNS
    available = BOARD_WIDTH - 2 * PADDING_X
    return max(1, available // X_SPACING)


def viewer_layout(viewport_width: int) -> BoardLayout:
    spacing_x = MOBILE_X_SPACING if is_mobile(viewport_width) else X_SPACING
    return BoardLayout(
        columns=columns_for_viewport(viewport_width),
        spacing=Point(spacing_x, Y_SPACING),
        padding=Point(PADDING_X, PADDING_Y),
        center_offset=Point(CARD_CENTER_OFFSET_X, CARD_CENTER_OFFSET_Y),
        min_height=MIN_BOARD_HEIGHT,
        bottom_margin=BOARD_BOTTOM_MARGIN,
    )


PRINT_LAYOUT = BoardLayout(
    columns=PRINT_COLUMNS,
    spacing=Point(PRINT_X_SPACING, PRINT_Y_SPACING),
    padding=Point(PRINT_PADDING_X, PRINT_PADDING_Y),
    center_offset=Point(PRINT_CARD_OFFSET_X, PRINT_CARD_OFFSET_Y),
    symmetric_padding=True,
)
