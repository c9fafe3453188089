#!/usr/bin/env python3
"""布局引擎：蛇形排列、连线段数、响应式列数、盘面高度。"""
from __future__ import annotations

from roadmapboard.layout import (
    PRINT_LAYOUT,
    Point,
    columns_for_viewport,
    compute_connector_path,
    compute_position,
    viewer_layout,
)

SPACING = Point(300, 180)
PADDING = Point(50, 50)


def _row_col(index: int, columns: int) -> tuple[int, int]:
    pos = compute_position(index, columns, SPACING, PADDING)
    return (pos.y - PADDING.y) // SPACING.y, (pos.x - PADDING.x) // SPACING.x


def test_three_columns_second_row_runs_right_to_left():
    xs = [compute_position(i, 3, SPACING, PADDING).x for i in range(6)]
    ys = [compute_position(i, 3, SPACING, PADDING).y for i in range(6)]
    assert xs[:3] == [50, 350, 650]
    assert ys[:3] == [50, 50, 50]
    assert ys[3:] == [230, 230, 230]
    assert xs[3] == max(xs[3:]) and xs[5] == min(xs[3:])
    assert xs[3:] == [650, 350, 50]


def test_five_steps_two_columns_serpentine():
    assert [_row_col(i, 2) for i in range(5)] == [(0, 0), (0, 1), (1, 1), (1, 0), (2, 0)]


def test_compute_position_is_deterministic():
    a = compute_position(7, 4, Point(240, 200), Point(100, 100))
    b = compute_position(7, 4, Point(240, 200), Point(100, 100))
    assert a == b == Point(100, 300)


def test_connector_path_empty_for_zero_or_one_step():
    layout = viewer_layout(1024)
    assert compute_connector_path([], layout.position, layout.center_offset) == ""
    assert compute_connector_path(["only"], layout.position, layout.center_offset) == ""
    assert layout.connector_path([]) == ""


def test_connector_path_has_n_minus_one_segments_in_step_order():
    layout = viewer_layout(1024)
    for n in (2, 3, 4, 7):
        path = layout.connector_path(list(range(n)))
        assert path.count("M") == n - 1
        assert path.count("L") == n - 1
    # 3 列：0→1→2 同一行，2→3 向下折返
    path = layout.connector_path(["a", "b", "c", "d"])
    assert path == "M120 110 L420 110 M420 110 L720 110 M720 110 L720 290"


def test_viewer_columns_follow_viewport_width():
    assert columns_for_viewport(375) == 2
    assert columns_for_viewport(768) == 2
    assert columns_for_viewport(769) == 3
    assert columns_for_viewport(1920) == 3
    mobile = viewer_layout(400)
    assert mobile.columns == 2 and mobile.spacing.x == 160
    desktop = viewer_layout(1280)
    assert desktop.columns == 3 and desktop.spacing.x == 300


def test_board_heights():
    layout = viewer_layout(1024)
    assert layout.board_height(0) == 600
    assert layout.board_height(3) == 600
    # 4 行：50 + 4*180 + 50
    assert layout.board_height(12) == 820
    assert PRINT_LAYOUT.board_height(5) == 100 * 2 + 2 * 200
    assert PRINT_LAYOUT.board_height(0) == 200


def test_print_layout_is_fixed_four_columns():
    positions = PRINT_LAYOUT.positions(8)
    assert [p.x for p in positions] == [100, 340, 580, 820, 820, 580, 340, 100]
    assert {p.y for p in positions[4:]} == {300}


def main() -> None:
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
            print(f"PASS: {name}")


if __name__ == "__main__":
    main()
