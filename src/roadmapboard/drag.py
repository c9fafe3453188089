"""
拖拽排序状态机：idle ⇄ dragging(game_index, source_index)。
enter 时在本地副本上即时移动并重排 id（不写远端），end 时回到 idle，由调用方做一次整体保存。
拖拽期间指针靠近视口上/下边缘时，AutoScroller 以可取消的 asyncio 重复任务滚动视口。
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from roadmapboard.config import AUTOSCROLL_EDGE_PX, AUTOSCROLL_INTERVAL_MS, AUTOSCROLL_STEP_PX
from roadmapboard.document import Game, reorder_step

logger = logging.getLogger(__name__)


def scroll_velocity(pointer_y: float, viewport_height: float, edge_px: int, step_px: int) -> int:
    """指针在上边缘带内 → 向上（负），下边缘带内 → 向下（正），否则 0。"""
    if pointer_y < edge_px:
        return -step_px
    if pointer_y > viewport_height - edge_px:
        return step_px
    return 0


class AutoScroller:
    def __init__(
        self,
        scroll_by: Callable[[int], Any],
        edge_px: int = AUTOSCROLL_EDGE_PX,
        step_px: int = AUTOSCROLL_STEP_PX,
        interval_ms: int = AUTOSCROLL_INTERVAL_MS,
    ) -> None:
        self._scroll_by = scroll_by
        self.edge_px = edge_px
        self.step_px = step_px
        self.interval = interval_ms / 1000.0
        self.velocity = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def update_pointer(self, pointer_y: float, viewport_height: float) -> int:
        """需在事件循环内调用；进入边缘带时启动重复任务，离开时取消。"""
        self.velocity = scroll_velocity(pointer_y, viewport_height, self.edge_px, self.step_px)
        if self.velocity == 0:
            self.cancel()
        elif not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self.velocity

    async def _run(self) -> None:
        while self.velocity != 0:
            self._scroll_by(self.velocity)
            await asyncio.sleep(self.interval)

    def cancel(self) -> None:
        task = self._task
        self._task = None
        self.velocity = 0
        if task is not None and not task.done():
            task.cancel()


@dataclass(frozen=True)
class Dragging:
    game_index: int
    source_index: int


class DragController:
    def __init__(self, scroller: AutoScroller | None = None) -> None:
        self.scroller = scroller
        self.state: Dragging | None = None

    @property
    def is_dragging(self) -> bool:
        return self.state is not None

    def start(self, game_index: int, source_index: int) -> Dragging:
        if self.scroller is not None:
            self.scroller.cancel()
        self.state = Dragging(game_index, source_index)
        return self.state

    def enter(self, games: list[Game], target_index: int) -> list[Game]:
        """把拖拽中的 step 移到 target_index；idle 或同一位置时原样返回。"""
        state = self.state
        if state is None or target_index == state.source_index:
            return games
        moved = reorder_step(games, state.game_index, state.source_index, target_index)
        if moved is not games:
            self.state = Dragging(state.game_index, target_index)
        return moved

    def pointer(self, pointer_y: float, viewport_height: float) -> int:
        if self.state is None or self.scroller is None:
            return 0
        return self.scroller.update_pointer(pointer_y, viewport_height)

    def end(self) -> Dragging | None:
        """回到 idle 并取消自动滚动；返回结束前的状态（idle 时为 None）。"""
        if self.scroller is not None:
            self.scroller.cancel()
        state = self.state
        self.state = None
        if state is not None:
            logger.debug("drag ended game_index=%s final_index=%s", state.game_index, state.source_index)
        return state
