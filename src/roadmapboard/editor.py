"""
管理端编辑会话：持有一份本地 games 副本（挂载时从网关读取），每次变更先落到本地（乐观更新），
再整体 replace 到远端。远端失败时本地不回滚，StoreError 原样抛给路由层提示用户。
"""
from __future__ import annotations

import logging
from threading import RLock

from roadmapboard import document as doc
from roadmapboard.document import Game
from roadmapboard.drag import DragController
from roadmapboard.store import NotFound, RoadmapGateway, StoreError

logger = logging.getLogger(__name__)


class EditorSession:
    def __init__(
        self,
        gateway: RoadmapGateway,
        prune_replaced_images: bool = False,
        drag: DragController | None = None,
    ) -> None:
        self.gateway = gateway
        self.prune_replaced_images = prune_replaced_images
        self.drag = drag if drag is not None else DragController()
        self.games: list[Game] = []
        self.loaded = False
        self.lock = RLock()

    def load(self) -> list[Game]:
        """挂载时读取；记录不存在视为空文档。StoreError 时保留旧副本并上抛。"""
        with self.lock:
            try:
                games = self.gateway.fetch_document()
            except NotFound:
                logger.info("roadmap record not found, starting from empty document")
                games = []
            self.drag.end()
            self.games = games
            self.loaded = True
            return self.games

    def ensure_loaded(self) -> list[Game]:
        with self.lock:
            if not self.loaded:
                return self.load()
            return self.games

    def _commit(self, games: list[Game]) -> list[Game]:
        self.games = games
        try:
            self.gateway.replace_document(games)
        except StoreError:
            logger.exception("save failed; local copy keeps unsaved changes")
            raise
        return self.games

    # --- games ---
    def add_game(self) -> list[Game]:
        with self.lock:
            return self._commit(doc.add_game(self.ensure_loaded()))

    def update_game(self, game_index: int, field: str, value: str) -> list[Game]:
        with self.lock:
            return self._commit(doc.update_game_field(self.ensure_loaded(), game_index, field, value))

    def delete_game(self, game_index: int) -> list[Game]:
        with self.lock:
            return self._commit(doc.delete_game(self.ensure_loaded(), game_index))

    # --- steps ---
    def add_step(self, game_index: int) -> list[Game]:
        with self.lock:
            return self._commit(doc.add_step(self.ensure_loaded(), game_index))

    def update_step(self, game_index: int, step_index: int, field: str, value: str) -> list[Game]:
        with self.lock:
            return self._commit(doc.update_step_field(self.ensure_loaded(), game_index, step_index, field, value))

    def delete_step(self, game_index: int, step_index: int) -> list[Game]:
        with self.lock:
            return self._commit(doc.delete_step(self.ensure_loaded(), game_index, step_index))

    def reorder_step(self, game_index: int, from_index: int, to_index: int) -> list[Game]:
        with self.lock:
            games = self.ensure_loaded()
            moved = doc.reorder_step(games, game_index, from_index, to_index)
            if moved is games:
                return games
            return self._commit(moved)

    # --- 拖拽 ---
    def drag_start(self, game_index: int, step_index: int) -> None:
        with self.lock:
            self._step(self.ensure_loaded(), game_index, step_index)
            self.drag.start(game_index, step_index)

    def drag_enter(self, step_index: int) -> list[Game]:
        """只更新本地副本，不写远端。"""
        with self.lock:
            self.games = self.drag.enter(self.ensure_loaded(), step_index)
            return self.games

    def drag_end(self) -> list[Game]:
        with self.lock:
            if self.drag.end() is None:
                return self.games
            return self._commit(self.games)

    # --- 图片 ---
    def set_step_image(self, game_index: int, step_index: int, data: bytes, extension: str) -> list[Game]:
        with self.lock:
            games = self.ensure_loaded()
            old = self._step(games, game_index, step_index).image
            url = self.gateway.upload_image(data, extension)
            games = self._commit(doc.update_step_field(games, game_index, step_index, "image", url))
            self._prune(old)
            return games

    def clear_step_image(self, game_index: int, step_index: int) -> list[Game]:
        with self.lock:
            games = self.ensure_loaded()
            step = self._step(games, game_index, step_index)
            cleared = self.gateway.delete_image_reference(step)
            games = self._commit(doc.update_step_field(games, game_index, step_index, "image", cleared.image))
            self._prune(step.image)
            return games

    @staticmethod
    def _step(games: list[Game], game_index: int, step_index: int) -> doc.Step:
        gi = doc.check_index(games, game_index, "game_index")
        steps = games[gi].steps
        return steps[doc.check_index(steps, step_index, "step_index")]

    def _prune(self, old_url: str) -> None:
        """开启 PRUNE_REPLACED_IMAGES 时删除不再被任何 step 引用的旧 blob；失败只记日志。"""
        if not self.prune_replaced_images or not old_url or not self.gateway.owns_image(old_url):
            return
        for game in self.games:
            if any(s.image == old_url for s in game.steps):
                return
        try:
            self.gateway.delete_image(old_url)
        except StoreError:
            logger.warning("orphan image not deleted url=%s", old_url, exc_info=True)
