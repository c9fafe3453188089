"""
路线图文档模型：games（有序）→ steps（有序）。
所有变更函数都是纯函数：输入 list[Game] 不被修改，返回新 list；
结构变化（删除/移动）之后 step.id 一律重排为 1-based 位置。
"""
from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_GAME_NAME = "新しいゲーム"
DEFAULT_GAME_DESCRIPTION = "ここにゲームの説明が入ります"
DEFAULT_STEP_TITLE = "新しいステップ"
DEFAULT_STEP_CONTENT = "説明を入力してください"
DEFAULT_STEP_TYPE = "setup"
NEW_GAME_ID_PREFIX = "new_game_"


class IndexOutOfRange(IndexError):
    """game_index / step_index 越界（调用方契约错误）；name 为越界的参数名。"""

    def __init__(self, name: str, index: Any, length: int) -> None:
        super().__init__(f"{name} out of range: {index!r} (len={length})")
        self.name = name


class UnknownField(ValueError):
    """update_*_field 收到不存在或不可直接改写的字段名。"""


class Step(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    title: str = ""
    content: str = ""
    type: str = DEFAULT_STEP_TYPE
    image: str = ""

    @field_validator("title", "content", "image", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        # 旧数据里 image 可能是 null
        return "" if v is None else v

    @field_validator("type", mode="before")
    @classmethod
    def _none_as_default_type(cls, v: Any) -> Any:
        return DEFAULT_STEP_TYPE if v is None else v


class Game(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    game_id: str = Field(alias="gameId")
    game_name: str = Field(default="", alias="gameName")
    description: str = ""
    steps: list[Step] = Field(default_factory=list)

    @field_validator("game_name", "description", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("steps", mode="before")
    @classmethod
    def _none_as_no_steps(cls, v: Any) -> Any:
        return [] if v is None else v


# 线上字段名 / python 属性名 → python 属性名。steps 与 id 只能走结构化函数。
_GAME_FIELDS = {
    "gameId": "game_id",
    "game_id": "game_id",
    "gameName": "game_name",
    "game_name": "game_name",
    "description": "description",
}
_STEP_FIELDS = {"title": "title", "content": "content", "type": "type", "image": "image"}


def parse_document(raw: Any) -> list[Game]:
    """线上 JSON（games 列表）→ list[Game]。非 list 抛 TypeError，字段错误抛 pydantic ValidationError。"""
    if not isinstance(raw, list):
        raise TypeError(f"document must be a list, got {type(raw).__name__}")
    return [Game.model_validate(item) for item in raw]


def dump_document(games: list[Game]) -> list[dict[str, Any]]:
    """list[Game] → 线上 JSON（gameId/gameName 等 camelCase 字段名）。"""
    return [g.model_dump(by_alias=True) for g in games]


def find_game(games: list[Game], game_id: str | None) -> Game | None:
    if game_id is None:
        return None
    for game in games:
        if game.game_id == game_id:
            return game
    return None


def renumber_steps(steps: list[Step]) -> list[Step]:
    """step.id := 位置 + 1；已经正确的 step 原样复用。"""
    return [s if s.id == i + 1 else s.model_copy(update={"id": i + 1}) for i, s in enumerate(steps)]


def check_index(seq: list[Any], index: Any, name: str) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(seq):
        raise IndexOutOfRange(name, index, len(seq))
    return index


def _replace_game(games: list[Game], game_index: int, game: Game) -> list[Game]:
    out = list(games)
    out[game_index] = game
    return out


def _new_game_id(games: list[Game], now_ms: int | None) -> str:
    ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    taken = {g.game_id for g in games}
    candidate = f"{NEW_GAME_ID_PREFIX}{ms}"
    while candidate in taken:
        ms += 1
        candidate = f"{NEW_GAME_ID_PREFIX}{ms}"
    return candidate


def add_game(games: list[Game], now_ms: int | None = None) -> list[Game]:
    game = Game(
        game_id=_new_game_id(games, now_ms),
        game_name=DEFAULT_GAME_NAME,
        description=DEFAULT_GAME_DESCRIPTION,
        steps=[],
    )
    return [*games, game]


def update_game_field(games: list[Game], game_index: int, field: str, value: Any) -> list[Game]:
    gi = check_index(games, game_index, "game_index")
    attr = _GAME_FIELDS.get(field)
    if attr is None:
        raise UnknownField(f"unknown game field: {field!r}")
    return _replace_game(games, gi, games[gi].model_copy(update={attr: value}))


def delete_game(games: list[Game], game_index: int) -> list[Game]:
    """删除确认属于界面层，这里不做。"""
    gi = check_index(games, game_index, "game_index")
    return [g for i, g in enumerate(games) if i != gi]


def add_step(games: list[Game], game_index: int) -> list[Game]:
    gi = check_index(games, game_index, "game_index")
    game = games[gi]
    step = Step(
        id=len(game.steps) + 1,
        title=DEFAULT_STEP_TITLE,
        content=DEFAULT_STEP_CONTENT,
        type=DEFAULT_STEP_TYPE,
        image="",
    )
    return _replace_game(games, gi, game.model_copy(update={"steps": [*game.steps, step]}))


def update_step_field(games: list[Game], game_index: int, step_index: int, field: str, value: Any) -> list[Game]:
    gi = check_index(games, game_index, "game_index")
    game = games[gi]
    si = check_index(game.steps, step_index, "step_index")
    attr = _STEP_FIELDS.get(field)
    if attr is None:
        raise UnknownField(f"unknown step field: {field!r}")
    steps = list(game.steps)
    steps[si] = steps[si].model_copy(update={attr: value})
    return _replace_game(games, gi, game.model_copy(update={"steps": steps}))


def delete_step(games: list[Game], game_index: int, step_index: int) -> list[Game]:
    gi = check_index(games, game_index, "game_index")
    game = games[gi]
    si = check_index(game.steps, step_index, "step_index")
    steps = renumber_steps([s for i, s in enumerate(game.steps) if i != si])
    return _replace_game(games, gi, game.model_copy(update={"steps": steps}))


def reorder_step(games: list[Game], game_index: int, from_index: int, to_index: int) -> list[Game]:
    """
    把 from_index 的 step 取出再插到 to_index（单元素移动，不是交换），然后重排 id。
    from == to 或任一越界时原样返回输入（静默拒绝，列表不受影响）。
    """
    gi = check_index(games, game_index, "game_index")
    game = games[gi]
    n = len(game.steps)
    for idx in (from_index, to_index):
        if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < n:
            return games
    if from_index == to_index:
        return games
    steps = list(game.steps)
    moved = steps.pop(from_index)
    steps.insert(to_index, moved)
    return _replace_game(games, gi, game.model_copy(update={"steps": renumber_steps(steps)}))
