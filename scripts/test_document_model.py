#!/usr/bin/env python3
"""文档模型：纯函数变更 + step.id 重排（delete / reorder 之后 1..n 连续）。"""
from __future__ import annotations

import pytest

from roadmapboard.document import (
    Game,
    IndexOutOfRange,
    Step,
    UnknownField,
    add_game,
    add_step,
    delete_game,
    delete_step,
    dump_document,
    find_game,
    parse_document,
    reorder_step,
    update_game_field,
    update_step_field,
)


def _game(game_id: str, titles: list[str]) -> Game:
    steps = [Step(id=i + 1, title=t, content=f"c-{t}") for i, t in enumerate(titles)]
    return Game(game_id=game_id, game_name=game_id.upper(), description="", steps=steps)


def _ids(game: Game) -> list[int]:
    return [s.id for s in game.steps]


def _titles(game: Game) -> list[str]:
    return [s.title for s in game.steps]


def test_scenario_add_game_add_two_steps_then_delete_first():
    games = add_game([], now_ms=1700000000000)
    games = add_step(games, 0)
    games = update_step_field(games, 0, 0, "title", "first")
    games = add_step(games, 0)
    games = update_step_field(games, 0, 1, "title", "second")
    assert len(games) == 1
    assert games[0].game_id == "new_game_1700000000000"
    assert _ids(games[0]) == [1, 2]

    games = delete_step(games, 0, 0)
    assert _ids(games[0]) == [1]
    assert _titles(games[0]) == ["second"]


def test_new_game_and_step_defaults():
    games = add_step(add_game([], now_ms=5), 0)
    game = games[0]
    assert game.game_name == "新しいゲーム"
    assert game.description == "ここにゲームの説明が入ります"
    step = game.steps[0]
    assert (step.id, step.title, step.content, step.type, step.image) == (1, "新しいステップ", "説明を入力してください", "setup", "")


def test_add_game_ids_do_not_collide_within_same_millisecond():
    games = add_game(add_game([], now_ms=42), now_ms=42)
    assert [g.game_id for g in games] == ["new_game_42", "new_game_43"]


def test_delete_step_keeps_ids_dense_for_every_game():
    games = [_game("a", ["a1", "a2", "a3", "a4"]), _game("b", ["b1", "b2"])]
    for si in range(4):
        out = delete_step(games, 0, si)
        assert _ids(out[0]) == [1, 2, 3]
        assert _ids(out[1]) == [1, 2]
        assert len(out[0].steps) == 3


def test_mutations_do_not_touch_input():
    games = [_game("a", ["x", "y", "z"])]
    before = dump_document(games)
    delete_step(games, 0, 1)
    reorder_step(games, 0, 0, 2)
    update_step_field(games, 0, 0, "title", "changed")
    update_game_field(games, 0, "gameName", "changed")
    add_step(games, 0)
    delete_game(games, 0)
    assert dump_document(games) == before


def test_reorder_moves_single_element_and_renumbers():
    games = [_game("a", ["s1", "s2", "s3", "s4", "s5"])]
    out = reorder_step(games, 0, 0, 3)
    assert _titles(out[0]) == ["s2", "s3", "s4", "s1", "s5"]
    assert _ids(out[0]) == [1, 2, 3, 4, 5]
    out = reorder_step(games, 0, 4, 1)
    assert _titles(out[0]) == ["s1", "s5", "s2", "s3", "s4"]


def test_reorder_preserves_contents_and_is_undone_by_reverse_move():
    games = [_game("a", ["s1", "s2", "s3", "s4", "s5"])]
    original = _titles(games[0])
    for i in range(5):
        for j in range(5):
            if i == j:
                continue
            moved = reorder_step(games, 0, i, j)
            assert sorted(s.content for s in moved[0].steps) == sorted(s.content for s in games[0].steps)
            back = reorder_step(moved, 0, j, i)
            assert _titles(back[0]) == original
            assert _ids(back[0]) == [1, 2, 3, 4, 5]


def test_reorder_noop_for_same_or_out_of_range_index():
    games = [_game("a", ["s1", "s2", "s3"])]
    assert reorder_step(games, 0, 1, 1) is games
    assert reorder_step(games, 0, -1, 1) is games
    assert reorder_step(games, 0, 0, 3) is games
    assert reorder_step(games, 0, 5, 0) is games
    with pytest.raises(IndexOutOfRange):
        reorder_step(games, 1, 0, 1)


def test_index_out_of_range_names_the_bad_index():
    games = [_game("a", ["s1"])]
    with pytest.raises(IndexOutOfRange) as exc:
        delete_step(games, 0, 1)
    assert exc.value.name == "step_index"
    with pytest.raises(IndexOutOfRange) as exc:
        add_step(games, 2)
    assert exc.value.name == "game_index"
    with pytest.raises(IndexOutOfRange):
        delete_game([], 0)
    with pytest.raises(IndexError):
        update_game_field(games, -1, "gameName", "x")


def test_update_fields_by_wire_name_and_unknown_field():
    games = [_game("a", ["s1"])]
    out = update_game_field(games, 0, "gameId", "renamed")
    out = update_game_field(out, 0, "description", "desc")
    out = update_step_field(out, 0, 0, "type", "build")
    out = update_step_field(out, 0, 0, "image", "https://img/x.png")
    assert out[0].game_id == "renamed"
    assert out[0].description == "desc"
    assert out[0].steps[0].type == "build"
    assert out[0].steps[0].image == "https://img/x.png"
    with pytest.raises(UnknownField):
        update_game_field(games, 0, "steps", [])
    with pytest.raises(UnknownField):
        update_step_field(games, 0, 0, "id", 9)


def test_delete_game_removes_only_that_game():
    games = [_game("a", []), _game("b", []), _game("c", [])]
    out = delete_game(games, 1)
    assert [g.game_id for g in out] == ["a", "c"]


def test_null_step_type_decodes_as_default_type():
    raw = [{"gameId": "g", "gameName": None, "steps": [{"id": 1, "title": None, "type": None, "image": None}]}]
    games = parse_document(raw)
    step = games[0].steps[0]
    assert step.type == "setup"
    assert (step.title, step.image) == ("", "")
    assert games[0].game_name == ""


def test_wire_format_keeps_camel_case_and_unknown_keys():
    raw = [
        {
            "gameId": "g1",
            "gameName": "Scratch",
            "description": None,
            "steps": [{"id": 1, "title": "t", "content": "c", "type": "setup", "image": None, "scratchLink": "x"}],
        }
    ]
    games = parse_document(raw)
    assert games[0].description == ""
    assert games[0].steps[0].image == ""
    dumped = dump_document(games)
    assert dumped[0]["gameId"] == "g1"
    assert dumped[0]["gameName"] == "Scratch"
    assert dumped[0]["steps"][0]["scratchLink"] == "x"
    assert find_game(games, "g1") is games[0]
    assert find_game(games, "nope") is None
    with pytest.raises(TypeError):
        parse_document({"gameId": "g1"})


def main() -> None:
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
            print(f"PASS: {name}")


if __name__ == "__main__":
    main()
