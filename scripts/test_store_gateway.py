#!/usr/bin/env python3
"""
Store Gateway：NotFound 与空文档区分；SupabaseStore 用桩 session 验证请求形态与错误映射（不连网）。
"""
from __future__ import annotations

from typing import Any

import pytest
import requests

from roadmapboard.document import Game, Step
from roadmapboard.store import MemoryStore, NotFound, RoadmapGateway, StoreError, SupabaseStore, new_blob_name

BASE = "https://demo.supabase.co"
_NO_JSON = object()


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data: Any = _NO_JSON, text: str = "") -> None:
        self.status_code = status_code
        self._json = json_data
        self.text = text

    def json(self) -> Any:
        if self._json is _NO_JSON:
            raise ValueError("no json")
        return self._json


class StubSession:
    """按顺序返回预置响应（或抛预置异常），记录每次调用。"""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _store(*responses: Any) -> tuple[SupabaseStore, StubSession]:
    session = StubSession(*responses)
    store = SupabaseStore(BASE, "anon-key", table="games", record_key="main_roadmap", bucket="step-images", session=session)
    return store, session


def _doc() -> list[Game]:
    return [Game(game_id="g1", game_name="G1", description="d", steps=[Step(id=1, title="t")])]


def test_memory_store_empty_document_is_not_not_found():
    store = MemoryStore(document=None)
    with pytest.raises(NotFound):
        store.fetch_document()
    store.replace_document([])
    assert store.fetch_document() == []


def test_memory_store_returns_copies():
    store = MemoryStore(document=_doc())
    first = store.fetch_document()
    first[0].steps.clear()
    assert len(store.fetch_document()[0].steps) == 1


def test_supabase_fetch_reads_games_from_steps_field():
    wire = [{"gameId": "g1", "gameName": "G1", "description": "", "steps": [{"id": 1, "title": "t", "content": "", "type": "setup", "image": ""}]}]
    store, session = _store(FakeResponse(200, [{"steps": wire}]))
    games = store.fetch_document()
    assert games[0].game_id == "g1"
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == f"{BASE}/rest/v1/games"
    assert call["params"] == {"select": "steps", "game_id": "eq.main_roadmap"}
    assert call["headers"]["apikey"] == "anon-key"
    assert call["headers"]["Authorization"] == "Bearer anon-key"


def test_supabase_fetch_tolerates_null_step_type():
    wire = [{"gameId": "g1", "steps": [{"id": 1, "title": "t", "type": None, "image": None}]}]
    store, _ = _store(FakeResponse(200, [{"steps": wire}]))
    games = store.fetch_document()
    assert games[0].steps[0].type == "setup"


def test_supabase_fetch_absent_null_and_empty():
    store, _ = _store(FakeResponse(200, []))
    with pytest.raises(NotFound):
        store.fetch_document()
    store, _ = _store(FakeResponse(200, [{"steps": None}]))
    with pytest.raises(NotFound):
        store.fetch_document()
    store, _ = _store(FakeResponse(200, [{"steps": []}]))
    assert store.fetch_document() == []


def test_supabase_replace_then_fetch_empty_document():
    store, session = _store(FakeResponse(200, [{"game_id": "main_roadmap", "steps": []}]), FakeResponse(200, [{"steps": []}]))
    store.replace_document([])
    assert session.calls[0]["json"] == {"steps": []}
    assert store.fetch_document() == []


def test_supabase_replace_writes_whole_document_under_steps():
    store, session = _store(FakeResponse(200, [{"game_id": "main_roadmap"}]))
    store.replace_document(_doc())
    call = session.calls[0]
    assert call["method"] == "PATCH"
    assert call["params"] == {"game_id": "eq.main_roadmap"}
    assert call["json"]["steps"][0]["gameId"] == "g1"
    assert call["json"]["steps"][0]["steps"][0]["id"] == 1
    assert call["headers"]["Prefer"] == "return=representation"


def test_supabase_replace_zero_rows_is_store_error():
    store, _ = _store(FakeResponse(200, []))
    with pytest.raises(StoreError):
        store.replace_document(_doc())


def test_supabase_transport_and_status_errors():
    store, _ = _store(requests.Timeout("slow"))
    with pytest.raises(StoreError):
        store.fetch_document()
    store, _ = _store(requests.ConnectionError("down"))
    with pytest.raises(StoreError):
        store.replace_document([])
    store, _ = _store(FakeResponse(401, {"message": "bad key"}, text="bad key"))
    with pytest.raises(StoreError):
        store.fetch_document()
    store, _ = _store(FakeResponse(200, text="<html>"))
    with pytest.raises(StoreError):
        store.fetch_document()
    store, _ = _store(FakeResponse(200, [{"steps": {"not": "a list"}}]))
    with pytest.raises(StoreError):
        store.fetch_document()


def test_supabase_upload_returns_public_url():
    store, session = _store(FakeResponse(200, {"Key": "step-images/x.png"}))
    url = store.upload_image(b"\x89PNG...", "png")
    assert url.startswith(f"{BASE}/storage/v1/object/public/step-images/")
    assert url.endswith(".png")
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"].startswith(f"{BASE}/storage/v1/object/step-images/")
    assert call["data"] == b"\x89PNG..."
    assert call["headers"]["Content-Type"] == "image/png"
    assert store.owns_image(url)


def test_supabase_delete_image_only_for_own_bucket():
    store, session = _store(FakeResponse(200, [{"name": "1_ab.png"}]))
    assert store.delete_image("https://elsewhere.example/a.png") is False
    assert session.calls == []
    assert store.delete_image(f"{BASE}/storage/v1/object/public/step-images/1_ab.png") is True
    call = session.calls[0]
    assert call["method"] == "DELETE"
    assert call["json"] == {"prefixes": ["1_ab.png"]}


def test_blob_names_and_image_reference():
    name = new_blob_name(".PNG", now=1700000000.5)
    assert name.startswith("1700000000500_") and name.endswith(".png")
    assert new_blob_name("jpg") != new_blob_name("jpg")
    step = Step(id=3, title="t", image="https://img/a.png")
    cleared = RoadmapGateway.delete_image_reference(step)
    assert cleared.image == "" and cleared.id == 3
    assert step.image == "https://img/a.png"


def test_memory_store_blobs():
    store = MemoryStore(document=[])
    url = store.upload_image(b"abc", "gif")
    assert url.startswith("/media/")
    name = url[len("/media/"):]
    assert store.get_blob(name) == (b"abc", "image/gif")
    assert store.delete_image(url) is True
    assert store.get_blob(name) is None
    assert store.delete_image("https://elsewhere/a.gif") is False


def main() -> None:
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
            print(f"PASS: {name}")


if __name__ == "__main__":
    main()
