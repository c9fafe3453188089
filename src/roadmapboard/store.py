# src/roadmapboard/store.py
"""
Store Gateway：整份路线图文档存在远端一行记录里（按固定 key 读/整体替换），图片存在 blob 存储（返回公开 URL）。
线上记录形如 {"game_id": "main_roadmap", "steps": [Game...]}；字段名 steps 是历史遗留，里面装的是 games，线上保持不变。
"""
from __future__ import annotations

import copy
import logging
import mimetypes
import time
import uuid
from threading import Lock
from typing import Any
from urllib.parse import quote

import requests
from pydantic import ValidationError

from roadmapboard.document import Game, Step, dump_document, parse_document

logger = logging.getLogger(__name__)

# 线上字段名（历史遗留：装的是 games 列表）
WIRE_DOCUMENT_FIELD = "steps"
WIRE_KEY_FIELD = "game_id"


class StoreError(Exception):
    """远端读写失败（传输/鉴权/非 2xx/响应畸形）。"""


class NotFound(Exception):
    """记录不存在或 steps 为 null；空列表不算 NotFound。"""


def new_blob_name(extension: str, now: float | None = None) -> str:
    """时间戳 + 短随机串 + 原扩展名，例如 1718000000000_3fa2c1d0.png。"""
    ts = time.time() if now is None else now
    ext = (extension or "").strip().lstrip(".").lower() or "bin"
    return f"{int(ts * 1000)}_{uuid.uuid4().hex[:8]}.{ext}"


def guess_content_type(name: str) -> str:
    return mimetypes.guess_type(name)[0] or "application/octet-stream"


class RoadmapGateway:
    """网关接口；各实现只负责远端 I/O，不缓存。"""

    def fetch_document(self) -> list[Game]:
        raise NotImplementedError

    def replace_document(self, games: list[Game]) -> None:
        raise NotImplementedError

    def upload_image(self, data: bytes, suggested_extension: str) -> str:
        raise NotImplementedError

    def owns_image(self, public_url: str) -> bool:
        return False

    def delete_image(self, public_url: str) -> bool:
        """删除本网关 bucket 内的 blob；非本 bucket 的 URL 返回 False。"""
        return False

    @staticmethod
    def delete_image_reference(step: Step) -> Step:
        """只清文档字段，不删 blob。"""
        return step.model_copy(update={"image": ""})


def _decode_document(raw: Any) -> list[Game]:
    if raw is None:
        raise NotFound("document field is null")
    try:
        return parse_document(raw)
    except (TypeError, ValidationError) as e:
        raise StoreError(f"malformed document: {e}") from e


class SupabaseStore(RoadmapGateway):
    """Supabase：PostgREST 读写记录行，Storage 存图片。"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "games",
        record_key: str = "main_roadmap",
        bucket: str = "step-images",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url or not api_key:
            raise ValueError("SupabaseStore requires base_url and api_key")
        self.base_url = base_url.rstrip("/")
        self.table = table
        self.record_key = record_key
        self.bucket = bucket
        self._api_key = api_key
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()

    # --- URL ---
    def _record_url(self) -> str:
        return f"{self.base_url}/rest/v1/{quote(self.table)}"

    def _object_url(self, name: str = "") -> str:
        url = f"{self.base_url}/storage/v1/object/{quote(self.bucket)}"
        return f"{url}/{quote(name)}" if name else url

    def public_url(self, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{quote(self.bucket)}/{quote(name)}"

    def _public_prefix(self) -> str:
        return self.public_url("")

    def _record_filter(self) -> dict[str, str]:
        return {WIRE_KEY_FIELD: f"eq.{self.record_key}"}

    def _request(self, method: str, url: str, headers: dict[str, str] | None = None, **kwargs: Any) -> requests.Response:
        all_headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
        }
        if headers:
            all_headers.update(headers)
        try:
            resp = self._session.request(method, url, headers=all_headers, timeout=self._timeout, **kwargs)
        except requests.Timeout as e:
            raise StoreError(f"{method} {url}: timeout") from e
        except requests.RequestException as e:
            raise StoreError(f"{method} {url}: connection_error") from e
        if not 200 <= resp.status_code < 300:
            body = (resp.text or "")[:200]
            raise StoreError(f"{method} {url}: status={resp.status_code} body={body}")
        return resp

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise StoreError(f"response not JSON: {e}") from e

    # --- 文档 ---
    def fetch_document(self) -> list[Game]:
        params = {"select": WIRE_DOCUMENT_FIELD, **self._record_filter()}
        rows = self._json(self._request("GET", self._record_url(), params=params))
        if not isinstance(rows, list):
            raise StoreError("record query did not return a list")
        if not rows:
            raise NotFound(f"record {self.record_key!r} not found")
        row = rows[0]
        if not isinstance(row, dict):
            raise StoreError("record row is not an object")
        return _decode_document(row.get(WIRE_DOCUMENT_FIELD))

    def replace_document(self, games: list[Game]) -> None:
        resp = self._request(
            "PATCH",
            self._record_url(),
            params=self._record_filter(),
            json={WIRE_DOCUMENT_FIELD: dump_document(games)},
            headers={"Content-Type": "application/json", "Prefer": "return=representation"},
        )
        rows = self._json(resp)
        # PATCH 命中 0 行时 PostgREST 仍返回 200 + []
        if isinstance(rows, list) and not rows:
            raise StoreError(f"record {self.record_key!r} not found for update")
        logger.info("document saved games=%s", len(games))

    # --- 图片 ---
    def upload_image(self, data: bytes, suggested_extension: str) -> str:
        name = new_blob_name(suggested_extension)
        self._request(
            "POST",
            self._object_url(name),
            data=data,
            headers={"Content-Type": guess_content_type(name), "x-upsert": "false"},
        )
        logger.info("image uploaded name=%s bytes=%s", name, len(data))
        return self.public_url(name)

    def owns_image(self, public_url: str) -> bool:
        prefix = self._public_prefix()
        return bool(public_url) and public_url.startswith(prefix) and len(public_url) > len(prefix)

    def delete_image(self, public_url: str) -> bool:
        if not self.owns_image(public_url):
            return False
        name = public_url[len(self._public_prefix()):]
        self._request(
            "DELETE",
            self._object_url(),
            json={"prefixes": [name]},
            headers={"Content-Type": "application/json"},
        )
        logger.info("image deleted name=%s", name)
        return True


class MemoryStore(RoadmapGateway):
    """进程内记录 + blob；本地演示与测试用。document=None 表示记录不存在。"""

    def __init__(self, document: list[Game] | None = None, media_prefix: str = "/media/") -> None:
        self._lock = Lock()
        self._record: list[dict[str, Any]] | None = None if document is None else dump_document(document)
        self._blobs: dict[str, tuple[bytes, str]] = {}
        self.media_prefix = media_prefix if media_prefix.endswith("/") else media_prefix + "/"

    def fetch_document(self) -> list[Game]:
        with self._lock:
            raw = copy.deepcopy(self._record)
        return _decode_document(raw)

    def replace_document(self, games: list[Game]) -> None:
        raw = dump_document(games)
        with self._lock:
            self._record = raw
        logger.info("document saved games=%s", len(games))

    def upload_image(self, data: bytes, suggested_extension: str) -> str:
        name = new_blob_name(suggested_extension)
        with self._lock:
            self._blobs[name] = (bytes(data), guess_content_type(name))
        return self.media_prefix + name

    def get_blob(self, name: str) -> tuple[bytes, str] | None:
        with self._lock:
            return self._blobs.get(name)

    def blob_names(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)

    def owns_image(self, public_url: str) -> bool:
        return bool(public_url) and public_url.startswith(self.media_prefix)

    def delete_image(self, public_url: str) -> bool:
        if not self.owns_image(public_url):
            return False
        with self._lock:
            return self._blobs.pop(public_url[len(self.media_prefix):], None) is not None


def build_gateway() -> RoadmapGateway:
    """按 config 构造网关；由 create_app 注入，不做模块级单例。"""
    from roadmapboard import config

    if config.STORE_BACKEND == config.STORE_BACKEND_SUPABASE:
        return SupabaseStore(
            config.SUPABASE_URL,
            config.SUPABASE_KEY,
            table=config.RECORD_TABLE,
            record_key=config.RECORD_KEY,
            bucket=config.IMAGE_BUCKET,
            timeout=config.HTTP_TIMEOUT_SECONDS,
        )
    return MemoryStore(document=[])
