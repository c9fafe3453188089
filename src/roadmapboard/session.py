from __future__ import annotations

import logging
import re
import time
import uuid
from threading import Lock
from typing import Callable, Optional, Tuple

from fastapi import Request
from fastapi.responses import Response

from roadmapboard.config import (
    _env_int,
    MAX_SESSIONS,
    REQUIRE_SINGLE_WORKER,
    SESSION_COOKIE,
    SESSION_IDLE_TTL_SECONDS,
)
from roadmapboard.editor import EditorSession

logger = logging.getLogger(__name__)

SESSION_ID_RE = re.compile(r"^[a-f0-9]{1,32}$")
# 只有管理端需要编辑会话；访客/印刷页每次直接读网关
SESSION_PATH_PREFIXES = ("/admin", "/api/editor/")

# 单 worker 护栏（在 import 期检查）
if REQUIRE_SINGLE_WORKER:
    web_concurrency = _env_int("WEB_CONCURRENCY", 0)
    uvicorn_workers = _env_int("UVICORN_WORKERS", 0)
    if web_concurrency > 1 or uvicorn_workers > 1:
        raise RuntimeError(
            "编辑会话为进程内内存态，请用 --workers 1 启动 uvicorn。"
            f"检测到 WEB_CONCURRENCY={web_concurrency} 或 UVICORN_WORKERS={uvicorn_workers}。"
            "如需关闭此检查，设置 ROADMAP_REQUIRE_SINGLE_WORKER=0"
        )


def _new_session_id() -> str:
    return uuid.uuid4().hex[:16]


class SessionRegistry:
    """cookie → EditorSession；空闲超过 TTL 回收，超过上限按最近访问时间（LRU）淘汰。"""

    def __init__(
        self,
        factory: Callable[[], EditorSession],
        max_sessions: int = MAX_SESSIONS,
        idle_ttl_seconds: int = SESSION_IDLE_TTL_SECONDS,
    ) -> None:
        self._factory = factory
        self.max_sessions = max_sessions
        self.idle_ttl_seconds = idle_ttl_seconds
        self._sessions: dict[str, EditorSession] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _evict_locked(self, now_ts: float) -> None:
        expired = [sid for sid, seen in self._last_seen.items() if (now_ts - seen) > self.idle_ttl_seconds]
        for sid in expired:
            self._sessions.pop(sid, None)
            self._last_seen.pop(sid, None)
        # 给即将创建的新会话留一个位置
        while len(self._sessions) >= self.max_sessions:
            oldest = min(self._last_seen, key=lambda s: self._last_seen[s])
            self._sessions.pop(oldest, None)
            self._last_seen.pop(oldest, None)

    def get_or_create(self, session_id: Optional[str], now_ts: float | None = None) -> Tuple[EditorSession, str, bool]:
        """返回 (session, session_id, need_set_cookie)；cookie 带来的未知 id 不被信任，换新 id。"""
        now_ts = time.time() if now_ts is None else now_ts
        with self._lock:
            if session_id and session_id in self._sessions:
                if (now_ts - self._last_seen[session_id]) <= self.idle_ttl_seconds:
                    self._last_seen[session_id] = now_ts
                    return self._sessions[session_id], session_id, False
            self._evict_locked(now_ts)
            new_id = _new_session_id()
            self._sessions[new_id] = self._factory()
            self._last_seen[new_id] = now_ts
            logger.info("session count=%s max=%s", len(self._sessions), self.max_sessions)
            return self._sessions[new_id], new_id, True


def _get_session_id(request: Request) -> Optional[str]:
    session_id = (request.cookies.get(SESSION_COOKIE) or "").strip()
    if session_id and SESSION_ID_RE.fullmatch(session_id):
        return session_id
    return None


async def session_middleware(request: Request, call_next):
    """管理端路径自动分配编辑会话 + 设置 cookie。"""
    path = request.url.path
    if not path.startswith(SESSION_PATH_PREFIXES):
        return await call_next(request)

    registry: SessionRegistry | None = getattr(request.app.state, "sessions", None)
    if registry is None:
        return Response(status_code=503, content="session registry not ready", media_type="text/plain")

    session, session_id, need_set_cookie = registry.get_or_create(_get_session_id(request))
    request.state.editor = session
    request.state.session_id = session_id

    response = await call_next(request)
    if need_set_cookie:
        response.set_cookie(SESSION_COOKIE, session_id, httponly=True, max_age=86400 * 7, path="/", samesite="lax")  # 7 天
    return response
