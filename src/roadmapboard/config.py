from __future__ import annotations

import os
from pathlib import Path

_ENV_LOADED = False


def _load_env_file() -> None:
    """从仓库根 .env（或 ROADMAP_ENV_FILE）加载环境变量；仅 setdefault，不覆盖已有。只执行一次。"""
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True
    env_path = os.environ.get("ROADMAP_ENV_FILE")
    if env_path:
        path = Path(env_path)
    else:
        repo_root = Path(__file__).resolve().parents[2]
        path = repo_root / ".env"
    try:
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return
    for line in raw.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if value and len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        if key:
            os.environ.setdefault(key, value)


def _env_str(name: str, default: str) -> str:
    """读取字符串环境变量；None/纯空白时返回 default。"""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    """读取环境变量并转为 int；None/空字符串/转换失败时返回 default（不打印日志）。"""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (ValueError, TypeError):
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (ValueError, TypeError):
        return default


def _env_bool(name: str, default: bool) -> bool:
    """安全解析布尔环境变量：接受 "1/true/yes/on" 为 True"""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.lower().strip() in ("1", "true", "yes", "on")


_load_env_file()

# import 阶段不 raise；配置错误时回退默认并写入 _STARTUP_WARNINGS，由 lifespan 统一打印。
_STARTUP_WARNINGS: list[str] = []

# --- 远端存储（Supabase）---
SUPABASE_URL = _env_str("ROADMAP_SUPABASE_URL", "").rstrip("/")
SUPABASE_KEY = _env_str("ROADMAP_SUPABASE_KEY", "")
RECORD_TABLE = _env_str("ROADMAP_TABLE", "games")
# 整份文档只存在这一行里
RECORD_KEY = _env_str("ROADMAP_RECORD_KEY", "main_roadmap")
IMAGE_BUCKET = _env_str("ROADMAP_IMAGE_BUCKET", "step-images")
HTTP_TIMEOUT_SECONDS = max(_env_float("ROADMAP_HTTP_TIMEOUT_SECONDS", 10.0), 1.0)

STORE_BACKEND_SUPABASE = "supabase"
STORE_BACKEND_MEMORY = "memory"
_ALLOWED_BACKENDS = {STORE_BACKEND_SUPABASE, STORE_BACKEND_MEMORY}


def _resolve_store_backend() -> str:
    default = STORE_BACKEND_SUPABASE if (SUPABASE_URL and SUPABASE_KEY) else STORE_BACKEND_MEMORY
    backend = _env_str("ROADMAP_STORE_BACKEND", default).lower()
    if backend not in _ALLOWED_BACKENDS:
        _STARTUP_WARNINGS.append(f"ROADMAP_STORE_BACKEND={backend!r} 不支持，回退 {default}")
        backend = default
    if backend == STORE_BACKEND_SUPABASE and not (SUPABASE_URL and SUPABASE_KEY):
        _STARTUP_WARNINGS.append(
            "ROADMAP_STORE_BACKEND=supabase 但未设置 ROADMAP_SUPABASE_URL/ROADMAP_SUPABASE_KEY，回退 memory（数据不落盘）"
        )
        backend = STORE_BACKEND_MEMORY
    if backend == STORE_BACKEND_MEMORY:
        _STARTUP_WARNINGS.append("使用 memory 存储：重启后编辑内容会丢失")
    return backend


STORE_BACKEND = _resolve_store_backend()

# --- 图片上传 ---
MAX_UPLOAD_BYTES = max(_env_int("ROADMAP_MAX_UPLOAD_BYTES", 5 * 1024 * 1024), 1024)
ALLOWED_IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp")
# 替换/清除图片时是否删除旧 blob（默认保留，与既有数据行为一致）
PRUNE_REPLACED_IMAGES = _env_bool("ROADMAP_PRUNE_REPLACED_IMAGES", False)

# --- 编辑会话（进程内内存态）---
MAX_SESSIONS = max(_env_int("ROADMAP_MAX_SESSIONS", 200), 1)
SESSION_IDLE_TTL_SECONDS = max(_env_int("ROADMAP_SESSION_IDLE_TTL_SECONDS", 3600), 60)
REQUIRE_SINGLE_WORKER = _env_bool("ROADMAP_REQUIRE_SINGLE_WORKER", True)
SESSION_COOKIE = "roadmap_session"

# --- 拖拽自动滚动 ---
AUTOSCROLL_EDGE_PX = max(_env_int("ROADMAP_AUTOSCROLL_EDGE_PX", 80), 1)
AUTOSCROLL_STEP_PX = max(_env_int("ROADMAP_AUTOSCROLL_STEP_PX", 15), 1)
AUTOSCROLL_INTERVAL_MS = max(_env_int("ROADMAP_AUTOSCROLL_INTERVAL_MS", 16), 1)
