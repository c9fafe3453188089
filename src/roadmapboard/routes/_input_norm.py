"""
路由层统一入口校验：失败一律 HTTP 400，detail 形如 "invalid <field_name>"（snake_case）。
"""
from __future__ import annotations

from typing import Any

from fastapi import HTTPException

from roadmapboard.config import ALLOWED_IMAGE_EXTENSIONS

# 文本字段上限（内部防污染，不做内容校验）
MAX_TEXT_LEN = 10000
DEFAULT_VIEWPORT_WIDTH = 1024
MIN_VIEWPORT_WIDTH = 200
MAX_VIEWPORT_WIDTH = 10000
# Pillow 识别出的格式 → 可接受的扩展名
_FORMAT_EXTENSIONS = {
    "png": {"png"},
    "jpeg": {"jpg", "jpeg"},
    "gif": {"gif"},
    "webp": {"webp"},
}


def norm_text(field: str, v: Any, max_len: int = MAX_TEXT_LEN) -> str:
    """任意字符串都接受（包括空串），只限制类型与长度。"""
    if not isinstance(v, str) or len(v) > max_len:
        raise HTTPException(status_code=400, detail=f"invalid {field}")
    return v


def norm_extension(filename: str | None) -> str:
    """从原文件名取扩展名（小写、不带点）；不在白名单内 400 invalid file_extension。"""
    name = (filename or "").strip()
    _, dot, ext = name.rpartition(".")
    ext = ext.lower()
    if not dot or ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="invalid file_extension")
    return ext


def check_extension_matches(ext: str, image_format: str) -> None:
    if ext not in _FORMAT_EXTENSIONS.get(image_format, set()):
        raise HTTPException(status_code=400, detail="invalid file_extension")


def norm_viewport_width(v: Any) -> int:
    """?vw= 缺失或非法时按桌面宽度处理；超界夹到范围内。"""
    if v is None or v == "":
        return DEFAULT_VIEWPORT_WIDTH
    try:
        width = int(v)
    except (TypeError, ValueError):
        return DEFAULT_VIEWPORT_WIDTH
    return min(MAX_VIEWPORT_WIDTH, max(MIN_VIEWPORT_WIDTH, width))


def norm_step_id(v: Any) -> int | None:
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None
