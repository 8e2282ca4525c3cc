"""
CLI 连接配置：本地保存/读取 base_url、user_name。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def _config_dir() -> Path:
    """配置目录：~/.config/webhdfs（所有平台统一）。"""
    return Path.home() / ".config" / "webhdfs"


def _config_path() -> Path:
    return _config_dir() / "config.json"


def normalize_base_url(base_url: str) -> str:
    """客户端要求 base_url 以 / 结尾，保存前统一补上。"""
    return base_url.rstrip("/") + "/"


def load_config() -> dict[str, Any] | None:
    """读取本地配置；不存在、不是合法 JSON 或缺少 base_url 时返回 None。"""
    p = _config_path()
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict) or "base_url" not in data:
        return None
    return data


def save_config(base_url: str, user_name: str | None = None) -> None:
    """保存连接信息到本地。"""
    p = _config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {"base_url": normalize_base_url(base_url)}
    if user_name is not None:
        data["user_name"] = user_name
    p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def clear_config() -> bool:
    """清除本地配置；存在则删除并返回 True。"""
    p = _config_path()
    if p.exists():
        p.unlink()
        return True
    return False
