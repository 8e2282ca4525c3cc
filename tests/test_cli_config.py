"""
CLI 连接配置（cli_config）单元测试。URL/用户均从 tests.config 读取。
"""

from __future__ import annotations

from pathlib import Path

import pytest

from webhdfs.cli_config import clear_config, load_config, normalize_base_url, save_config

from tests.config import WEBHDFS_BASE_URL, WEBHDFS_USER


@pytest.fixture(autouse=True)
def _patch_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """将配置路径指向临时目录，避免污染用户 ~/.config/webhdfs。"""
    config_dir = tmp_path / "webhdfs"
    config_dir.mkdir(parents=True, exist_ok=True)

    def _config_dir():
        return config_dir

    monkeypatch.setattr("webhdfs.cli_config._config_dir", _config_dir)


def test_load_config_missing_returns_none() -> None:
    """无配置文件时 load_config 返回 None。"""
    assert load_config() is None


def test_load_config_invalid_json_returns_none(tmp_path: Path) -> None:
    """无效 JSON 时 load_config 返回 None。"""
    config_file = tmp_path / "webhdfs" / "config.json"
    config_file.write_text("not json", encoding="utf-8")
    assert load_config() is None


def test_load_config_missing_base_url_returns_none(tmp_path: Path) -> None:
    """缺少 base_url 时 load_config 返回 None。"""
    config_file = tmp_path / "webhdfs" / "config.json"
    config_file.write_text('{"user_name": "u"}', encoding="utf-8")
    assert load_config() is None


def test_save_config_creates_dir_and_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """save_config 创建目录并写入 config.json。"""
    nested = tmp_path / "a" / "b"
    monkeypatch.setattr("webhdfs.cli_config._config_dir", lambda: nested)
    save_config(WEBHDFS_BASE_URL, WEBHDFS_USER)
    assert (nested / "config.json").exists()
    cfg = load_config()
    assert cfg == {"base_url": WEBHDFS_BASE_URL, "user_name": WEBHDFS_USER}


def test_save_config_adds_trailing_slash() -> None:
    """客户端要求 base_url 以 / 结尾，save_config 统一补上（多余的 / 合并为一个）。"""
    save_config("http://test.me/plz", "u")
    assert load_config()["base_url"] == WEBHDFS_BASE_URL
    save_config("http://test.me/plz//", "u")
    assert load_config()["base_url"] == WEBHDFS_BASE_URL


def test_normalize_base_url() -> None:
    assert normalize_base_url("http://nn:9870") == "http://nn:9870/"
    assert normalize_base_url("http://nn:9870/") == "http://nn:9870/"


def test_save_config_optional_user_name() -> None:
    """save_config 可不传 user_name。"""
    save_config(WEBHDFS_BASE_URL)
    cfg = load_config()
    assert cfg is not None
    assert "user_name" not in cfg


def test_save_config_keeps_chinese_user_name() -> None:
    save_config(WEBHDFS_BASE_URL, "你好")
    assert load_config()["user_name"] == "你好"


def test_clear_config_removes_file() -> None:
    """clear_config 删除配置文件并返回 True。"""
    save_config(WEBHDFS_BASE_URL, "u")
    assert load_config() is not None
    assert clear_config() is True
    assert load_config() is None


def test_clear_config_when_missing_returns_false() -> None:
    """无配置文件时 clear_config 返回 False。"""
    assert clear_config() is False
