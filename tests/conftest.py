"""
pytest 配置与共享 fixture。

单元测试通过 FakeNameNode（httpx.MockTransport）替换传输层，不需要真实服务；
集成测试的服务地址见 tests.config 中的 WEBHDFS_LIVE_URL，未配置或不可达时跳过。
"""

from __future__ import annotations

from typing import AsyncIterator

import httpx
import pytest

from webhdfs import WebHDFSClient

from tests.config import (
    WEBHDFS_BASE_URL,
    WEBHDFS_LIVE_DIR,
    WEBHDFS_LIVE_URL,
    WEBHDFS_LIVE_USER,
    WEBHDFS_USER,
)
from tests.fake_namenode import FakeNameNode


@pytest.fixture
def namenode() -> FakeNameNode:
    return FakeNameNode()


@pytest.fixture
async def client(namenode: FakeNameNode) -> AsyncIterator[WebHDFSClient]:
    """指向 FakeNameNode 的客户端，测试结束后关闭。"""
    async with WebHDFSClient(WEBHDFS_BASE_URL, WEBHDFS_USER, transport=namenode.transport) as c:
        yield c


@pytest.fixture
async def live_client() -> AsyncIterator[WebHDFSClient]:
    """
    真实服务的客户端；未配置 WEBHDFS_LIVE_URL 或服务不可达则跳过。
    测试目录 WEBHDFS_LIVE_DIR 在开始前创建。
    """
    if not WEBHDFS_LIVE_URL:
        pytest.skip("WEBHDFS_LIVE_URL 未设置，跳过集成测试")
    base_url = WEBHDFS_LIVE_URL.rstrip("/") + "/"
    async with WebHDFSClient(base_url, WEBHDFS_LIVE_USER, timeout=10.0) as c:
        try:
            await c.create_directory(WEBHDFS_LIVE_DIR)
        except httpx.HTTPError as e:
            pytest.skip(f"WebHDFS 服务不可用 ({base_url}): {e}")
        yield c
