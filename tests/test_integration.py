"""
真实 WebHDFS 服务上的往返测试：mkdir / upload / stat / list / open / rename / delete。

服务地址、用户、测试目录来自 tests.config（环境变量 WEBHDFS_LIVE_*）；未配置或不可达时跳过。
"""

from __future__ import annotations

import uuid
from pathlib import Path

import pytest

from webhdfs import WebHDFSClient

from tests.config import WEBHDFS_LIVE_DIR


@pytest.fixture
def work_dir() -> str:
    """每个测试独立的远程子目录。"""
    return f"{WEBHDFS_LIVE_DIR.rstrip('/')}/{uuid.uuid4().hex[:12]}"


@pytest.mark.integration
class TestRoundTrip:
    """在测试目录下创建、上传、读取、重命名并删除。"""

    async def test_home_directory(self, live_client: WebHDFSClient) -> None:
        home = await live_client.get_home_directory()
        assert home.startswith("/")

    async def test_mkdir_upload_read_rename_delete(
        self, live_client: WebHDFSClient, work_dir: str, tmp_path: Path
    ) -> None:
        assert await live_client.create_directory(work_dir, permission="755") is True
        try:
            local = tmp_path / "hello.txt"
            local.write_bytes(b"hello webhdfs\n" * 1000)
            remote = f"{work_dir}/hello.txt"

            assert await live_client.create_file(local, remote, overwrite=True) is True

            st = await live_client.get_file_status(remote)
            assert st is not None
            assert st.is_file
            assert st.length == local.stat().st_size

            names = [s.path_suffix for s in await live_client.get_directory_status(work_dir)]
            assert names == ["hello.txt"]

            async with await live_client.open_file(remote, offset=6, length=7) as stream:
                assert await stream.read() == b"webhdfs"

            renamed = f"{work_dir}/renamed.txt"
            assert await live_client.rename_directory(remote, renamed) is True
            assert await live_client.get_file_status(remote) is None
            assert (await live_client.get_content_summary(work_dir)).file_count == 1
        finally:
            assert await live_client.delete_directory(work_dir, recursive=True) is True

        assert await live_client.get_file_status(work_dir) is None

    async def test_missing_path_is_empty(self, live_client: WebHDFSClient, work_dir: str) -> None:
        assert await live_client.get_file_status(work_dir) is None
        assert await live_client.get_directory_status(work_dir) == []
