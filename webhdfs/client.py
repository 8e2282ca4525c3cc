"""
WebHDFS Python API 客户端（异步）。

基于 Hadoop WebHDFS REST API：每个方法对应一次独立的 HTTP 请求，
URL 形如 <base_url>webhdfs/v1<path>?user.name=<user>&op=<OP>[&k=v...]，
响应体为 JSON，解析为 webhdfs.models 中的记录类型。
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from typing import Any, AsyncIterator, BinaryIO, Callable, TypeVar
from urllib.parse import quote

from anyio import to_thread
import httpx

from webhdfs.errors import RemoteError, ResponseDecodeError
from webhdfs.models import (
    ContentSummary,
    FileChecksum,
    FileStatus,
    parse_boolean,
    parse_content_summary,
    parse_file_checksum,
    parse_file_status,
    parse_file_statuses,
    parse_path,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# base_url 与路径之间的固定前缀
PREFIX = "webhdfs/v1"

# 状态查询类操作遇到这些状态码时返回空结果（None 或 []），而不是报错
EMPTY_STATUSES = frozenset({204, 404})

ProgressCallback = Callable[[int, int], None]


def _quote(value: str) -> str:
    """按 UTF-8 百分号编码，保留 /；纯 ASCII 路径原样输出。"""
    return quote(value, safe="/")


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _remaining_size(fileobj: BinaryIO) -> int | None:
    """文件对象从当前位置到末尾的字节数；不可 seek 时返回 None。读位置保持不变。"""
    try:
        pos = fileobj.tell()
        end = fileobj.seek(0, os.SEEK_END)
        fileobj.seek(pos)
    except (AttributeError, OSError, ValueError):
        return None
    return end - pos


def _raise_for_status(response: httpx.Response, operation: str) -> None:
    if response.is_success:
        return
    logger.warning("%s %s returned HTTP %d", operation, response.request.url, response.status_code)
    raise RemoteError(response.status_code, response.text, operation)


def _decode(response: httpx.Response, operation: str, parse: Callable[[Any], T]) -> T:
    """把成功响应的 JSON body 解析为目标结构；body 非 JSON 或结构不符时抛 ResponseDecodeError。"""
    try:
        data = response.json()
    except ValueError as e:
        raise ResponseDecodeError(f"response body is not valid JSON ({e})", response.text, operation) from e
    try:
        return parse(data)
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise ResponseDecodeError(f"unexpected response shape ({e!r})", response.text, operation) from e


@dataclass(frozen=True)
class ClientConfig:
    """
    客户端固定配置，构造后不可变，所有请求共享。

    :param base_url: 服务地址，必须以 / 结尾，如 http://namenode:9870/
    :param user_name: 作为 user.name 查询参数发送的用户名
    """

    base_url: str
    user_name: str

    def __post_init__(self) -> None:
        if not self.base_url.endswith("/"):
            raise ValueError(f"base_url must end with '/': {self.base_url!r}")
        if not self.user_name:
            raise ValueError("user_name must not be empty")


class RemoteFileStream:
    """
    open_file 返回的远程文件内容流。

    读取权交给调用方，用完必须 aclose()（或 async with）。
    """

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def aiter_bytes(self, chunk_size: int | None = None) -> AsyncIterator[bytes]:
        """逐块读取文件内容。"""
        return self._response.aiter_bytes(chunk_size)

    async def read(self) -> bytes:
        """读取剩余全部内容。"""
        return await self._response.aread()

    async def aclose(self) -> None:
        await self._response.aclose()

    async def __aenter__(self) -> RemoteFileStream:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


class WebHDFSClient:
    """
    WebHDFS 服务 API 客户端。

    认证方式：只发送 user.name 查询参数（simple auth）。
    测试示例： base_url="http://test.me/plz/", user_name="hdfs"

    所有方法都是协程，可通过取消所在 asyncio 任务中止进行中的请求（抛出 asyncio.CancelledError）。
    """

    UPLOAD_CHUNK_SIZE = 1024 * 1024  # 1 MiB，create_file 流式上传块大小

    def __init__(
        self,
        base_url: str,
        user_name: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
        verify: bool = True,
    ):
        """
        :param base_url: 服务地址，必须以 / 结尾，如 http://namenode:9870/
        :param user_name: 用户名，如 hdfs
        :param transport: 自定义 httpx 传输层（测试时传 httpx.MockTransport）
        :param timeout: 请求超时秒数
        :param verify: 是否验证 HTTPS 证书
        """
        self.config = ClientConfig(base_url, user_name)
        self.timeout = timeout
        self.verify = verify
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> WebHDFSClient:
        return cls(config.base_url, config.user_name, **kwargs)

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def user_name(self) -> str:
        return self.config.user_name

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout,
                verify=self.verify,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """关闭底层 HTTP 客户端。"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> WebHDFSClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def build_url(self, path: str, op: str, *params: tuple[str, Any]) -> str:
        """
        构造请求 URL：<base_url>webhdfs/v1<path>?user.name=<user>&op=<OP>，再按顺序追加 params。

        :param path: 远程路径，如 "/user/hdfs/a.txt"；缺前导 / 时自动补上
        :param op: 操作码，如 "GETFILESTATUS"
        :param params: 额外查询参数 (key, value)，value 为 None 的跳过，bool 输出 true/false
        """
        if not path.startswith("/"):
            path = "/" + path
        url = f"{self.config.base_url}{PREFIX}{_quote(path)}?user.name={_quote(self.config.user_name)}&op={op}"
        for key, value in params:
            if value is None:
                continue
            url += f"&{key}={_quote(_param_value(value))}"
        return url

    async def _send(
        self,
        method: str,
        path: str,
        op: str,
        *params: tuple[str, Any],
        content: Any = None,
        headers: dict[str, str] | None = None,
        stream: bool = False,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        client = self._get_client()
        url = self.build_url(path, op, *params)
        logger.debug("%s %s", method, url)
        request = client.build_request(method, url, content=content, headers=headers)
        return await client.send(request, stream=stream, follow_redirects=follow_redirects)

    async def _call(
        self,
        method: str,
        path: str,
        op: str,
        parse: Callable[[Any], T],
        *params: tuple[str, Any],
        empty: Callable[[], Any] | None = None,
    ) -> Any:
        """
        发送一次请求并解析 JSON 响应。

        empty 不为 None 时表示状态查询类操作：响应为 404/204 则直接返回 empty()，不读 body。
        """
        response = await self._send(method, path, op, *params)
        if empty is not None and response.status_code in EMPTY_STATUSES:
            logger.debug("%s %s: HTTP %d, empty result", op, path, response.status_code)
            return empty()
        _raise_for_status(response, op)
        return _decode(response, op, parse)

    # ------------------------- 状态查询 -------------------------

    async def get_file_status(self, path: str) -> FileStatus | None:
        """获取文件/目录状态；不存在时返回 None。"""
        return await self._call("GET", path, "GETFILESTATUS", parse_file_status, empty=lambda: None)

    async def get_directory_status(self, path: str) -> list[FileStatus]:
        """列出目录内容，顺序与服务端一致；目录不存在时返回空列表。"""
        return await self._call("GET", path, "LISTSTATUS", parse_file_statuses, empty=list)

    async def get_content_summary(self, path: str) -> ContentSummary | None:
        """目录汇总（文件数、目录数、占用空间、配额）；不存在时返回 None。"""
        return await self._call("GET", path, "GETCONTENTSUMMARY", parse_content_summary, empty=lambda: None)

    async def get_file_checksum(self, path: str) -> FileChecksum | None:
        """文件校验和；不存在时返回 None。"""
        return await self._call("GET", path, "GETFILECHECKSUM", parse_file_checksum, empty=lambda: None)

    async def get_home_directory(self) -> str:
        """当前用户的家目录，如 "/user/hdfs"。总是对根路径 / 发请求。"""
        return await self._call("GET", "/", "GETHOMEDIRECTORY", parse_path)

    # ------------------------- 目录 -------------------------

    async def create_directory(self, path: str, *, permission: str | None = None) -> bool:
        """
        创建目录（含不存在的父目录）。

        :param permission: 可选八进制权限，如 "755"；不传则用服务端默认
        """
        return await self._call("PUT", path, "MKDIRS", parse_boolean, ("permission", permission))

    async def delete_directory(self, path: str, *, recursive: bool | None = None) -> bool:
        """
        删除文件或目录。

        :param recursive: 非空目录需传 True；不传则由服务端按默认（false）处理
        """
        return await self._call("DELETE", path, "DELETE", parse_boolean, ("recursive", recursive))

    async def rename_directory(self, path: str, new_path: str) -> bool:
        """重命名/移动文件或目录到 new_path。"""
        return await self._call("PUT", path, "RENAME", parse_boolean, ("destination", new_path))

    # ------------------------- 元数据修改 -------------------------

    async def set_access_time(self, path: str, time: int | str) -> bool:
        """设置访问时间（毫秒时间戳）。"""
        return await self._call("PUT", path, "SETTIMES", parse_boolean, ("accesstime", time))

    async def set_modification_time(self, path: str, time: int | str) -> bool:
        """设置修改时间（毫秒时间戳）。"""
        return await self._call("PUT", path, "SETTIMES", parse_boolean, ("modificationtime", time))

    async def set_owner(self, path: str, owner: str) -> bool:
        return await self._call("PUT", path, "SETOWNER", parse_boolean, ("owner", owner))

    async def set_group(self, path: str, group: str) -> bool:
        return await self._call("PUT", path, "SETOWNER", parse_boolean, ("group", group))

    async def set_permissions(self, path: str, permission: str) -> bool:
        """设置权限，permission 为八进制字符串如 "644"。"""
        return await self._call("PUT", path, "SETPERMISSION", parse_boolean, ("permission", permission))

    async def set_replication_factor(self, path: str, factor: int) -> bool:
        return await self._call("PUT", path, "SETREPLICATION", parse_boolean, ("replication", int(factor)))

    # ------------------------- 文件读写 -------------------------

    async def _iter_chunks(
        self,
        fileobj: BinaryIO,
        total: int | None,
        on_progress: ProgressCallback | None,
    ) -> AsyncIterator[bytes]:
        sent = 0
        if on_progress:
            on_progress(0, total or 0)
        while True:
            # 读文件放到工作线程，不阻塞事件循环
            chunk = await to_thread.run_sync(fileobj.read, self.UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            sent += len(chunk)
            if on_progress:
                on_progress(sent, total if total is not None else sent)
            yield chunk

    async def _upload(
        self,
        fileobj: BinaryIO,
        dest_path: str,
        overwrite: bool | None,
        on_progress: ProgressCallback | None,
    ) -> bool:
        """
        两步上传：先不带 body 向 NameNode 提交 CREATE，服务端以 307 + Location 指向 DataNode，
        再把内容 PUT 到该地址。第一步直接返回 2xx 时（部分网关）到此结束。
        """
        response = await self._send("PUT", dest_path, "CREATE", ("overwrite", overwrite), follow_redirects=False)
        if response.is_redirect:
            location = response.headers["location"]
            size = _remaining_size(fileobj)
            headers = {"Content-Type": "application/octet-stream"}
            if size is not None:
                headers["Content-Length"] = str(size)
            logger.debug("CREATE %s -> PUT %s", dest_path, location)
            client = self._get_client()
            # 流式 body 不能重放，第二步同样不跟随重定向
            request = client.build_request(
                "PUT", location, content=self._iter_chunks(fileobj, size, on_progress), headers=headers
            )
            response = await client.send(request, follow_redirects=False)
        _raise_for_status(response, "CREATE")
        return True


    async def create_file(
        self,
        source: str | os.PathLike[str] | BinaryIO | bytes,
        dest_path: str,
        *,
        overwrite: bool | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> bool:
        """
        上传文件内容到 dest_path。body 按 UPLOAD_CHUNK_SIZE 分块流式发送，不整文件读入内存。

        :param source: 本地文件路径、已打开的二进制流或 bytes。
            传路径时由本方法打开并保证在任何退出路径（含取消、异常）关闭；
            传流时从当前位置读到末尾，不关闭，所有权仍属调用方
        :param dest_path: 远程目标路径
        :param overwrite: 目标已存在时是否覆盖；不传则由服务端按默认处理
        :param on_progress: 可选，每块发送后调用 on_progress(已发送字节, 总字节)
        :return: 服务端返回 2xx 时为 True
        """
        if isinstance(source, (bytes, bytearray)):
            return await self._upload(io.BytesIO(source), dest_path, overwrite, on_progress)
        if isinstance(source, (str, os.PathLike)):
            with open(source, "rb") as f:
                return await self._upload(f, dest_path, overwrite, on_progress)
        if hasattr(source, "read"):
            return await self._upload(source, dest_path, overwrite, on_progress)
        raise TypeError(f"unsupported source type: {type(source).__name__}")

    async def open_file(
        self,
        path: str,
        *,
        offset: int | None = None,
        length: int | None = None,
    ) -> RemoteFileStream:
        """
        打开远程文件读取，返回定位在内容起始处（或 offset 处）的流。

        调用方负责关闭返回的流：
            async with await client.open_file("/a.txt") as stream:
                async for chunk in stream.aiter_bytes(): ...

        :param offset: 可选起始字节偏移
        :param length: 可选读取字节数
        """
        response = await self._send("GET", path, "OPEN", ("offset", offset), ("length", length), stream=True)
        try:
            if not response.is_success:
                await response.aread()
                _raise_for_status(response, "OPEN")
        except BaseException:
            await response.aclose()
            raise
        return RemoteFileStream(response)
