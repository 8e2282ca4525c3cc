"""
WebHDFS 客户端异常。

- RemoteError：服务端返回非 2xx（状态查询类操作的 404/204 除外，见 client）
- ResponseDecodeError：状态码成功但响应体不是约定的 JSON 结构
传输层错误（httpx.HTTPError）与取消（asyncio.CancelledError）原样向上抛出，不在此包装。
"""

from __future__ import annotations

import json
from typing import Any


class WebHDFSError(Exception):
    """客户端自身抛出的所有异常的基类。"""


class RemoteError(WebHDFSError):
    """
    服务端返回了非成功状态码。

    :ivar status_code: HTTP 状态码
    :ivar body: 原始响应体文本
    :ivar operation: 请求的 op，如 "MKDIRS"
    :ivar exception: RemoteException 中的异常名（如 FileNotFoundException），无则为 None
    :ivar remote_message: RemoteException 中的 message，无则为 None
    """

    def __init__(self, status_code: int, body: str, operation: str | None = None):
        self.status_code = status_code
        self.body = body
        self.operation = operation
        self.exception, self.remote_message = _parse_remote_exception(body)
        detail = self.remote_message or body.strip() or "<empty body>"
        prefix = f"{operation} " if operation else ""
        super().__init__(f"{prefix}failed with HTTP {status_code}: {detail}")


class ResponseDecodeError(WebHDFSError):
    """成功响应的 body 无法解析为预期结构。"""

    def __init__(self, message: str, body: str = "", operation: str | None = None):
        self.body = body
        self.operation = operation
        super().__init__(f"{operation}: {message}" if operation else message)


def _parse_remote_exception(body: str) -> tuple[str | None, str | None]:
    """从 {"RemoteException": {...}} 中取出 (exception, message)；不是该结构则返回 (None, None)。"""
    try:
        data: Any = json.loads(body)
    except ValueError:
        return None, None
    if not isinstance(data, dict):
        return None, None
    remote = data.get("RemoteException")
    if not isinstance(remote, dict):
        return None, None
    return remote.get("exception"), remote.get("message")
