"""
WebHDFS 响应数据模型（与 Hadoop WebHDFS REST API 的 JSON 字段一致）。

- FileStatus：GETFILESTATUS / LISTSTATUS 中的单个条目
- ContentSummary：GETCONTENTSUMMARY
- FileChecksum：GETFILECHECKSUM
JSON 使用驼峰字段名（accessTime、pathSuffix…），这里转为下划线属性；缺失字段取 0 或空串。
单对象响应可能带外层包装（{"FileStatus": {...}}），也可能是裸对象，两种都接受。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# FileStatus.type 的取值
TYPE_FILE = "FILE"
TYPE_DIRECTORY = "DIRECTORY"
TYPE_SYMLINK = "SYMLINK"


def _int(data: dict[str, Any], key: str) -> int:
    return int(data.get(key) or 0)


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _unwrap(data: Any, key: str) -> dict[str, Any]:
    """去掉 {"<key>": {...}} 外层；非 dict 时抛 TypeError，交给 client 转为 ResponseDecodeError。"""
    if not isinstance(data, dict):
        raise TypeError(f"expected a JSON object, got {type(data).__name__}")
    inner = data.get(key, data)
    if not isinstance(inner, dict):
        raise TypeError(f"expected {key} to be a JSON object")
    return inner


@dataclass(frozen=True)
class FileStatus:
    """文件或目录的元数据。时间为毫秒时间戳，permission 为八进制字符串如 "755"。"""

    access_time: int = 0
    block_size: int = 0
    children_num: int = 0
    file_id: int = 0
    group: str = ""
    length: int = 0
    modification_time: int = 0
    owner: str = ""
    path_suffix: str = ""
    permission: str = ""
    replication: int = 0
    type: str = ""

    @property
    def is_dir(self) -> bool:
        return self.type == TYPE_DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.type == TYPE_FILE

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> FileStatus:
        return cls(
            access_time=_int(data, "accessTime"),
            block_size=_int(data, "blockSize"),
            children_num=_int(data, "childrenNum"),
            file_id=_int(data, "fileId"),
            group=_str(data, "group"),
            length=_int(data, "length"),
            modification_time=_int(data, "modificationTime"),
            owner=_str(data, "owner"),
            path_suffix=_str(data, "pathSuffix"),
            permission=_str(data, "permission"),
            replication=_int(data, "replication"),
            type=_str(data, "type"),
        )


@dataclass(frozen=True)
class ContentSummary:
    """目录汇总：目录数、文件数、总字节数与配额。quota/space_quota 为 -1 表示未设置。"""

    directory_count: int = 0
    file_count: int = 0
    length: int = 0
    quota: int = 0
    space_consumed: int = 0
    space_quota: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ContentSummary:
        return cls(
            directory_count=_int(data, "directoryCount"),
            file_count=_int(data, "fileCount"),
            length=_int(data, "length"),
            quota=_int(data, "quota"),
            space_consumed=_int(data, "spaceConsumed"),
            space_quota=_int(data, "spaceQuota"),
        )


@dataclass(frozen=True)
class FileChecksum:
    """文件校验和。bytes 为服务端返回的十六进制字符串。"""

    algorithm: str = ""
    bytes: str = ""
    length: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> FileChecksum:
        return cls(
            algorithm=_str(data, "algorithm"),
            bytes=_str(data, "bytes"),
            length=_int(data, "length"),
        )


# ------------------------- 响应结构解析 -------------------------


def parse_file_status(data: Any) -> FileStatus:
    """GETFILESTATUS：{"FileStatus": {...}}。"""
    return FileStatus.from_json(_unwrap(data, "FileStatus"))


def parse_file_statuses(data: Any) -> list[FileStatus]:
    """LISTSTATUS：{"FileStatuses": {"FileStatus": [...]}}，保持服务端顺序。"""
    entries = data["FileStatuses"]["FileStatus"]
    if not isinstance(entries, list):
        raise TypeError("FileStatuses.FileStatus must be a JSON array")
    return [FileStatus.from_json(e) for e in entries]


def parse_content_summary(data: Any) -> ContentSummary:
    """GETCONTENTSUMMARY：{"ContentSummary": {...}}。"""
    return ContentSummary.from_json(_unwrap(data, "ContentSummary"))


def parse_file_checksum(data: Any) -> FileChecksum:
    """GETFILECHECKSUM：{"FileChecksum": {...}}。"""
    return FileChecksum.from_json(_unwrap(data, "FileChecksum"))


def parse_boolean(data: Any) -> bool:
    """修改类操作：{"boolean": true}。"""
    value = data["boolean"]
    if not isinstance(value, bool):
        raise TypeError("boolean must be true or false")
    return value


def parse_path(data: Any) -> str:
    """GETHOMEDIRECTORY：{"Path": "/user/hdfs"}。"""
    value = data["Path"]
    if not isinstance(value, str):
        raise TypeError("Path must be a string")
    return value
