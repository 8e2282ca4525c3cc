"""WebHDFS Python API 客户端 - https://hadoop.apache.org/docs/stable/hadoop-project-dist/hadoop-hdfs/WebHDFS.html"""

from webhdfs.client import ClientConfig, RemoteFileStream, WebHDFSClient
from webhdfs.errors import RemoteError, ResponseDecodeError, WebHDFSError
from webhdfs.models import ContentSummary, FileChecksum, FileStatus

__all__ = [
    "WebHDFSClient",
    "ClientConfig",
    "RemoteFileStream",
    "FileStatus",
    "ContentSummary",
    "FileChecksum",
    "WebHDFSError",
    "RemoteError",
    "ResponseDecodeError",
]
