"""
webhdfs CLI：连接信息保存一次到本地，之后所有命令复用；--base-url / --user 可临时覆盖。
"""

from __future__ import annotations

import asyncio
import getpass
import json
import logging
import sys
import time
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Awaitable, Optional, TypeVar
from urllib.parse import unquote, urlparse

import typer

from webhdfs import FileStatus, WebHDFSClient
from webhdfs.cli_config import clear_config, load_config, save_config
from webhdfs.client import PREFIX

T = TypeVar("T")


def _format_size(n: int) -> str:
    """将字节数格式化为人类可读（KiB/MiB/GiB）。"""
    if n < 1024:
        return f"{n} B"
    if n < 1024 * 1024:
        return f"{n / 1024:.1f} KiB"
    if n < 1024 * 1024 * 1024:
        return f"{n / (1024 * 1024):.1f} MiB"
    return f"{n / (1024 * 1024 * 1024):.1f} GiB"


def _format_time(ms: int) -> str:
    """毫秒时间戳 -> 本地时间字符串；0 表示未知。"""
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _make_progress_callback(filename: str) -> tuple[Any, Any]:
    """返回 (on_progress(sent, total) 回调, finish 回调)。进度条输出到 stderr。"""
    last_pct: list[int] = [-1]
    bar_width = 24

    def on_progress(sent: int, total_bytes: int) -> None:
        if total_bytes <= 0:
            return
        pct = min(100, int(100 * sent / total_bytes))
        if pct != last_pct[0] and (pct % 5 == 0 or pct == 100 or sent == total_bytes):
            last_pct[0] = pct
            filled = int(bar_width * pct / 100) if pct < 100 else bar_width
            arrow = 1 if filled < bar_width else 0
            bar = "=" * filled + ">" * arrow + " " * (bar_width - filled - arrow)
            sys.stderr.write(f"\r  {filename} [{bar}] {pct}% {_format_size(sent)}/{_format_size(total_bytes)}   ")
            sys.stderr.flush()

    def finish() -> None:
        sys.stderr.write("\n")
        sys.stderr.flush()

    return on_progress, finish


app = typer.Typer(
    name="webhdfs",
    help="WebHDFS CLI. Save base URL and user once; all commands reuse them.",
)

# 可选参数：覆盖或补充 base_url / user（未登录时 base_url 必填）
_base_url_option: type = Annotated[
    Optional[str],
    typer.Option("--base-url", "-b", help="Override saved base URL (required if not logged in)"),
]
_user_option: type = Annotated[
    Optional[str],
    typer.Option("--user", "-u", help="Override saved user name"),
]


@app.callback()
def _main_options(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log every request to stderr")] = False,
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _parse_path_or_url(path_or_url: str) -> tuple[str, str | None]:
    """
    解析「远程路径」或「完整链接」，兼容直接粘贴 http://host:9870/webhdfs/v1/user/x 这类地址。
    返回 (path, base_url_override)。
    - 完整 URL：path 为 webhdfs/v1 之后的部分（总以 / 开头），base_url 为其之前的部分（以 / 结尾）
    - 否则视为路径，补齐前导 /，base_url 为 None
    """
    raw = (path_or_url or "").strip()
    if not raw:
        return "/", None
    parsed = urlparse(raw)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        url_path = unquote(parsed.path or "/")
        marker = "/" + PREFIX
        idx = url_path.find(marker)
        if idx >= 0:
            base_path = url_path[:idx]
            url_path = url_path[idx + len(marker):]
        else:
            base_path = ""
        base = f"{parsed.scheme}://{parsed.netloc}{base_path}/"
        return "/" + url_path.lstrip("/"), base
    return "/" + raw.lstrip("/"), None


def _get_client(base_url: str | None, user: str | None = None) -> WebHDFSClient | None:
    cfg = load_config()
    url = base_url or (cfg and cfg.get("base_url"))
    if not url:
        return None
    user_name = user or (cfg.get("user_name") if cfg else None) or getpass.getuser()
    return WebHDFSClient(url.rstrip("/") + "/", user_name, timeout=30.0)


def _require_client(base_url: str | None, user: str | None = None) -> WebHDFSClient:
    client = _get_client(base_url, user)
    if client is None:
        typer.echo("error: no saved base URL. run 'webhdfs login' or pass --base-url", err=True)
        raise typer.Exit(1)
    return client


def _run(client: WebHDFSClient, call: Awaitable[T]) -> T:
    """在事件循环中执行一次调用，结束后关闭 client；任何异常转为 error 输出并退出 1。"""

    async def _go() -> T:
        try:
            return await call
        finally:
            await client.aclose()

    try:
        return asyncio.run(_go())
    except Exception as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)


def _check(ok: bool, what: str) -> None:
    if not ok:
        typer.echo(f"error: {what} returned false", err=True)
        raise typer.Exit(1)


def _echo_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2))


def _format_entry(st: FileStatus) -> str:
    kind = "d" if st.is_dir else "-"
    return (
        f"{kind}{st.permission:>4}  {st.owner:<10} {st.group:<10} {_format_size(st.length):>10}  "
        f"{_format_time(st.modification_time)}  {st.path_suffix}"
    )


# ------------------------- login / logout / auth -------------------------


@app.command("login", help="Save base URL and user name to local config")
def login(
    base_url: Annotated[Optional[str], typer.Option("--base-url", "-b", help="WebHDFS base URL")] = None,
    user: Annotated[Optional[str], typer.Option("--user", "-u", help="User name sent as user.name")] = None,
) -> None:
    base_url = base_url or input("Base URL (e.g. http://namenode:9870/): ").strip()
    if not base_url:
        typer.echo("error: base URL required", err=True)
        raise typer.Exit(1)
    user = user or input(f"User name [{getpass.getuser()}]: ").strip() or getpass.getuser()
    save_config(base_url, user)
    typer.echo("Saved.")


@app.command("logout", help="Clear saved config")
def logout() -> None:
    if clear_config():
        typer.echo("Cleared.")
    else:
        typer.echo("No saved config.")


auth_app = typer.Typer(help="Auth subcommands")
app.add_typer(auth_app, name="auth")


@auth_app.command("status", help="Show whether a base URL and user are saved")
def auth_status() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not logged in.")
        return
    typer.echo(f"base_url: {cfg.get('base_url', '')}")
    typer.echo(f"user: {cfg.get('user_name') or '-'}")


@app.command("info", help="Show saved base_url and user")
def info_cmd() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not logged in. Run 'webhdfs login' or pass --base-url for commands.")
        return
    typer.echo(f"base_url: {cfg.get('base_url')}")
    typer.echo(f"user: {cfg.get('user_name') or '-'}")


# ------------------------- 查询 -------------------------


@app.command("home", help="Print the user's home directory")
def home_cmd(base_url: _base_url_option = None, user: _user_option = None) -> None:
    client = _require_client(base_url, user)
    typer.echo(_run(client, client.get_home_directory()))


def _cmd_list_impl(path: str, base_url: str | None, user: str | None) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    entries = _run(client, client.get_directory_status(path))
    for st in entries:
        typer.echo(f"  {_format_entry(st)}")


@app.command("list", help="List a directory")
def list_cmd(
    path: Annotated[str, typer.Argument(help="Remote directory or full URL (default: /)")] = "/",
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    _cmd_list_impl(path, base_url, user)


@app.command("ls", help="Alias for list")
def ls_cmd(
    path: Annotated[str, typer.Argument(help="Remote directory or full URL (default: /)")] = "/",
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    _cmd_list_impl(path, base_url, user)


@app.command("stat", help="Show file status (JSON)")
def stat_cmd(
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    st = _run(client, client.get_file_status(path))
    if st is None:
        typer.echo(f"error: not found: {path}", err=True)
        raise typer.Exit(1)
    _echo_json(asdict(st))


@app.command("du", help="Show content summary (JSON)")
def du_cmd(
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    summary = _run(client, client.get_content_summary(path))
    if summary is None:
        typer.echo(f"error: not found: {path}", err=True)
        raise typer.Exit(1)
    _echo_json(asdict(summary))


@app.command("checksum", help="Show file checksum (JSON)")
def checksum_cmd(
    path: Annotated[str, typer.Argument(help="Remote file or full URL")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    checksum = _run(client, client.get_file_checksum(path))
    if checksum is None:
        typer.echo(f"error: not found: {path}", err=True)
        raise typer.Exit(1)
    _echo_json(asdict(checksum))


# ------------------------- 目录 -------------------------


@app.command("mkdir", help="Create a directory and missing parents")
def mkdir_cmd(
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    permission: Annotated[Optional[str], typer.Option("--permission", "-m", help="Octal permission, e.g. 755")] = None,
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, client.create_directory(path, permission=permission)), "MKDIRS")
    typer.echo("Created.")


def _cmd_delete_impl(path: str, recursive: bool, base_url: str | None, user: str | None) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, client.delete_directory(path, recursive=recursive or None)), "DELETE")
    typer.echo("Deleted.")


@app.command("delete", help="Delete a file or directory")
def delete_cmd(
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="Delete non-empty directories")] = False,
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    _cmd_delete_impl(path, recursive, base_url, user)


@app.command("rm", help="Alias for delete")
def rm_cmd(
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="Delete non-empty directories")] = False,
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    _cmd_delete_impl(path, recursive, base_url, user)


@app.command("mv", help="Rename or move a file or directory")
def mv_cmd(
    src: Annotated[str, typer.Argument(help="Remote source path or full URL")],
    dst: Annotated[str, typer.Argument(help="Remote destination path")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    src, url_override = _parse_path_or_url(src)
    dst, _ = _parse_path_or_url(dst)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, client.rename_directory(src, dst)), "RENAME")
    typer.echo("Renamed.")


# ------------------------- upload / download -------------------------


@app.command("upload", help="Upload a local file")
def upload_cmd(
    local: Annotated[Path, typer.Argument(help="Local file path")],
    remote: Annotated[str, typer.Argument(help="Remote destination path or full URL")],
    overwrite: Annotated[bool, typer.Option("--overwrite", help="Overwrite an existing remote file")] = False,
    progress: Annotated[bool, typer.Option("--progress", "-p", help="Show upload progress")] = False,
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    if not local.is_file():
        typer.echo(f"error: not a file: {local}", err=True)
        raise typer.Exit(1)
    remote, url_override = _parse_path_or_url(remote)
    client = _require_client(url_override or base_url, user)
    on_progress, progress_finish = _make_progress_callback(local.name) if progress else (None, lambda: None)
    try:
        _run(
            client,
            client.create_file(local, remote, overwrite=overwrite or None, on_progress=on_progress),
        )
    finally:
        progress_finish()
    typer.echo("Uploaded.")


async def _download_to(client: WebHDFSClient, remote: str, out: Path) -> int:
    """流式下载 remote 到本地 out，返回写入字节数。"""
    written = 0
    async with await client.open_file(remote) as stream:
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("wb") as f:
            async for chunk in stream.aiter_bytes():
                f.write(chunk)
                written += len(chunk)
    return written


@app.command("download", help="Download a file")
def download_cmd(
    remote: Annotated[str, typer.Argument(help="Remote path or full URL")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Local path (default: same name)")] = None,
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    remote, url_override = _parse_path_or_url(remote)
    client = _require_client(url_override or base_url, user)
    out = output if output is not None else Path(Path(remote).name or "download")
    n = _run(client, _download_to(client, remote, out))
    typer.echo(f"Saved {_format_size(n)} to {out}.")


# ------------------------- 元数据 -------------------------


@app.command("chmod", help="Set permission (octal, e.g. 755)")
def chmod_cmd(
    permission: Annotated[str, typer.Argument(help="Octal permission")],
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, client.set_permissions(path, permission)), "SETPERMISSION")
    typer.echo("OK.")


@app.command("chown", help="Set owner")
def chown_cmd(
    owner: Annotated[str, typer.Argument(help="New owner")],
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, client.set_owner(path, owner)), "SETOWNER")
    typer.echo("OK.")


@app.command("chgrp", help="Set group")
def chgrp_cmd(
    group: Annotated[str, typer.Argument(help="New group")],
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, client.set_group(path, group)), "SETOWNER")
    typer.echo("OK.")


@app.command("setrep", help="Set replication factor")
def setrep_cmd(
    factor: Annotated[int, typer.Argument(help="Replication factor", min=1)],
    path: Annotated[str, typer.Argument(help="Remote file or full URL")],
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, client.set_replication_factor(path, factor)), "SETREPLICATION")
    typer.echo("OK.")


async def _touch(client: WebHDFSClient, path: str, atime: int | None, mtime: int | None) -> bool:
    ok = True
    if atime is not None:
        ok = await client.set_access_time(path, atime) and ok
    if mtime is not None:
        ok = await client.set_modification_time(path, mtime) and ok
    return ok


@app.command("touch", help="Set access/modification time (ms since epoch; default: now for both)")
def touch_cmd(
    path: Annotated[str, typer.Argument(help="Remote path or full URL")],
    atime: Annotated[Optional[int], typer.Option("--atime", help="Access time in ms")] = None,
    mtime: Annotated[Optional[int], typer.Option("--mtime", help="Modification time in ms")] = None,
    base_url: _base_url_option = None,
    user: _user_option = None,
) -> None:
    if atime is None and mtime is None:
        atime = mtime = int(time.time() * 1000)
    path, url_override = _parse_path_or_url(path)
    client = _require_client(url_override or base_url, user)
    _check(_run(client, _touch(client, path, atime, mtime)), "SETTIMES")
    typer.echo("OK.")


# ------------------------- main -------------------------


def main() -> None:
    app()


if __name__ == "__main__":
    main()
