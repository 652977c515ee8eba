"""Helpers to persist manifest snapshots on disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .entry import Content, Deleted, Manifest, ManifestEntry, ManifestFormatError

LOGGER = logging.getLogger(__name__)


def _format_entry(entry: ManifestEntry) -> str:
    """将条目序列化为 ``path:fingerprint:number`` 一行文本。"""

    number = entry.state.size if isinstance(entry.state, Content) else entry.state.epoch
    return f"{entry.relative_path}:{entry.fingerprint}:{number}"


def parse_line(line: str, *, deleted: bool = False) -> ManifestEntry:
    """解析单行 manifest 文本。

    路径中可能含有冒号，因此从右侧拆分；路径两端的空白属于路径本身。

    Args:
        line: 单行文本，不含换行符。
        deleted: 为 True 时第三列按删除时间戳解析。

    Returns:
        解析得到的条目。

    Raises:
        ManifestFormatError: 列数不对、指纹为空或数字非法时抛出。
    """

    parts = line.rstrip("\r\n").rsplit(":", 2)
    if len(parts) != 3:
        raise ManifestFormatError(f"expected path:fingerprint:number, got {line!r}")
    rel_path, fingerprint, number = parts
    if not fingerprint.strip() or not number.strip().isdigit():
        raise ManifestFormatError(f"malformed manifest line: {line!r}")
    try:
        state = Deleted(int(number)) if deleted else Content(int(number))
        return ManifestEntry(rel_path, fingerprint, state)
    except ValueError as exc:
        raise ManifestFormatError(f"malformed manifest line: {line!r}") from exc


class ManifestStore:
    """读写 manifest 文本文件。

    缺失或损坏的 manifest 统一以 ``None`` 表示，调用方据此跳过操作。
    """

    def __init__(self, logger: logging.Logger | None = None, *, encoding: str = "utf-8") -> None:
        self.logger = logger or LOGGER
        self.encoding = encoding

    def parse(self, text: str, *, deleted: bool = False) -> Manifest:
        entries = [parse_line(line, deleted=deleted) for line in text.splitlines() if line.strip()]
        return Manifest(entries)

    def format(self, entries: Iterable[ManifestEntry]) -> str:
        lines = [_format_entry(entry) for entry in entries]
        return "".join(f"{line}\n" for line in lines)

    def _load(self, path: Path | str, *, deleted: bool) -> Manifest | None:
        target = Path(path)
        if not target.is_file():
            self.logger.debug("manifest %s not found", target)
            return None
        try:
            return self.parse(target.read_text(encoding=self.encoding), deleted=deleted)
        except (ManifestFormatError, UnicodeDecodeError) as exc:
            self.logger.warning("ignoring malformed manifest %s: %s", target, exc)
            return None

    def load(self, path: Path | str) -> Manifest | None:
        """读取普通 manifest，如不存在或无法解析则返回 None。

        Args:
            path: manifest 文件路径。

        Returns:
            :class:`Manifest` 或 ``None``。
        """

        return self._load(path, deleted=False)

    def load_ledger(self, path: Path | str) -> Manifest | None:
        """读取删除账本，第三列解释为删除时间戳。

        同一路径可能在账本中出现多次，此时只保留最靠前（最新）的记录。
        """

        target = Path(path)
        if not target.is_file():
            self.logger.debug("ledger %s not found", target)
            return None
        entries: list[ManifestEntry] = []
        seen: set[str] = set()
        try:
            for line in target.read_text(encoding=self.encoding).splitlines():
                if not line.strip():
                    continue
                entry = parse_line(line, deleted=True)
                if entry.relative_path in seen:
                    continue
                seen.add(entry.relative_path)
                entries.append(entry)
        except (ManifestFormatError, UnicodeDecodeError) as exc:
            self.logger.warning("ignoring malformed ledger %s: %s", target, exc)
            return None
        return Manifest(entries)

    def save(self, manifest: Iterable[ManifestEntry], path: Path | str) -> Path:
        """将 manifest 写入磁盘并返回保存路径。"""

        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding=self.encoding, newline="\n") as handle:
            handle.write(self.format(manifest))
        return target
