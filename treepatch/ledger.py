"""Persistent ledger of files removed between manifest snapshots."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .constants import DELETED_CHECKSUM, DELETED_MANIFEST
from .entry import ManifestEntry, ManifestFormatError
from .fingerprint import FingerprintService
from .manifest_store import ManifestStore, parse_line

LOGGER = logging.getLogger(__name__)


class DeletionLedger:
    """``DeletedManifest.txt`` 及其校验文件。

    新记录总是写在已有内容之前，已有行原样保留。
    """

    def __init__(
        self,
        parent_dir: Path | str,
        store: ManifestStore,
        fingerprint: FingerprintService,
        logger: logging.Logger | None = None,
        *,
        dedupe: bool = False,
    ) -> None:
        self.parent_dir = Path(parent_dir)
        self.store = store
        self.fingerprint = fingerprint
        self.logger = logger or LOGGER
        self.dedupe = dedupe

    @property
    def path(self) -> Path:
        return self.parent_dir / DELETED_MANIFEST

    @property
    def checksum_path(self) -> Path:
        return self.parent_dir / DELETED_CHECKSUM

    def _existing_lines(self) -> list[str]:
        if not self.path.is_file():
            return []
        text = self.path.read_text(encoding=self.store.encoding)
        return [line for line in text.splitlines() if line.strip()]

    def _drop_superseded(self, new_lines: list[str], old_lines: list[str]) -> list[str]:
        """去重：每个路径只保留最靠前的一行，无法解析的旧行原样保留。"""

        kept: list[str] = []
        seen: set[str] = set()
        for line in new_lines + old_lines:
            try:
                rel_path = parse_line(line, deleted=True).relative_path
            except ManifestFormatError:
                kept.append(line)
                continue
            if rel_path in seen:
                continue
            seen.add(rel_path)
            kept.append(line)
        return kept

    def record(self, removed: Iterable[ManifestEntry], epoch: int) -> list[ManifestEntry]:
        """将本次删除的条目写入账本。

        Args:
            removed: previous manifest 中已消失的条目。
            epoch: 本次运行的 Unix 时间戳。

        Returns:
            新写入的删除记录；为空时账本与校验文件均不改动。
        """

        records = [entry.mark_deleted(epoch) for entry in removed]
        if not records:
            return []
        new_lines = self.store.format(records).splitlines()
        old_lines = self._existing_lines()
        if self.dedupe:
            lines = self._drop_superseded(new_lines, old_lines)
        else:
            lines = new_lines + old_lines
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding=self.store.encoding, newline="\n") as handle:
            handle.write("".join(f"{line}\n" for line in lines))
        self.write_checksum()
        self.logger.info(
            "ledger %s: %d new record(s), %d total line(s)",
            self.path,
            len(records),
            len(lines),
        )
        return records

    def compute_checksum(self) -> str:
        return self.fingerprint.digest_file(self.path)

    def write_checksum(self) -> str:
        digest = self.compute_checksum()
        self.checksum_path.write_text(digest, encoding="utf-8")
        return digest

    def verify(self) -> bool:
        """校验账本内容与校验文件是否一致，缺少校验文件时视为通过。"""

        if not self.checksum_path.is_file():
            return True
        if not self.path.is_file():
            return False
        expected = self.checksum_path.read_text(encoding="utf-8").strip().lower()
        return expected == self.compute_checksum()
