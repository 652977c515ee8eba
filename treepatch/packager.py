"""Patch packaging: stage changed files, archive them and record deletions."""

from __future__ import annotations

import logging
import os
import shutil
import time
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .constants import (
    ARCHIVE_NAME,
    GAME_MANIFEST,
    LAUNCHPAD_MANIFEST,
    OLD_MANIFEST_SUFFIX,
    STAGING_DIR_NAME,
)
from .diff import changed_entries, deleted_entries
from .entry import Manifest, ManifestEntry
from .fingerprint import FingerprintService
from .ledger import DeletionLedger
from .manifest_store import ManifestStore
from .utils.pathing import join_within, relative_posix

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PatchResult:
    """一次打包运行的结果。"""

    changed: List[ManifestEntry] = field(default_factory=list)
    deleted: List[ManifestEntry] = field(default_factory=list)
    staged: List[Path] = field(default_factory=list)
    ledger_records: List[ManifestEntry] = field(default_factory=list)
    archive: Optional[Path] = None

    @property
    def has_changes(self) -> bool:
        return bool(self.staged)


def resolve_manifest_pair(parent_dir: Path) -> tuple[Path, Path] | None:
    """按约定查找 current/previous manifest 对。

    优先使用 ``GameManifest.txt``，缺任何一个时退回 ``LaunchpadManifest.txt``。
    """

    for name in (GAME_MANIFEST, LAUNCHPAD_MANIFEST):
        current = parent_dir / name
        previous = parent_dir / f"{name}{OLD_MANIFEST_SUFFIX}"
        if current.is_file() and previous.is_file():
            return current, previous
    return None


def _check_staging(source: Path, staging: Path) -> None:
    """暂存目录会被整体清空，不能与源目录相同或包含源目录。"""

    source_resolved = source.resolve()
    staging_resolved = staging.resolve()
    if staging_resolved == source_resolved or staging_resolved in source_resolved.parents:
        raise ValueError(f"staging directory {staging} would contain source {source}")


def _remove_staging(staging_dir: Path) -> None:
    """先删除文件，再递归删除子目录，最后删除空的暂存目录本身。"""

    with os.scandir(staging_dir) as entries:
        children = list(entries)
    for child in children:
        if not child.is_dir(follow_symlinks=False):
            Path(child.path).unlink()
    for child in children:
        if child.is_dir(follow_symlinks=False):
            shutil.rmtree(child.path)
    staging_dir.rmdir()


class PatchPackager:
    """比较两个 manifest，暂存新增/修改文件并维护删除账本。"""

    def __init__(
        self,
        store: ManifestStore,
        fingerprint: FingerprintService,
        logger: logging.Logger | None = None,
        *,
        dedupe_ledger: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.fingerprint = fingerprint
        self.logger = logger or LOGGER
        self.dedupe_ledger = dedupe_ledger
        self.clock = clock

    def generate_patch(
        self,
        current: Manifest | None,
        previous: Manifest | None,
        source_root: Path | str,
        staging_dir: Path | str,
        *,
        compress: bool = False,
    ) -> PatchResult | None:
        """生成补丁暂存目录、删除账本与可选的压缩包。

        Args:
            current: 新 manifest，``None`` 表示缺失或无法解析。
            previous: 旧 manifest，``None`` 表示缺失或无法解析。
            source_root: 新版本文件所在目录。
            staging_dir: 暂存目录，其父目录用于存放账本与压缩包。
            compress: 是否将暂存目录打包为 ``patch.zip``。

        Returns:
            :class:`PatchResult`；任一 manifest 缺失时返回 ``None`` 且不产生输出。

        Raises:
            OSError: 复制、删除或压缩失败时抛出，已完成的步骤不回滚。
        """

        if current is None or previous is None:
            self.logger.info("nothing to patch against: a manifest is missing or malformed")
            return None
        source = Path(source_root)
        staging = Path(staging_dir)
        parent = staging.parent
        result = PatchResult()

        _check_staging(source, staging)
        if staging.exists():
            # 上次运行中断留下的暂存目录
            shutil.rmtree(staging)
        result.changed = changed_entries(current, previous)
        for entry in result.changed:
            src = join_within(source, entry.relative_path)
            dst = join_within(staging, entry.relative_path)
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dst)
            result.staged.append(dst)
            self.logger.debug("staged %s", entry.relative_path)

        result.deleted = deleted_entries(current, previous)
        ledger = DeletionLedger(
            parent, self.store, self.fingerprint, self.logger, dedupe=self.dedupe_ledger
        )
        result.ledger_records = ledger.record(result.deleted, int(self.clock()))

        if compress and result.has_changes:
            result.archive = self._archive(staging, parent / ARCHIVE_NAME)
            _remove_staging(staging)

        self.logger.info(
            "patch: %d changed/added, %d deleted%s",
            len(result.changed),
            len(result.deleted),
            f", archive {result.archive}" if result.archive else "",
        )
        return result

    def _archive(self, staging: Path, archive_path: Path) -> Path:
        if archive_path.exists():
            archive_path.unlink()
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path in sorted(staging.rglob("*")):
                if path.is_file():
                    archive.write(path, arcname=relative_posix(path, staging))
        return archive_path

    def package_directory(self, target_dir: Path | str, *, compress: bool = False) -> PatchResult | None:
        """按目录约定定位 manifest 并生成补丁。

        Args:
            target_dir: 新版本内容目录，manifest 位于其父目录。
            compress: 是否生成压缩包。

        Returns:
            同 :meth:`generate_patch`。
        """

        target = Path(os.path.abspath(target_dir))
        parent = target.parent
        pair = resolve_manifest_pair(parent)
        if pair is None:
            self.logger.info("no manifest pair found in %s", parent)
            return None
        current_path, previous_path = pair
        current = self.store.load(current_path)
        previous = self.store.load(previous_path)
        return self.generate_patch(
            current, previous, target, parent / STAGING_DIR_NAME, compress=compress
        )
