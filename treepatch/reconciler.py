"""Delete files a manifest does not account for and prune emptied folders."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .constants import DELETED_MANIFEST, GAME_MANIFEST
from .entry import Manifest
from .fingerprint import FingerprintService
from .indexer import describe_file, iter_files
from .ledger import DeletionLedger
from .manifest_store import ManifestStore
from .utils.pathing import join_within

LOGGER = logging.getLogger(__name__)


class ReconciliationMode(enum.Enum):
    """删除策略。"""

    DISABLED = "disabled"
    LEDGER_ONLY = "ledger"
    FULL_SCAN = "full"

    @classmethod
    def parse(cls, value: "str | int | ReconciliationMode") -> "ReconciliationMode":
        """解析配置值，兼容旧版的 0/1/2 数字写法。"""

        if isinstance(value, cls):
            return value
        legacy = {0: cls.DISABLED, 1: cls.LEDGER_ONLY, 2: cls.FULL_SCAN}
        if isinstance(value, int) and not isinstance(value, bool):
            if value in legacy:
                return legacy[value]
            raise ValueError(f"unknown reconciliation mode: {value}")
        text = str(value).strip().lower()
        if text.isdigit() and int(text) in legacy:
            return legacy[int(text)]
        try:
            return cls(text)
        except ValueError as exc:
            raise ValueError(f"unknown reconciliation mode: {value}") from exc


@dataclass(slots=True)
class ReconcileResult:
    """一次整理运行删除的文件与目录。"""

    deleted_files: List[Path] = field(default_factory=list)
    removed_dirs: List[Path] = field(default_factory=list)


def _is_empty_dir(path: Path) -> bool:
    with os.scandir(path) as entries:
        return next(entries, None) is None


class TreeReconciler:
    """让目录内容与 manifest 保持一致。

    必须在后续下载步骤之前完整运行，这样被删除又被重新下发的文件最终存在。
    """

    def __init__(
        self,
        fingerprint: FingerprintService,
        logger: logging.Logger | None = None,
        *,
        store: ManifestStore | None = None,
        verify_ledger: bool = True,
    ) -> None:
        self.fingerprint = fingerprint
        self.logger = logger or LOGGER
        self.store = store or ManifestStore(self.logger)
        self.verify_ledger = verify_ledger

    def reconcile(
        self,
        mode: ReconciliationMode,
        manifest: Manifest | None,
        root: Path | str,
    ) -> ReconcileResult:
        """按模式删除多余文件并清理空目录。

        Args:
            mode: 删除策略。
            manifest: ``LEDGER_ONLY`` 时为删除账本，``FULL_SCAN`` 时为权威 manifest。
            root: 被整理的目录，自身永远不会被删除。

        Returns:
            :class:`ReconcileResult`。

        Raises:
            OSError: 读取或删除失败时抛出，剩余扫描中止，已删除的文件不恢复。
        """

        result = ReconcileResult()
        mode = ReconciliationMode.parse(mode)
        if mode is ReconciliationMode.DISABLED or manifest is None:
            return result
        base = Path(os.path.abspath(root))
        if not base.is_dir():
            self.logger.warning("reconcile root %s does not exist", base)
            return result
        self.logger.info("reconciling %s using mode %s", base, mode.value)
        if mode is ReconciliationMode.LEDGER_ONLY:
            self._apply_ledger(manifest, base, result)
        else:
            self._full_scan(manifest, base, result)
        self.logger.info(
            "reconcile: %d file(s) deleted, %d folder(s) removed",
            len(result.deleted_files),
            len(result.removed_dirs),
        )
        return result

    def _apply_ledger(self, ledger: Manifest, root: Path, result: ReconcileResult) -> None:
        for entry in ledger:
            try:
                target = join_within(root, entry.relative_path)
            except ValueError:
                self.logger.warning("skipping ledger path outside %s: %s", root, entry.relative_path)
                continue
            if target.is_file() or target.is_symlink():
                self._delete(target, root, result)

    def _full_scan(self, manifest: Manifest, root: Path, result: ReconcileResult) -> None:
        # 先取得完整文件列表，删除过程不影响待检查集合
        for path in list(iter_files(root)):
            record = describe_file(path, root, self.fingerprint)
            if record not in manifest:
                self._delete(path, root, result)

    def _delete(self, path: Path, root: Path, result: ReconcileResult) -> None:
        path.unlink()
        result.deleted_files.append(path)
        self.logger.debug("deleted %s", path)
        result.removed_dirs.extend(self.prune_empty_parents(path.parent, root))

    def prune_empty_parents(self, start: Path, root: Path) -> list[Path]:
        """自下而上删除空目录，直到遇到非空目录或根目录。

        每一层都重新列出目录内容，不复用删除前的计数。
        """

        removed: list[Path] = []
        current = start
        while current != root and root in current.parents:
            if not _is_empty_dir(current):
                break
            current.rmdir()
            removed.append(current)
            self.logger.debug("removed empty folder %s", current)
            current = current.parent
        return removed

    def load_for_mode(self, mode: ReconciliationMode, parent_dir: Path) -> Manifest | None:
        """按约定读取模式对应的 manifest 或删除账本。"""

        if mode is ReconciliationMode.LEDGER_ONLY:
            ledger = DeletionLedger(parent_dir, self.store, self.fingerprint, self.logger)
            if not ledger.path.is_file():
                return None
            if self.verify_ledger and not ledger.verify():
                self.logger.warning("ledger %s does not match its checksum, skipping", ledger.path)
                return None
            return self.store.load_ledger(parent_dir / DELETED_MANIFEST)
        if mode is ReconciliationMode.FULL_SCAN:
            return self.store.load(parent_dir / GAME_MANIFEST)
        return None

    def reconcile_directory(self, mode: ReconciliationMode, target_dir: Path | str) -> ReconcileResult:
        """按目录约定加载 manifest 后执行 :meth:`reconcile`。"""

        mode = ReconciliationMode.parse(mode)
        target = Path(os.path.abspath(target_dir))
        manifest = self.load_for_mode(mode, target.parent)
        return self.reconcile(mode, manifest, target)
