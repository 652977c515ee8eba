"""Application context wiring treepatch collaborators together."""

from __future__ import annotations

import logging  # logging 提供日志对象
from typing import Optional

from .config import TreePatchConfig
from .fingerprint import FingerprintService
from .manifest_store import ManifestStore
from .packager import PatchPackager
from .reconciler import TreeReconciler


class AppContext:
    """封装一次运行共享的配置、日志与服务实例。"""

    def __init__(self, cfg: TreePatchConfig, logger: Optional[logging.Logger] = None) -> None:
        # 保存配置与日志实例
        self.cfg = cfg
        self.logger = logger or logging.getLogger("treepatch")
        self.fingerprint = FingerprintService(cfg.fingerprint.algorithm)
        self.store = ManifestStore(self.logger.getChild("store"))

    def packager(self) -> PatchPackager:
        """按配置构造补丁打包器。"""

        return PatchPackager(
            self.store,
            self.fingerprint,
            self.logger.getChild("packager"),
            dedupe_ledger=self.cfg.packaging.dedupe_ledger,
        )

    def reconciler(self) -> TreeReconciler:
        """按配置构造目录整理器。"""

        return TreeReconciler(
            self.fingerprint,
            self.logger.getChild("reconciler"),
            store=self.store,
            verify_ledger=self.cfg.reconcile.verify_ledger,
        )
