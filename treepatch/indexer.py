"""Manifest builder for treepatch targets."""

from __future__ import annotations

import logging  # logging 用于输出进度信息
import os  # os.walk 用于遍历目录
from pathlib import Path  # Path 提供跨平台路径操作
from typing import Iterator

from .constants import (
    GAME_CHECKSUM,
    GAME_MANIFEST,
    LAUNCHPAD_CHECKSUM,
    LAUNCHPAD_MANIFEST,
    OLD_MANIFEST_SUFFIX,
)
from .entry import Content, Manifest, ManifestEntry
from .fingerprint import FingerprintService
from .manifest_store import ManifestStore
from .utils.pathing import relative_posix

LOGGER = logging.getLogger(__name__)


def _raise(exc: OSError) -> None:
    raise exc

MANIFEST_KINDS = {
    "game": (GAME_MANIFEST, GAME_CHECKSUM),
    "launchpad": (LAUNCHPAD_MANIFEST, LAUNCHPAD_CHECKSUM),
}


def iter_files(root: Path) -> Iterator[Path]:
    """按确定顺序列出 root 下的全部普通文件。"""

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        filenames.sort()
        for filename in filenames:
            full_path = Path(dirpath) / filename
            if full_path.is_file():
                yield full_path


def describe_file(path: Path, root: Path, fingerprint: FingerprintService) -> ManifestEntry:
    """读取单个文件的相对路径、摘要与大小。"""

    digest, size = fingerprint.describe(path)
    return ManifestEntry(relative_posix(path, root), digest, Content(size))


def build_manifest(root: Path | str, fingerprint: FingerprintService) -> Manifest:
    """扫描目录并生成 manifest。

    Args:
        root: 目标目录。
        fingerprint: 计算文件摘要的服务。

    Returns:
        以相对路径排序的 :class:`Manifest`。

    Raises:
        FileNotFoundError: 目录不存在时抛出。
    """

    base = Path(root)
    if not base.is_dir():
        raise FileNotFoundError(f"target directory {base} not found")
    entries = sorted(
        (describe_file(path, base, fingerprint) for path in iter_files(base)),
        key=lambda entry: entry.relative_path,
    )
    LOGGER.info("manifest for %s: %d entries", base, len(entries))
    return Manifest(entries)


def generate_manifest_file(
    target_dir: Path | str,
    store: ManifestStore,
    fingerprint: FingerprintService,
    kind: str = "game",
) -> Path:
    """为目标目录生成 manifest 文件，写在目标目录的父目录中。

    已存在的 manifest 会先改名为 ``*.txt.old``，供下一次打包补丁作为旧快照。

    Args:
        target_dir: 被描述的目录。
        store: manifest 读写器。
        fingerprint: 摘要服务。
        kind: ``game`` 或 ``launchpad``。

    Returns:
        新 manifest 的路径。
    """

    if kind not in MANIFEST_KINDS:
        raise ValueError(f"unknown manifest kind: {kind}")
    manifest_name, checksum_name = MANIFEST_KINDS[kind]
    target = Path(os.path.abspath(target_dir))
    parent = target.parent
    manifest = build_manifest(target, fingerprint)
    manifest_path = parent / manifest_name
    if manifest_path.exists():
        os.replace(manifest_path, parent / f"{manifest_name}{OLD_MANIFEST_SUFFIX}")
    store.save(manifest, manifest_path)
    (parent / checksum_name).write_text(fingerprint.digest_file(manifest_path), encoding="utf-8")
    return manifest_path
