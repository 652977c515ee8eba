"""Manifest comparison helpers."""

from __future__ import annotations

from typing import Any

from .entry import Manifest, ManifestEntry


def changed_entries(current: Manifest, previous: Manifest) -> list[ManifestEntry]:
    """返回 current 中在 previous 里没有完整匹配记录的条目。

    路径相同但指纹或大小不同的条目同样视为变更。

    Args:
        current: 新快照。
        previous: 旧快照。

    Returns:
        按 current 加载顺序排列的新增/修改条目。
    """

    return [entry for entry in current if entry not in previous]


def deleted_entries(current: Manifest, previous: Manifest) -> list[ManifestEntry]:
    """返回 previous 中路径在 current 里完全不存在的条目。

    只比较路径是否存在，不比较内容。
    """

    return [entry for entry in previous if not current.has_path(entry.relative_path)]


def compare_manifests(current: Manifest, previous: Manifest) -> dict[str, Any]:
    """比较两个 manifest 并返回差异摘要。

    Args:
        current: 新快照。
        previous: 旧快照。

    Returns:
        包含 added/modified/deleted 列表与 summary 统计的字典。
    """

    added_paths: list[str] = []
    modified_paths: list[str] = []
    for entry in changed_entries(current, previous):
        if previous.has_path(entry.relative_path):
            modified_paths.append(entry.relative_path)
        else:
            added_paths.append(entry.relative_path)
    deleted_paths = [entry.relative_path for entry in deleted_entries(current, previous)]
    summary = {
        "added": len(added_paths),
        "modified": len(modified_paths),
        "deleted": len(deleted_paths),
        "delta": len(added_paths) + len(modified_paths) + len(deleted_paths),
    }
    return {
        "added": sorted(added_paths),
        "modified": sorted(modified_paths),
        "deleted": sorted(deleted_paths),
        "summary": summary,
    }
