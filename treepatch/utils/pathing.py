"""Path normalization utilities for treepatch."""

from __future__ import annotations

import posixpath  # posixpath 用于处理 manifest 中的斜杠路径
from pathlib import Path  # Path 提供跨平台路径操作


def normalize_path(base: Path | str, p: Path | str) -> Path:
    """将输入路径规范化并转换为绝对路径。"""
    base_path = Path(base).expanduser().resolve()  # 展开用户目录并转换为绝对路径
    candidate = Path(p).expanduser()  # 先展开用户目录以处理 ~
    if candidate.is_absolute():  # 如果用户提供绝对路径
        return candidate.resolve()  # 直接返回规范化后的绝对路径
    return (base_path / candidate).resolve()  # 对相对路径拼接后再解析


def normalize_relative(rel_path: str) -> str:
    """将 manifest 中的相对路径统一为斜杠分隔形式。

    Args:
        rel_path: 原始相对路径，可能包含反斜杠或前导分隔符。

    Returns:
        去除前导 ``/``、``./`` 后的 POSIX 风格路径，其余空白原样保留。

    Raises:
        ValueError: 路径为空或只含空白时抛出。
    """

    candidate = rel_path.replace("\\", "/")
    while candidate.startswith("./"):
        candidate = candidate[2:]
    candidate = candidate.lstrip("/")
    if not candidate.strip():
        raise ValueError("relative path cannot be empty")
    return candidate


def join_within(base: Path | str, rel_path: str) -> Path:
    """将相对路径拼接到基路径下，并拒绝越出基路径的结果。

    只做词法检查而不解析符号链接，这样删除操作作用于链接本身。

    Args:
        base: 基准目录。
        rel_path: manifest 中的相对路径。

    Returns:
        拼接后的路径。

    Raises:
        ValueError: 路径为绝对路径或包含越界的 ``..`` 时抛出。
    """

    normalized = posixpath.normpath(normalize_relative(rel_path))
    if normalized == "." or normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"Path {rel_path} escapes base {base}")
    return Path(base).joinpath(*normalized.split("/"))


def relative_posix(path: Path, root: Path) -> str:
    """返回 ``path`` 相对 ``root`` 的斜杠分隔路径。"""

    return path.relative_to(root).as_posix()
