"""Content fingerprinting used for manifests and ledger checksums."""

from __future__ import annotations

import hashlib  # hashlib 提供 md5/sha256 实现
from pathlib import Path  # Path 用于处理文件系统路径
from typing import Any, BinaryIO, Iterator  # 类型提示

import xxhash  # xxhash 提供快速的非加密哈希

# 读取文件时使用的块大小，4 MiB 在大文件上性能较好
_READ_CHUNK_SIZE = 4 * 1024 * 1024

ALGORITHMS = ("md5", "sha256", "xxh64")


def _new_hasher(algorithm: str) -> Any:
    """创建新的哈希上下文。"""

    if algorithm == "md5":
        return hashlib.md5()
    if algorithm == "sha256":
        return hashlib.sha256()
    if algorithm == "xxh64":
        return xxhash.xxh64()
    raise ValueError(f"unknown fingerprint algorithm: {algorithm}")


def _iter_chunks(handle: BinaryIO) -> Iterator[bytes]:
    """生成器：按块读取流直到结束。"""

    while True:
        chunk = handle.read(_READ_CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


class FingerprintService:
    """为字节流生成固定长度的十六进制摘要。

    manifest 比较与账本校验文件共用同一个实例，保证两者算法一致。
    """

    def __init__(self, algorithm: str = "md5") -> None:
        algorithm = algorithm.lower()
        _new_hasher(algorithm)  # 提前校验算法名称
        self.algorithm = algorithm

    def __repr__(self) -> str:
        return f"FingerprintService({self.algorithm!r})"

    @property
    def digest_size(self) -> int:
        """十六进制摘要的字符数。"""

        return _new_hasher(self.algorithm).digest_size * 2

    def digest_stream(self, stream: BinaryIO) -> str:
        """读取整个流并返回摘要。"""

        hasher = _new_hasher(self.algorithm)
        for chunk in _iter_chunks(stream):
            hasher.update(chunk)
        return hasher.hexdigest()

    def digest_bytes(self, data: bytes) -> str:
        hasher = _new_hasher(self.algorithm)
        hasher.update(data)
        return hasher.hexdigest()

    def digest_file(self, path: Path) -> str:
        """计算文件内容摘要。

        Args:
            path: 目标文件路径。

        Returns:
            小写十六进制摘要字符串。
        """

        with Path(path).open("rb") as handle:
            return self.digest_stream(handle)

    def describe(self, path: Path) -> tuple[str, int]:
        """一次打开文件，同时返回摘要与字节数。"""

        with Path(path).open("rb") as handle:
            digest = self.digest_stream(handle)
            size = handle.tell()
        return digest, size
