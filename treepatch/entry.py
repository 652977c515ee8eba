"""Manifest records shared by the packager and the reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field, replace  # dataclass 用于定义不可变记录
from typing import Iterable, Iterator

from .utils.pathing import normalize_relative  # 统一相对路径格式

MAX_SIZE = 2**64 - 1


class ManifestFormatError(ValueError):
    """manifest 内容无法解析或违反唯一性约束。"""


@dataclass(frozen=True, slots=True)
class Content:
    """普通 manifest 条目的载荷：文件字节数。"""

    size: int

    def __post_init__(self) -> None:
        if not 0 <= self.size <= MAX_SIZE:
            raise ValueError(f"size out of range: {self.size}")


@dataclass(frozen=True, slots=True)
class Deleted:
    """删除账本条目的载荷：删除发生的 Unix 时间戳。"""

    epoch: int

    def __post_init__(self) -> None:
        if self.epoch < 0:
            raise ValueError(f"epoch must not be negative: {self.epoch}")


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """单个文件的快照记录。

    ``state`` 区分普通条目 (:class:`Content`) 与账本条目 (:class:`Deleted`)，
    完整记录相等即路径、指纹与载荷全部相等，其中指纹比较不区分大小写。
    """

    relative_path: str
    fingerprint: str = field(compare=False)  # 保留原始大小写，写回账本时不改变
    state: Content | Deleted
    _fingerprint_key: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # frozen dataclass 需要通过 object.__setattr__ 写入规范化后的值
        object.__setattr__(self, "relative_path", normalize_relative(self.relative_path))
        object.__setattr__(self, "fingerprint", self.fingerprint.strip())
        object.__setattr__(self, "_fingerprint_key", self.fingerprint.lower())

    @classmethod
    def content(cls, relative_path: str, fingerprint: str, size: int) -> "ManifestEntry":
        return cls(relative_path, fingerprint, Content(size))

    @classmethod
    def deleted(cls, relative_path: str, fingerprint: str, epoch: int) -> "ManifestEntry":
        return cls(relative_path, fingerprint, Deleted(epoch))

    @property
    def is_deleted(self) -> bool:
        return isinstance(self.state, Deleted)

    @property
    def size(self) -> int:
        """文件字节数，仅对普通条目有效。"""

        if not isinstance(self.state, Content):
            raise AttributeError(f"{self.relative_path} is a deletion record and has no size")
        return self.state.size

    @property
    def epoch(self) -> int:
        """删除时间戳，仅对账本条目有效。"""

        if not isinstance(self.state, Deleted):
            raise AttributeError(f"{self.relative_path} is a content record and has no epoch")
        return self.state.epoch

    def mark_deleted(self, epoch: int) -> "ManifestEntry":
        """返回保留原指纹、载荷替换为删除时间戳的新条目。"""

        return replace(self, state=Deleted(int(epoch)))


class Manifest:
    """按加载顺序保存条目的只读集合，路径在集合内唯一。"""

    __slots__ = ("_entries", "_by_path")

    def __init__(self, entries: Iterable[ManifestEntry] = ()) -> None:
        self._entries: tuple[ManifestEntry, ...] = tuple(entries)
        self._by_path: dict[str, ManifestEntry] = {}
        for entry in self._entries:
            if entry.relative_path in self._by_path:
                raise ManifestFormatError(f"duplicate manifest path: {entry.relative_path}")
            self._by_path[entry.relative_path] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(self._entries)

    def __contains__(self, entry: object) -> bool:
        if not isinstance(entry, ManifestEntry):
            return False
        return self._by_path.get(entry.relative_path) == entry

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"Manifest({len(self._entries)} entries)"

    def has_path(self, relative_path: str) -> bool:
        return normalize_relative(relative_path) in self._by_path

    def get(self, relative_path: str) -> ManifestEntry | None:
        return self._by_path.get(normalize_relative(relative_path))

    def paths(self) -> set[str]:
        return set(self._by_path)
