"""Configuration loading and validation for treepatch."""

from __future__ import annotations

from dataclasses import dataclass, field  # dataclass 用于定义结构化配置对象
from pathlib import Path  # Path 提供跨平台路径处理

import yaml  # PyYAML 用于解析配置文件

from .constants import DEFAULT_CONFIG_FILE  # 默认配置文件名
from .fingerprint import ALGORITHMS  # 支持的摘要算法
from .reconciler import ReconciliationMode  # 删除策略枚举
from .utils.pathing import normalize_path  # 路径归一化

LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


@dataclass(slots=True)
class LoggingConfig:
    """日志配置。"""

    level: str = "info"  # 日志级别
    file: Path | None = None  # 日志文件


@dataclass(slots=True)
class FingerprintConfig:
    """摘要算法配置。"""

    algorithm: str = "md5"


@dataclass(slots=True)
class PackagingConfig:
    """补丁打包配置。"""

    compress: bool = True  # 是否生成 patch.zip
    dedupe_ledger: bool = False  # 账本中每个路径只保留最新一条


@dataclass(slots=True)
class ReconcileConfig:
    """目录整理配置。"""

    mode: ReconciliationMode = ReconciliationMode.FULL_SCAN
    verify_ledger: bool = True  # 账本与校验文件不一致时跳过


@dataclass(slots=True)
class TreePatchConfig:
    """聚合所有配置段的顶层对象。"""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    fingerprint: FingerprintConfig = field(default_factory=FingerprintConfig)
    packaging: PackagingConfig = field(default_factory=PackagingConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)


def default_config() -> TreePatchConfig:
    """返回全部使用默认值的配置。"""

    return TreePatchConfig()


def _load_yaml(path: Path) -> dict:
    """辅助函数：读取 YAML 文件并返回字典。"""
    with path.open("r", encoding="utf-8") as f:  # 打开文件，使用 UTF-8 编码
        try:
            data = yaml.safe_load(f) or {}  # 安全解析 YAML，空文件回退为空字典
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):  # 若顶层不是 dict 则抛错
        raise ValueError("Configuration root must be a mapping")  # 提示错误结构
    return data  # 返回解析结果


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} section must be a mapping")
    return value


def load_config(config_path: str | Path = DEFAULT_CONFIG_FILE) -> TreePatchConfig:
    """加载并校验配置文件。"""
    path = Path(config_path).expanduser().resolve()  # 解析配置文件路径
    if not path.exists():  # 若文件不存在
        raise FileNotFoundError(f"Config file {path} not found")  # 抛出文件不存在错误
    raw = _load_yaml(path)  # 读取原始字典
    logging_raw = _section(raw, "logging")
    fingerprint_raw = _section(raw, "fingerprint")
    packaging_raw = _section(raw, "packaging")
    reconcile_raw = _section(raw, "reconcile")
    logging_config = LoggingConfig(
        level=str(logging_raw.get("level", "info")).lower(),
        file=normalize_path(path.parent, logging_raw["file"]) if logging_raw.get("file") else None,
    )
    fingerprint = FingerprintConfig(
        algorithm=str(fingerprint_raw.get("algorithm", "md5") or "md5").lower(),
    )
    packaging = PackagingConfig(
        compress=bool(packaging_raw.get("compress", True)),
        dedupe_ledger=bool(packaging_raw.get("dedupe_ledger", False)),
    )
    reconcile = ReconcileConfig(
        mode=ReconciliationMode.parse(reconcile_raw.get("mode", "full")),  # 非法模式抛出 ValueError
        verify_ledger=bool(reconcile_raw.get("verify_ledger", True)),
    )
    config = TreePatchConfig(
        logging=logging_config,
        fingerprint=fingerprint,
        packaging=packaging,
        reconcile=reconcile,
    )
    if config.logging.level not in LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {'/'.join(sorted(LOG_LEVELS))}")
    if config.fingerprint.algorithm not in ALGORITHMS:
        raise ValueError(f"fingerprint.algorithm must be one of {'/'.join(ALGORITHMS)}")
    return config  # 返回配置对象
