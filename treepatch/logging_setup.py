"""Logging helper used by the treepatch CLI."""

from __future__ import annotations

import logging  # 标准库 logging 提供灵活的日志框架
from typing import Optional  # Optional 用于类型提示

from rich.logging import RichHandler  # RichHandler 提供彩色控制台输出

from .config import LoggingConfig  # 日志配置段


def build_handlers(cfg: LoggingConfig) -> list[logging.Handler]:
    """根据配置创建控制台与可选的文件处理器。"""

    handlers: list[logging.Handler] = [RichHandler(rich_tracebacks=True, show_time=False, markup=False)]
    if cfg.file is not None:
        # 日志文件路径在加载配置时已归一化为绝对路径
        cfg.file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(cfg.file, encoding="utf-8"))
    return handlers


def init_logging(cfg: Optional[LoggingConfig] = None) -> int:
    """初始化 treepatch 的日志系统，返回生效的日志级别。

    Args:
        cfg: ``logging`` 配置段，缺省时使用 INFO 级别且只输出到控制台。

    Returns:
        ``logging`` 模块中的数值级别。
    """

    cfg = cfg or LoggingConfig()
    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        # 直接构造的 LoggingConfig 未经过 load_config 校验
        logging.getLogger(__name__).warning("Unsupported log level %r, fallback to INFO", cfg.level)
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        handlers=build_handlers(cfg),
        force=True,  # force 确保多次调用时覆盖旧配置
    )
    return level
