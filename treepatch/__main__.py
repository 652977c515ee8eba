"""Command line entry point for treepatch."""

from __future__ import annotations

import sys  # sys 用于访问 argv 与退出状态

from .cli import main as cli_main  # CLI 主函数
from .config import LoggingConfig, load_config  # 读取日志配置
from .constants import DEFAULT_CONFIG_FILE
from .logging_setup import init_logging  # 初始化日志


def main(argv: list[str] | None = None) -> int:
    """入口函数，供 python -m treepatch 调用。"""
    try:
        logging_cfg = load_config(DEFAULT_CONFIG_FILE).logging  # 尝试加载配置用于日志设定
    except (OSError, ValueError):
        logging_cfg = LoggingConfig()  # 若配置加载失败则使用默认日志配置
    init_logging(logging_cfg)
    return cli_main(argv)


if __name__ == "__main__":
    sys.exit(main())  # 将返回值作为进程退出码
