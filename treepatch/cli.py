"""Command line interface for treepatch."""

from __future__ import annotations

import argparse  # argparse 用于解析命令行参数
import json  # json 用于格式化差异输出
import logging  # logging 提供日志支持
import shutil  # shutil 负责复制文件
from pathlib import Path  # Path 便于处理文件系统
from typing import Iterable  # Iterable 类型提示

from .app import AppContext
from .config import TreePatchConfig, default_config, load_config  # 导入配置加载逻辑
from .constants import DEFAULT_CONFIG_FILE, DEFAULT_CONFIG_SAMPLE  # 默认常量
from .diff import compare_manifests
from .indexer import MANIFEST_KINDS, generate_manifest_file
from .reconciler import ReconciliationMode

LOGGER = logging.getLogger(__name__)  # 获取模块级日志记录器


def _load(args: argparse.Namespace) -> TreePatchConfig | None:
    """读取配置；默认配置文件不存在时使用内置默认值。"""

    try:
        return load_config(args.config)
    except FileNotFoundError:
        if args.config == DEFAULT_CONFIG_FILE:
            return default_config()
        LOGGER.error("config file %s not found", args.config)
        return None
    except (ValueError, OSError) as exc:
        LOGGER.error("configuration error: %s", exc)
        return None


def command_init(args: argparse.Namespace) -> int:
    """处理 init 子命令。"""

    config_target = Path(DEFAULT_CONFIG_FILE)  # 目标配置文件路径
    sample_path = Path(DEFAULT_CONFIG_SAMPLE)  # 示例配置文件路径
    if not sample_path.exists():  # 确保示例存在
        LOGGER.error("%s not found", DEFAULT_CONFIG_SAMPLE)
        return 1
    if config_target.exists() and not args.force:  # 若目标已存在且未指定覆盖
        LOGGER.warning("%s already exists; use --force to overwrite", DEFAULT_CONFIG_FILE)
        return 0
    shutil.copy2(sample_path, config_target)  # 复制示例到目标
    LOGGER.info("%s generated from sample", DEFAULT_CONFIG_FILE)
    return 0


def command_check(args: argparse.Namespace) -> int:
    """处理 check 子命令。"""

    cfg = _load(args)
    if cfg is None:
        return 1
    print(f"Fingerprint algorithm: {cfg.fingerprint.algorithm}")
    print(f"Packaging: compress={cfg.packaging.compress} dedupe_ledger={cfg.packaging.dedupe_ledger}")
    print(f"Reconcile: mode={cfg.reconcile.mode.value} verify_ledger={cfg.reconcile.verify_ledger}")
    print("Configuration check passed.")
    return 0


def command_manifest(args: argparse.Namespace) -> int:
    """为目标目录生成 manifest。"""

    cfg = _load(args)
    if cfg is None:
        return 1
    ctx = AppContext(cfg)
    try:
        path = generate_manifest_file(args.target, ctx.store, ctx.fingerprint, kind=args.kind)
    except OSError as exc:
        LOGGER.error("failed to generate manifest: %s", exc)
        return 1
    LOGGER.info("manifest written to %s", path)
    return 0


def command_patch(args: argparse.Namespace) -> int:
    """处理 patch 子命令。"""

    cfg = _load(args)
    if cfg is None:
        return 1
    compress = cfg.packaging.compress if args.compress is None else args.compress
    ctx = AppContext(cfg)
    try:
        result = ctx.packager().package_directory(args.target, compress=compress)
    except OSError as exc:
        LOGGER.error("patch generation failed: %s", exc)
        return 1
    if result is None:
        print("Nothing to patch.")
        return 0
    print(f"Changed/added: {len(result.changed)}  Deleted: {len(result.deleted)}")
    if result.archive:
        print(f"Archive: {result.archive}")
    return 0


def command_reconcile(args: argparse.Namespace) -> int:
    """处理 reconcile 子命令。"""

    cfg = _load(args)
    if cfg is None:
        return 1
    try:
        mode = ReconciliationMode.parse(args.mode) if args.mode else cfg.reconcile.mode
    except ValueError as exc:
        LOGGER.error(str(exc))
        return 1
    ctx = AppContext(cfg)
    try:
        result = ctx.reconciler().reconcile_directory(mode, args.target)
    except OSError as exc:
        LOGGER.error("reconcile aborted: %s", exc)
        return 1
    print(f"Deleted files: {len(result.deleted_files)}  Removed folders: {len(result.removed_dirs)}")
    return 0


def command_diff(args: argparse.Namespace) -> int:
    """比较两个 manifest 文件并输出 JSON 摘要。"""

    cfg = _load(args)
    if cfg is None:
        return 1
    ctx = AppContext(cfg)
    current = ctx.store.load(args.current)
    previous = ctx.store.load(args.previous)
    if current is None or previous is None:
        LOGGER.error("both manifests must exist and be well formed")
        return 1
    print(json.dumps(compare_manifests(current, previous), indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """构建顶层解析器。"""

    parser = argparse.ArgumentParser(prog="treepatch", description="Manifest based patch packaging and tree reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)
    init_parser = subparsers.add_parser("init", help="create treepatch.yaml from the sample")
    init_parser.add_argument("--force", action="store_true", help="overwrite existing treepatch.yaml")
    init_parser.set_defaults(func=command_init)
    check_parser = subparsers.add_parser("check", help="validate the configuration")
    check_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    check_parser.set_defaults(func=command_check)
    manifest_parser = subparsers.add_parser("manifest", help="generate a manifest for a directory")
    manifest_parser.add_argument("target", help="directory to describe")
    manifest_parser.add_argument("--kind", choices=sorted(MANIFEST_KINDS), default="game", help="manifest file to write")
    manifest_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    manifest_parser.set_defaults(func=command_manifest)
    patch_parser = subparsers.add_parser("patch", help="stage changed files and update the deletion ledger")
    patch_parser.add_argument("target", help="directory holding the new content")
    patch_parser.add_argument("--compress", dest="compress", action="store_true", default=None, help="archive the staged files")
    patch_parser.add_argument("--no-compress", dest="compress", action="store_false", help="keep the staging folder")
    patch_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    patch_parser.set_defaults(func=command_patch)
    reconcile_parser = subparsers.add_parser("reconcile", help="delete files the manifest does not describe")
    reconcile_parser.add_argument("target", help="directory to reconcile")
    reconcile_parser.add_argument("--mode", help="disabled, ledger or full (overrides config)")
    reconcile_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    reconcile_parser.set_defaults(func=command_reconcile)
    diff_parser = subparsers.add_parser("diff", help="compare two manifest files")
    diff_parser.add_argument("current", help="new manifest")
    diff_parser.add_argument("previous", help="old manifest")
    diff_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    diff_parser.set_defaults(func=command_diff)
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    """CLI 主入口。"""

    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)
