"""Shared fixtures for treepatch tests."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from treepatch.entry import Manifest, ManifestEntry
from treepatch.fingerprint import FingerprintService
from treepatch.manifest_store import ManifestStore


def write_file(root: Path, rel_path: str, data: bytes) -> Path:
    path = root.joinpath(*rel_path.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def manifest_of(*records: tuple[str, str, int]) -> Manifest:
    return Manifest(ManifestEntry.content(path, digest, size) for path, digest, size in records)


@pytest.fixture
def fingerprint() -> FingerprintService:
    return FingerprintService("md5")


@pytest.fixture
def store() -> ManifestStore:
    return ManifestStore()
