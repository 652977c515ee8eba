"""Tests for manifest generation."""

import os

import pytest

from treepatch.entry import ManifestEntry
from treepatch.indexer import build_manifest, generate_manifest_file

from conftest import md5, write_file


class TestBuildManifest:
    """Tests for scanning a directory."""

    def test_entries_are_sorted_with_posix_paths(self, tmp_path, fingerprint):
        write_file(tmp_path, "b.txt", b"bb")
        write_file(tmp_path, "a/z.bin", b"z")
        manifest = build_manifest(tmp_path, fingerprint)
        assert list(manifest) == [
            ManifestEntry.content("a/z.bin", md5(b"z"), 1),
            ManifestEntry.content("b.txt", md5(b"bb"), 2),
        ]

    def test_missing_directory(self, tmp_path, fingerprint):
        with pytest.raises(FileNotFoundError):
            build_manifest(tmp_path / "nope", fingerprint)

    def test_unreadable_directory_raises(self, tmp_path, fingerprint, monkeypatch):
        """Walk errors propagate instead of producing a partial manifest."""
        write_file(tmp_path, "ok.txt", b"ok")
        write_file(tmp_path, "locked/a.txt", b"a")
        real_scandir = os.scandir

        def scandir(path="."):
            if os.fspath(path).endswith("locked"):
                raise PermissionError(13, "Permission denied", os.fspath(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)
        with pytest.raises(PermissionError):
            build_manifest(tmp_path, fingerprint)


class TestGenerateManifestFile:
    """Tests for writing manifests next to the target directory."""

    def test_rotates_previous_manifest(self, tmp_path, store, fingerprint):
        """An existing manifest becomes the .old snapshot."""
        target = tmp_path / "game"
        write_file(target, "a.txt", b"v1")
        first = generate_manifest_file(target, store, fingerprint)
        write_file(target, "a.txt", b"version2")
        second = generate_manifest_file(target, store, fingerprint)

        assert first == second == tmp_path / "GameManifest.txt"
        old = store.load(tmp_path / "GameManifest.txt.old")
        new = store.load(second)
        assert old.get("a.txt").size == 2
        assert new.get("a.txt").size == 8
        checksum = (tmp_path / "GameManifest.checksum").read_text(encoding="utf-8")
        assert checksum == fingerprint.digest_file(second)

    def test_launchpad_kind(self, tmp_path, store, fingerprint):
        target = tmp_path / "launcher"
        write_file(target, "x", b"x")
        path = generate_manifest_file(target, store, fingerprint, kind="launchpad")
        assert path.name == "LaunchpadManifest.txt"
        assert (tmp_path / "LaunchpadManifest.checksum").exists()

    def test_unknown_kind(self, tmp_path, store, fingerprint):
        with pytest.raises(ValueError):
            generate_manifest_file(tmp_path, store, fingerprint, kind="mods")
