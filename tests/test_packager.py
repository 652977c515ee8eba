"""Tests for patch packaging."""

import zipfile

import pytest

from treepatch.constants import ARCHIVE_NAME, DELETED_CHECKSUM, DELETED_MANIFEST
from treepatch.entry import ManifestEntry
from treepatch.packager import PatchPackager

from conftest import manifest_of, md5, write_file

NOW = 1700000000


@pytest.fixture
def packager(store, fingerprint):
    return PatchPackager(store, fingerprint, clock=lambda: NOW)


@pytest.fixture
def layout(tmp_path):
    source = tmp_path / "game"
    source.mkdir()
    return source, tmp_path / "patch"


def _staged_files(staging):
    return sorted(p.relative_to(staging).as_posix() for p in staging.rglob("*") if p.is_file())


class TestGeneratePatch:
    """Tests for PatchPackager.generate_patch."""

    def test_added_and_deleted_scenario(self, packager, layout, fingerprint):
        """Only the new file is staged and only the vanished file is ledgered."""
        source, staging = layout
        write_file(source, "file1.txt", b"one")
        write_file(source, "file3.txt", b"three")
        previous = manifest_of(("file1.txt", "h1", 10), ("file2.txt", "h2", 20))
        current = manifest_of(("file1.txt", "h1", 10), ("file3.txt", "h3", 30))

        result = packager.generate_patch(current, previous, source, staging)

        assert _staged_files(staging) == ["file3.txt"]
        assert (staging / "file3.txt").read_bytes() == b"three"
        assert result.ledger_records == [ManifestEntry.deleted("file2.txt", "h2", NOW)]
        ledger = staging.parent / DELETED_MANIFEST
        assert ledger.read_text(encoding="utf-8") == f"file2.txt:h2:{NOW}\n"
        checksum = (staging.parent / DELETED_CHECKSUM).read_text(encoding="utf-8")
        assert checksum == fingerprint.digest_file(ledger)
        assert result.archive is None

    def test_modified_file_is_staged(self, packager, layout):
        """A path whose fingerprint changed is staged even though it is not new."""
        source, staging = layout
        write_file(source, "data/level.pak", b"v2")
        previous = manifest_of(("data/level.pak", md5(b"v1"), 2))
        current = manifest_of(("data/level.pak", md5(b"v2"), 2))
        result = packager.generate_patch(current, previous, source, staging)
        assert _staged_files(staging) == ["data/level.pak"]
        assert result.deleted == []
        assert not (staging.parent / DELETED_MANIFEST).exists()

    def test_unchanged_tree_produces_nothing(self, packager, layout):
        """Identical manifests stage nothing and create no archive."""
        source, staging = layout
        write_file(source, "a.txt", b"a")
        manifest = manifest_of(("a.txt", md5(b"a"), 1))
        result = packager.generate_patch(manifest, manifest, source, staging, compress=True)
        assert result.staged == []
        assert result.archive is None
        assert not staging.exists()
        assert not (staging.parent / ARCHIVE_NAME).exists()

    @pytest.mark.parametrize("missing", ["current", "previous"])
    def test_missing_manifest_is_noop(self, packager, layout, missing):
        source, staging = layout
        manifest = manifest_of(("a.txt", "h", 1))
        current = None if missing == "current" else manifest
        previous = None if missing == "previous" else manifest
        assert packager.generate_patch(current, previous, source, staging) is None
        assert list(staging.parent.iterdir()) == [source]

    def test_compress_archives_and_removes_staging(self, packager, layout):
        source, staging = layout
        write_file(source, "a.txt", b"a")
        write_file(source, "sub/dir/b.txt", b"b")
        (staging.parent / ARCHIVE_NAME).write_bytes(b"stale archive")
        current = manifest_of(("a.txt", md5(b"a"), 1), ("sub/dir/b.txt", md5(b"b"), 1))
        previous = manifest_of()

        result = packager.generate_patch(current, previous, source, staging, compress=True)

        assert result.archive == staging.parent / ARCHIVE_NAME
        assert not staging.exists()
        with zipfile.ZipFile(result.archive) as archive:
            assert sorted(archive.namelist()) == ["a.txt", "sub/dir/b.txt"]
            assert archive.read("sub/dir/b.txt") == b"b"

    def test_vanished_source_file_aborts(self, packager, layout):
        """A source file missing at copy time propagates the filesystem error."""
        source, staging = layout
        current = manifest_of(("gone.txt", "h", 1))
        with pytest.raises(FileNotFoundError):
            packager.generate_patch(current, manifest_of(), source, staging)

    def test_rerun_regenerates_staging(self, packager, layout):
        source, staging = layout
        write_file(source, "a.txt", b"a")
        write_file(staging, "leftover.txt", b"old run")
        current = manifest_of(("a.txt", md5(b"a"), 1))
        packager.generate_patch(current, manifest_of(), source, staging)
        assert _staged_files(staging) == ["a.txt"]

    def test_path_escaping_source_rejected(self, packager, layout):
        source, staging = layout
        current = manifest_of(("../outside.txt", "h", 1))
        with pytest.raises(ValueError):
            packager.generate_patch(current, manifest_of(), source, staging)

    def test_staging_equal_to_source_rejected(self, packager, layout):
        """Staging that is the source itself is refused before anything is removed."""
        source, _ = layout
        write_file(source, "a.txt", b"a")
        current = manifest_of(("a.txt", md5(b"a"), 1))
        with pytest.raises(ValueError):
            packager.generate_patch(current, manifest_of(), source, source)
        assert (source / "a.txt").read_bytes() == b"a"

    def test_staging_containing_source_rejected(self, packager, layout):
        source, _ = layout
        write_file(source, "a.txt", b"a")
        current = manifest_of(("a.txt", md5(b"a"), 1))
        with pytest.raises(ValueError):
            packager.generate_patch(current, manifest_of(), source, source.parent)
        assert (source / "a.txt").exists()

    def test_whitespace_in_path_is_staged_verbatim(self, packager, layout):
        """A file name with a leading blank is copied under the same name."""
        source, staging = layout
        write_file(source, " notes.txt", b"n")
        current = manifest_of((" notes.txt", md5(b"n"), 1))
        result = packager.generate_patch(current, manifest_of(), source, staging)
        assert _staged_files(staging) == [" notes.txt"]
        assert [e.relative_path for e in result.changed] == [" notes.txt"]

    def test_ledger_keeps_fingerprint_case(self, packager, layout):
        """Upper-case fingerprints are written to the ledger as they were given."""
        source, staging = layout
        previous = manifest_of(("old.txt", "ABCDEF0123", 1))
        packager.generate_patch(manifest_of(), previous, source, staging)
        ledger = staging.parent / DELETED_MANIFEST
        assert ledger.read_text(encoding="utf-8") == f"old.txt:ABCDEF0123:{NOW}\n"

    def test_case_only_fingerprint_change_is_not_staged(self, packager, layout):
        source, staging = layout
        write_file(source, "a.txt", b"a")
        digest = md5(b"a")
        current = manifest_of(("a.txt", digest.upper(), 1))
        previous = manifest_of(("a.txt", digest, 1))
        result = packager.generate_patch(current, previous, source, staging)
        assert result.staged == []


class TestPackageDirectory:
    """Tests for manifest discovery next to the target directory."""

    def test_uses_game_manifest_pair(self, packager, layout, store):
        source, staging = layout
        write_file(source, "new.txt", b"new")
        parent = source.parent
        store.save(manifest_of(("new.txt", md5(b"new"), 3)), parent / "GameManifest.txt")
        store.save(manifest_of(("old.txt", "h", 1)), parent / "GameManifest.txt.old")

        result = packager.package_directory(source, compress=False)

        assert _staged_files(staging) == ["new.txt"]
        assert [e.relative_path for e in result.ledger_records] == ["old.txt"]

    def test_falls_back_to_launchpad_manifest(self, packager, layout, store):
        source, staging = layout
        write_file(source, "launcher.bin", b"x")
        parent = source.parent
        store.save(manifest_of(("ignored.txt", "h", 1)), parent / "GameManifest.txt")
        store.save(manifest_of(("launcher.bin", md5(b"x"), 1)), parent / "LaunchpadManifest.txt")
        store.save(manifest_of(), parent / "LaunchpadManifest.txt.old")
        packager.package_directory(source)
        assert _staged_files(staging) == ["launcher.bin"]

    def test_no_manifests_is_noop(self, packager, layout):
        source, _ = layout
        assert packager.package_directory(source) is None

    def test_malformed_manifest_is_noop(self, packager, layout):
        source, staging = layout
        parent = source.parent
        (parent / "GameManifest.txt").write_text("garbage\n", encoding="utf-8")
        (parent / "GameManifest.txt.old").write_text("a.txt:h:1\n", encoding="utf-8")
        assert packager.package_directory(source) is None
        assert not (parent / DELETED_MANIFEST).exists()

    def test_target_named_like_staging_is_left_intact(self, packager, tmp_path, store):
        """A content directory called ``patch`` is never wiped as stale staging."""
        target = tmp_path / "patch"
        write_file(target, "keep.txt", b"keep")
        store.save(manifest_of(("keep.txt", md5(b"keep"), 4)), tmp_path / "GameManifest.txt")
        store.save(manifest_of(), tmp_path / "GameManifest.txt.old")

        with pytest.raises(ValueError):
            packager.package_directory(target)

        assert (target / "keep.txt").read_bytes() == b"keep"
