"""Tests for the DirectoryScanner class."""

import logging
import os
import re
from pathlib import Path
from unittest.mock import patch

import pytest

from pyupyun.exceptions import UpyunScanError
from pyupyun.sync.manifest import MANIFEST_FILE_NAME, ManifestEntry, iter_files
from pyupyun.sync.scanner import DirectoryScanner
from pyupyun.utils import md5_bytes


@pytest.fixture
def site(temp_dir):
    """Create a small generated site."""
    (temp_dir / "index.html").write_text("<h1>home</h1>")
    (temp_dir / "about").write_text("about")
    (temp_dir / "css").mkdir()
    (temp_dir / "css" / "main.css").write_text("body {}")
    (temp_dir / "css" / "main.css.map").write_text("{}")
    (temp_dir / "drafts").mkdir()
    (temp_dir / "drafts" / "wip.html").write_text("wip")
    (temp_dir / "posts" / "2024").mkdir(parents=True)
    (temp_dir / "posts" / "2024" / "hello.html").write_text("hello")
    return temp_dir


class TestScan:
    """Tests for scanning without exclusions."""

    def test_scan_mirrors_tree(self, site):
        """All files and directories appear with relative structure."""
        entries = DirectoryScanner().scan(site)

        assert sorted(iter_files(entries)) == [
            "about",
            "css/main.css",
            "css/main.css.map",
            "drafts/wip.html",
            "index.html",
            "posts/2024/hello.html",
        ]

    def test_children_sorted_by_name(self, site):
        """Entries are returned in lexicographic order."""
        entries = DirectoryScanner().scan(site)

        assert [e.name for e in entries] == [
            "about",
            "css",
            "drafts",
            "index.html",
            "posts",
        ]

    def test_fingerprint_is_md5(self, site):
        """Files are fingerprinted with the MD5 of their content."""
        entries = DirectoryScanner().scan(site)
        index = next(e for e in entries if e.name == "index.html")

        assert index.fingerprint == md5_bytes(b"<h1>home</h1>")

    def test_custom_fingerprint(self, site):
        """A custom fingerprint function is used for every file."""
        scanner = DirectoryScanner(fingerprint=lambda path: f"fp:{path.name}")
        entries = scanner.scan(site)

        assert entries[0] == ManifestEntry.file("about", "fp:about")

    def test_empty_directory_is_kept(self, temp_dir):
        """Empty directories are part of the manifest."""
        (temp_dir / "empty").mkdir()

        entries = DirectoryScanner().scan(temp_dir)

        assert entries == [ManifestEntry.directory("empty")]

    def test_reserved_manifest_file_skipped_at_root(self, temp_dir):
        """A local .file_list.json at the root is never deployed."""
        (temp_dir / MANIFEST_FILE_NAME).write_text("[]")
        (temp_dir / "sub").mkdir()
        (temp_dir / "sub" / MANIFEST_FILE_NAME).write_text("[]")

        entries = DirectoryScanner().scan(temp_dir)

        assert list(iter_files(entries)) == [f"sub/{MANIFEST_FILE_NAME}"]

    def test_scan_logs_file_count(self, site, caplog):
        """The debug log reports files at every depth, not just the root."""
        with caplog.at_level(logging.DEBUG, logger="pyupyun.sync.scanner"):
            DirectoryScanner().scan(site)

        assert f"Scanned {site}: 6 file(s)" in caplog.text

    def test_scan_is_deterministic(self, site):
        """Two scans of the same tree are equal."""
        scanner = DirectoryScanner()

        assert scanner.scan(site) == scanner.scan(site)


class TestExclusion:
    """Tests for the exclusion patterns."""

    def test_file_pattern(self, site):
        """Files matching the file pattern are skipped."""
        entries = DirectoryScanner(file_exclude=r"\.map$").scan(site)

        assert "css/main.css.map" not in list(iter_files(entries))
        assert "css/main.css" in list(iter_files(entries))

    def test_dir_pattern_skips_subtree(self, site):
        """A matching directory is skipped with everything beneath it."""
        entries = DirectoryScanner(dir_exclude=r"^drafts$").scan(site)

        assert "drafts" not in [e.name for e in entries]
        assert not any(p.startswith("drafts/") for p in iter_files(entries))

    def test_patterns_match_relative_paths(self, site):
        """Patterns see the path relative to the root, not just the name."""
        entries = DirectoryScanner(file_exclude=r"^posts/2024/").scan(site)

        files = list(iter_files(entries))
        assert "posts/2024/hello.html" not in files
        posts = next(e for e in entries if e.name == "posts")
        assert posts.children == [ManifestEntry.directory("2024")]

    def test_dir_pattern_does_not_apply_to_files(self, site):
        """The directory pattern never excludes files."""
        entries = DirectoryScanner(dir_exclude=r"about").scan(site)

        assert "about" in list(iter_files(entries))

    def test_compiled_pattern(self, site):
        """Precompiled patterns are accepted."""
        scanner = DirectoryScanner(dir_exclude=re.compile(r"^(drafts|posts)$"))
        entries = scanner.scan(site)

        assert [e.name for e in entries] == ["about", "css", "index.html"]

    def test_empty_pattern_disables_exclusion(self, site):
        """An empty pattern would match everything, so it is ignored."""
        entries = DirectoryScanner(file_exclude="", dir_exclude="").scan(site)

        assert len(list(iter_files(entries))) == 6

    def test_is_excluded(self):
        scanner = DirectoryScanner(file_exclude=r"\.tmp$", dir_exclude=r"cache")

        assert scanner.is_excluded("a/b.tmp", is_dir=False)
        assert not scanner.is_excluded("a/b.tmp", is_dir=True)
        assert scanner.is_excluded("x/cache", is_dir=True)
        assert not scanner.is_excluded("x/cache", is_dir=False)


class TestScanErrors:
    """Tests for I/O failures during scanning."""

    def test_missing_root(self, temp_dir):
        """A missing root raises UpyunScanError."""
        with pytest.raises(UpyunScanError, match="Not a directory") as exc_info:
            DirectoryScanner().scan(temp_dir / "missing")

        assert exc_info.value.path == str(temp_dir / "missing")

    def test_root_is_file(self, temp_dir):
        """A file as root raises UpyunScanError."""
        target = temp_dir / "file.txt"
        target.write_text("x")

        with pytest.raises(UpyunScanError):
            DirectoryScanner().scan(target)

    def test_unreadable_file(self, site):
        """A read error names the offending file."""

        def failing_fingerprint(path):
            if path.name == "hello.html":
                raise PermissionError("denied")
            return "x"

        scanner = DirectoryScanner(fingerprint=failing_fingerprint)

        with pytest.raises(UpyunScanError, match="hello.html") as exc_info:
            scanner.scan(site)

        assert exc_info.value.path.endswith("hello.html")
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_unlistable_directory(self, site):
        """A listing error names the offending directory."""
        original_iterdir = Path.iterdir

        def failing_iterdir(self):
            if self.name == "posts":
                raise PermissionError("denied")
            return original_iterdir(self)

        with patch.object(Path, "iterdir", failing_iterdir):
            with pytest.raises(UpyunScanError, match="posts"):
                DirectoryScanner().scan(site)

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires mkfifo")
    def test_special_files_are_skipped(self, temp_dir):
        """FIFOs and other special files are not part of the manifest."""
        os.mkfifo(temp_dir / "pipe")
        (temp_dir / "a.txt").write_text("a")

        entries = DirectoryScanner().scan(temp_dir)

        assert [e.name for e in entries] == ["a.txt"]
