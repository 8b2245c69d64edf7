import os
from pathlib import Path

import pytest

from lanshare.resolver import ShareRoot, TargetKind, resolve, segments


def test_share_root_is_canonical(share: Path, tmp_path: Path):
	os.symlink(share, tmp_path / "alias")
	root = ShareRoot.Make(tmp_path / "alias")
	assert root.path == Path(os.path.realpath(share))
	assert str(root) == str(root.path)


def test_share_root_must_be_a_directory(share: Path):
	with pytest.raises(FileNotFoundError):
		ShareRoot.Make(share / "nothing")
	with pytest.raises(NotADirectoryError):
		ShareRoot.Make(share / "hello.txt")


def test_containment_is_by_component():
	root = ShareRoot(Path("/srv/share"))
	assert root.contains(Path("/srv/share"))
	assert root.contains(Path("/srv/share/a/b"))
	assert not root.contains(Path("/srv/share2"))
	assert not root.contains(Path("/srv"))


def test_segments():
	assert segments("") == []
	assert segments("/") == []
	assert segments("a//b/./c/") == ["a", "b", "c"]
	assert segments("a/../b") == ["a", "..", "b"]


def test_root(share: Path):
	root = ShareRoot.Make(share)
	for path in ("", "/", "//", "./"):
		target = resolve(root, path)
		assert target.kind is TargetKind.Directory
		assert target.path == root.path
		assert target.segments == ()


def test_file(share: Path, hello: bytes):
	root = ShareRoot.Make(share)
	target = resolve(root, "/hello.txt")
	assert target.kind is TargetKind.File
	assert target.isServable
	assert target.path == root.path / "hello.txt"
	assert target.segments == ("hello.txt",)
	assert target.stat is not None and target.stat.st_size == len(hello) == 42


def test_directory(share: Path):
	root = ShareRoot.Make(share)
	for path in ("docs", "docs/", "/docs/"):
		target = resolve(root, path)
		assert target.kind is TargetKind.Directory
		assert target.segments == ("docs",)


def test_encoded_names(share: Path):
	(share / "with space é.txt").write_text("ok")
	root = ShareRoot.Make(share)
	target = resolve(root, "with%20space%20%C3%A9.txt")
	assert target.kind is TargetKind.File
	assert target.segments == ("with space é.txt",)
	# An encoded separator is a separator once decoded
	assert resolve(root, "docs%2Fguide.md").kind is TargetKind.File


def test_missing(share: Path):
	root = ShareRoot.Make(share)
	assert resolve(root, "/missing.txt").kind is TargetKind.Missing
	assert resolve(root, "/docs/missing/deeper").kind is TargetKind.Missing
	# A file used as a directory
	assert resolve(root, "/hello.txt/more").kind is TargetKind.Missing
	assert not resolve(root, "/missing.txt").isServable


@pytest.mark.parametrize(
	"path",
	[
		"/../etc/passwd",
		"..",
		"docs/../hello.txt",
		"docs/../../outside.txt",
		"%2e%2e/outside.txt",
		"%2E%2E%2Foutside.txt",
		"docs%2F..%2F..%2Foutside.txt",
	],
)
def test_parent_traversal_is_invalid(share: Path, path: str):
	assert resolve(ShareRoot.Make(share), path).kind is TargetKind.Invalid


@pytest.mark.parametrize("path", ["a\x00b", "hello.txt%00", "%00", "%ff", "%C3%28"])
def test_malformed_paths_are_invalid(share: Path, path: str):
	target = resolve(ShareRoot.Make(share), path)
	assert target.kind is TargetKind.Invalid
	assert target.path is None


def test_symlink_escape_is_invalid(share: Path, tmp_path: Path):
	os.symlink(tmp_path / "outside.txt", share / "escape.txt")
	os.symlink(tmp_path, share / "up")
	os.symlink(tmp_path / "nowhere", share / "dangling")
	root = ShareRoot.Make(share)
	assert resolve(root, "escape.txt").kind is TargetKind.Invalid
	assert resolve(root, "up").kind is TargetKind.Invalid
	assert resolve(root, "up/outside.txt").kind is TargetKind.Invalid
	# Out of root paths are never reported as missing
	assert resolve(root, "dangling").kind is TargetKind.Invalid


def test_sibling_with_common_prefix_is_invalid(share: Path, tmp_path: Path):
	sibling = tmp_path / "share2"
	sibling.mkdir()
	(sibling / "secret.txt").write_text("secret")
	os.symlink(sibling, share / "sibling")
	assert resolve(ShareRoot.Make(share), "sibling/secret.txt").kind is TargetKind.Invalid


def test_symlink_within_root(share: Path):
	os.symlink(share / "hello.txt", share / "link.txt")
	os.symlink(share / "docs", share / "shortcut")
	root = ShareRoot.Make(share)
	target = resolve(root, "link.txt")
	assert target.kind is TargetKind.File
	assert target.path == root.path / "hello.txt"
	target = resolve(root, "shortcut/guide.md")
	assert target.kind is TargetKind.File
	assert target.path == root.path / "docs" / "guide.md"


def test_special_files_are_invalid(share: Path):
	os.mkfifo(share / "pipe")
	assert resolve(ShareRoot.Make(share), "pipe").kind is TargetKind.Invalid


# EOF
