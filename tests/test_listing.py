import json
import os
from pathlib import Path

import pytest

from lanshare.errors import NotFound
from lanshare.listing import ListingEntry, asJSON, breadcrumbs, entries, href, render
from lanshare.resolver import ShareRoot, resolve
from lanshare.utils.files import contentType, humanSize
from lanshare.utils.htmpl import H


def names(items: list[ListingEntry]) -> list[str]:
	return [_.name for _ in items]


def test_directories_come_first(share: Path):
	items = entries(share)
	assert names(items) == ["docs", "Zeta", ".hidden", "alpha.xyz", "hello.txt"]
	assert [_.kind for _ in items] == [
		"directory",
		"directory",
		"file",
		"file",
		"file",
	]
	assert items[-1].size == 42
	assert items[0].size is None
	assert all(_.modified for _ in items)


def test_hidden_entries_can_be_excluded(share: Path):
	assert ".hidden" not in names(entries(share, hidden=False))


def test_case_insensitive_order(tmp_path: Path):
	for name in ("b", "B", "a", "C"):
		(tmp_path / name).mkdir(exist_ok=True)
	# Case sensitive filesystems may have both `b` and `B`
	expected = sorted(os.listdir(tmp_path), key=lambda _: (_.casefold(), _))
	assert names(entries(tmp_path)) == expected


def test_unlistable_entries_are_skipped(share: Path, tmp_path: Path):
	os.mkfifo(share / "pipe")
	os.symlink(tmp_path / "nowhere", share / "dangling")
	listed = names(entries(share))
	assert "pipe" not in listed
	assert "dangling" not in listed


def test_escaping_symlinks_are_not_listed(share: Path, tmp_path: Path):
	(tmp_path / "large.bin").write_bytes(b"x" * 123457)
	os.symlink(tmp_path / "large.bin", share / "peek")
	os.symlink(tmp_path, share / "up")
	os.symlink(share / "hello.txt", share / "link.txt")
	listed = {_.name: _ for _ in entries(share, root=ShareRoot.Make(share))}
	assert "peek" not in listed
	assert "up" not in listed
	assert not any(_.size == 123457 for _ in listed.values())
	# Symlinks staying within the root are listed as what they point to
	assert listed["link.txt"].size == 42


def test_missing_directory(share: Path):
	with pytest.raises(NotFound):
		entries(share / "gone")


def test_href():
	assert href(()) == "/"
	assert href(("docs",)) == "/docs/"
	assert href(("docs", "a b.md"), directory=False) == "/docs/a%20b.md"
	assert href(("a?b#c",), directory=False) == "/a%3Fb%23c"


def test_breadcrumbs():
	html = "".join(str(_) for _ in breadcrumbs(("docs", "api")))
	assert '<a href="/">Home</a>' in html
	assert '<a href="/docs/">docs</a>' in html
	assert "<strong>api</strong>" in html


def test_render_root(share: Path):
	root = ShareRoot.Make(share)
	page = render(root, resolve(root, "/"), entries(share))
	assert page.startswith("<!DOCTYPE html>")
	assert "<title>Index of /</title>" in page
	assert 'rel="up"' not in page
	assert '<a href="/docs/">docs/</a>' in page
	assert '<a href="/hello.txt">hello.txt</a>' in page
	assert 'href="/hello.txt?download"' in page
	assert "42 B" in page
	assert "2 directories, 3 files" in page
	# Directories are listed before files
	assert page.index("Zeta/") < page.index("alpha.xyz")


def test_render_subdirectory_has_parent_link(share: Path):
	root = ShareRoot.Make(share)
	target = resolve(root, "/docs/")
	page = render(root, target, entries(share / "docs"))
	assert '<a href="/" rel="up">..</a>' in page
	assert "Index of /docs" in page
	assert '<a href="/docs/guide.md">guide.md</a>' in page


def test_render_escapes_names(share: Path):
	name = "<b>&\"x\".txt"
	(share / name).write_text("x")
	root = ShareRoot.Make(share)
	page = render(root, resolve(root, "/"), entries(share))
	assert "<b>" not in page
	assert "&lt;b&gt;&amp;&quot;x&quot;.txt" in page
	assert 'href="/%3Cb%3E%26%22x%22.txt"' in page


def test_as_json(share: Path):
	data = json.loads(asJSON(entries(share / "docs")))
	assert len(data) == 1
	assert data[0]["name"] == "guide.md"
	assert data[0]["kind"] == "file"
	assert data[0]["size"] == 8


def test_human_size():
	assert humanSize(0) == "0 B"
	assert humanSize(1023) == "1023 B"
	assert humanSize(1536) == "1.50 KB"
	assert humanSize(5 * 1024 * 1024) == "5.00 MB"


def test_content_type():
	assert contentType("notes.txt") == "text/plain; charset=utf-8"
	assert contentType(Path("photo.JPG")) == "image/jpeg"
	assert contentType("archive.tar.gz") == contentType("x.gz")
	assert contentType("README") == "application/octet-stream"
	assert contentType("data.xyz") == "application/octet-stream"


def test_markup_escapes_attributes():
	node = H.a("x < y", href='/"quoted"', download=True, hidden=None)
	assert str(node) == '<a href="/&quot;quoted&quot;" download>x &lt; y</a>'


# EOF
