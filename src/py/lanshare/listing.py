import os
import stat
import time
from pathlib import Path
from typing import NamedTuple
from urllib.parse import quote

from .errors import NotFound, TransientIOFailure
from .resolver import ResolvedTarget, ShareRoot
from .utils.files import humanSize
from .utils.htmpl import H, Node, html, raw
from .utils.json import json
from .utils.logging import debug

LISTING_CSS: str = """
:root {
	font-family: sans-serif;
	font-size: 14px;
	line-height: 1.35em;
	padding: 20px;
	background: #F0F0F0;
}
nav { margin-bottom: 1.25em; }
table { border-collapse: collapse; width: 100%; }
th, td { text-align: left; padding: 0.4em 0.75em; border-bottom: 1px solid #DDD; }
td.size, td.modified { white-space: nowrap; color: #555; }
td.name { max-width: 40em; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
a { text-decoration: none; }
"""

ICON_DIRECTORY: str = "📁"
ICON_FILE: str = "📄"


class ListingEntry(NamedTuple):
	name: str
	kind: str
	size: int | None = None
	modified: float | None = None

	@property
	def isDirectory(self) -> bool:
		return self.kind == "directory"


def sortKey(entry: ListingEntry) -> tuple[int, str, str]:
	"""Directories first, then case-insensitive name, with the exact name as
	tie breaker so that the order is total."""
	return (0 if entry.isDirectory else 1, entry.name.casefold(), entry.name)


def isHidden(name: str) -> bool:
	return name.startswith(".")


def entries(
	path: Path, *, root: ShareRoot | None = None, hidden: bool = True
) -> list[ListingEntry]:
	"""Lists the immediate children of the directory at `path`. Children
	that vanish or can't be read while listing are skipped. When `root` is
	given, symlinks resolving outside of it are skipped too, so that nothing
	about their target is shown."""
	res: list[ListingEntry] = []
	try:
		it = os.scandir(path)
	except (FileNotFoundError, NotADirectoryError) as e:
		raise NotFound(f"Directory vanished: {e.__class__.__name__}") from e
	except OSError as e:
		raise TransientIOFailure(f"Directory unreadable: {e.__class__.__name__}") from e
	with it:
		for item in it:
			name = item.name
			if not hidden and isHidden(name):
				continue
			try:
				# Names that can't be encoded can't be linked either.
				name.encode("utf8")
			except UnicodeEncodeError:
				debug("Skipping undecodable name", Directory=str(path))
				continue
			try:
				if (
					root is not None
					and item.is_symlink()
					and not root.contains(Path(os.path.realpath(item.path)))
				):
					debug("Skipping escaping symlink", Directory=str(path))
					continue
				# We follow symlinks, as the entry is served as what it
				# points to.
				st = item.stat()
			except OSError:
				continue
			if stat.S_ISDIR(st.st_mode):
				res.append(ListingEntry(name, "directory", None, st.st_mtime))
			elif stat.S_ISREG(st.st_mode):
				res.append(ListingEntry(name, "file", st.st_size, st.st_mtime))
	return sorted(res, key=sortKey)


# -----------------------------------------------------------------------------
#
# RENDERING
#
# -----------------------------------------------------------------------------


def href(segments: tuple[str, ...] | list[str], directory: bool = True) -> str:
	"""Returns the absolute, percent-encoded URL for the given segments."""
	path = "/".join(quote(_, safe="") for _ in segments)
	if not path:
		return "/"
	return f"/{path}/" if directory else f"/{path}"


def breadcrumbs(segments: tuple[str, ...]) -> list[Node | str]:
	res: list[Node | str] = [H.a("Home", href="/")]
	for i, name in enumerate(segments):
		res.append(" / ")
		if i == len(segments) - 1:
			res.append(H.strong(name))
		else:
			res.append(H.a(name, href=href(segments[: i + 1])))
	return res


def formatTime(value: float | None) -> str:
	return "-" if value is None else time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(value))


def row(segments: tuple[str, ...], entry: ListingEntry) -> Node:
	link = href(segments + (entry.name,), entry.isDirectory)
	if entry.isDirectory:
		return H.tr(
			H.td(f"{ICON_DIRECTORY} ", H.a(f"{entry.name}/", href=link), _="name"),
			H.td("-", _="size"),
			H.td(formatTime(entry.modified), _="modified"),
			H.td(H.a("Open", href=link)),
		)
	else:
		return H.tr(
			H.td(f"{ICON_FILE} ", H.a(entry.name, href=link), _="name"),
			H.td(humanSize(entry.size or 0), _="size"),
			H.td(formatTime(entry.modified), _="modified"),
			H.td(H.a("Download", href=f"{link}?download", download=entry.name)),
		)


def render(root: ShareRoot, target: ResolvedTarget, items: list[ListingEntry]) -> str:
	"""Renders the listing of the `target` directory as an HTML document.
	Every name goes through the node builder, which escapes it."""
	segments = target.segments
	title = "/" + "/".join(segments)
	rows: list[Node] = []
	if target.path != root.path:
		rows.append(
			H.tr(
				H.td("⬆ ", H.a("..", href=href(segments[:-1]), rel="up"), _="name"),
				H.td(""),
				H.td(""),
				H.td(""),
			)
		)
	rows += [row(segments, _) for _ in items]
	return "".join(
		html(
			H.html(
				H.head(
					H.meta(charset="utf-8"),
					H.meta(
						name="viewport",
						content="width=device-width, initial-scale=1.0",
					),
					H.title(f"Index of {title}"),
					H.style(raw(LISTING_CSS)),
				),
				H.body(
					H.nav(*breadcrumbs(segments)),
					H.h1(f"Index of {title}"),
					H.table(
						H.thead(
							H.tr(H.th("Name"), H.th("Size"), H.th("Modified"), H.th(""))
						),
						H.tbody(*rows),
					),
					H.footer(
						H.small(
							f"{sum(1 for _ in items if _.isDirectory)} directories, "
							f"{sum(1 for _ in items if not _.isDirectory)} files"
						)
					),
				),
				lang="en",
			),
			doctype="html",
		)
	)


def asJSON(items: list[ListingEntry]) -> bytes:
	return json(items)


# EOF
