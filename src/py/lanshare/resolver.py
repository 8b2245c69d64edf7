import os
import stat
from enum import Enum
from pathlib import Path
from typing import NamedTuple
from urllib.parse import unquote

from .utils.logging import debug

# -----------------------------------------------------------------------------
#
# SHARE ROOT
#
# -----------------------------------------------------------------------------


class ShareRoot(NamedTuple):
	"""The single directory exposed by the server, in canonical form. This
	is the trust boundary of every path resolution."""

	path: Path

	@staticmethod
	def Make(path: Path | str) -> "ShareRoot":
		"""Canonicalizes the given path, which must be an existing directory."""
		canonical = Path(os.path.realpath(path))
		if not canonical.exists():
			raise FileNotFoundError(f"Share root does not exist: {path}")
		if not canonical.is_dir():
			raise NotADirectoryError(f"Share root is not a directory: {path}")
		return ShareRoot(canonical)

	def contains(self, path: Path) -> bool:
		"""Tells if the canonical `path` is the root or one of its descendants.
		The test is done on path components, so `/share2` is not in `/share`."""
		return path == self.path or path.is_relative_to(self.path)

	def __str__(self) -> str:
		return str(self.path)


# -----------------------------------------------------------------------------
#
# TARGET
#
# -----------------------------------------------------------------------------


class TargetKind(Enum):
	Directory = "directory"
	File = "file"
	Missing = "missing"
	Invalid = "invalid"


class ResolvedTarget(NamedTuple):
	kind: TargetKind
	# Canonical path, only set for directories and files
	path: Path | None = None
	# Decoded segments of the request path, used to build links
	segments: tuple[str, ...] = ()
	# The stat observed at resolution, to re-check the target when opened
	stat: os.stat_result | None = None
	# Why the target is invalid or missing, for the logs only
	reason: str | None = None

	@property
	def isServable(self) -> bool:
		return self.kind in (TargetKind.Directory, TargetKind.File)


def invalid(reason: str, segments: tuple[str, ...] = ()) -> ResolvedTarget:
	debug("Rejected path", Reason=reason)
	return ResolvedTarget(TargetKind.Invalid, segments=segments, reason=reason)


SEPARATORS: tuple[str, ...] = tuple(
	_ for _ in {"/", os.sep, os.altsep or "/"} if _
)


def segments(path: str) -> list[str]:
	"""Splits a decoded path in its segments, dropping the empty and `.`
	segments produced by repeated separators."""
	for sep in SEPARATORS:
		if sep != "/":
			path = path.replace(sep, "/")
	return [_ for _ in path.split("/") if _ and _ != "."]


def resolve(root: ShareRoot, requestPath: str) -> ResolvedTarget:
	"""Maps the raw, URL-encoded `requestPath` to a canonical location within
	`root`. Never raises: any failure is reported as a `Missing` or
	`Invalid` target."""
	if "\x00" in requestPath:
		return invalid("Null byte in raw path")
	try:
		decoded: str = unquote(requestPath, errors="strict")
	except UnicodeDecodeError:
		return invalid("Path is not valid UTF-8")
	if "\x00" in decoded:
		return invalid("Null byte in decoded path")
	parts: tuple[str, ...] = tuple(segments(decoded))
	# Parent traversal is rejected by policy, before touching the filesystem.
	if ".." in parts:
		return invalid("Parent traversal", parts)
	candidate: Path = root.path.joinpath(*parts)
	try:
		canonical = Path(os.path.realpath(candidate))
	except (OSError, ValueError) as e:
		return invalid(f"Canonicalization failed: {e.__class__.__name__}", parts)
	# Containment is checked on the canonical form, which is what defeats
	# escapes through symlinks. It's checked before existence, so that
	# out-of-root paths are never reported as missing.
	if not root.contains(canonical):
		return invalid("Path escapes share root", parts)
	try:
		st = os.lstat(canonical)
	except (FileNotFoundError, NotADirectoryError):
		return ResolvedTarget(TargetKind.Missing, segments=parts, reason="Not found")
	except (OSError, ValueError) as e:
		return invalid(f"Stat failed: {e.__class__.__name__}", parts)
	if stat.S_ISDIR(st.st_mode):
		return ResolvedTarget(TargetKind.Directory, canonical, parts, st)
	elif stat.S_ISREG(st.st_mode):
		return ResolvedTarget(TargetKind.File, canonical, parts, st)
	else:
		# Sockets, devices, FIFOs, or a symlink that appeared after the
		# canonicalization.
		return invalid("Target is not a regular file or a directory", parts)


# EOF
