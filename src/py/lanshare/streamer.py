import os
import stat
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote

from .errors import InvalidPath, TransientIOFailure
from .http.model import HTTPBodyFile
from .resolver import ResolvedTarget, ShareRoot, TargetKind
from .utils.files import contentType


class FileStream:
	"""An open, verified, read-only handle on a file of the share, along
	with what the response needs to announce it."""

	__slots__ = ["path", "file", "size", "contentType"]

	@classmethod
	def Open(cls, root: ShareRoot, target: ResolvedTarget) -> "FileStream":
		"""Opens the file resolved as `target`. The filesystem may have
		changed since the resolution, so the opened file is checked again
		and any mismatch fails closed."""
		if target.kind is not TargetKind.File or target.path is None:
			raise InvalidPath(f"Target is not a file: {target.kind.name}")
		path: Path = target.path
		try:
			f: BinaryIO = open(path, "rb")
		except OSError as e:
			raise TransientIOFailure(f"Could not open file: {e.__class__.__name__}") from e
		try:
			st = os.fstat(f.fileno())
			if not stat.S_ISREG(st.st_mode):
				raise TransientIOFailure("File is not a regular file anymore")
			if target.stat and (st.st_dev, st.st_ino) != (
				target.stat.st_dev,
				target.stat.st_ino,
			):
				raise TransientIOFailure("File was replaced since it was resolved")
			if not root.contains(Path(os.path.realpath(path))):
				raise InvalidPath("File escapes share root since it was resolved")
		except OSError as e:
			f.close()
			raise TransientIOFailure(f"Could not stat file: {e.__class__.__name__}") from e
		except Exception:
			f.close()
			raise
		return cls(path, f, st.st_size)

	def __init__(self, path: Path, file: BinaryIO, size: int):
		self.path: Path = path
		self.file: BinaryIO = file
		self.size: int = size
		self.contentType: str = contentType(path)

	@property
	def body(self) -> HTTPBodyFile:
		return HTTPBodyFile(self.file, self.size)

	def disposition(self) -> str:
		"""The `Content-Disposition` header value to download the file under
		its own name, with an ASCII fallback for older clients."""
		name = self.path.name
		fallback = "".join(
			_ if " " <= _ <= "~" and _ not in '"\\' else "_" for _ in name
		)
		return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(name, safe='')}"

	def close(self) -> None:
		self.file.close()

	def __enter__(self) -> "FileStream":
		return self

	def __exit__(self, *args: object) -> None:
		self.close()


def stream(root: ShareRoot, target: ResolvedTarget) -> FileStream:
	return FileStream.Open(root, target)


# EOF
