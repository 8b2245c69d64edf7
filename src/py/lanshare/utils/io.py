DEFAULT_ENCODING: str = "utf8"
EOL: bytes = b"\r\n"

# Request lines and headers longer than this are rejected, so that a client
# can't make us buffer unbounded data while looking for an end of line.
LINE_LIMIT: int = 16_384


class LineTooLong(ValueError):
	pass


class LineParser:
	"""Incrementally extracts lines ending with `eol` from fed chunks."""

	__slots__ = ["buffer", "line", "eol", "eolsize", "offset", "limit"]

	def __init__(self, eol: bytes = EOL, limit: int = LINE_LIMIT) -> None:
		self.buffer: bytearray = bytearray()
		self.line: bytes | None = None
		self.offset: int = 0
		self.eol: bytes = eol
		self.eolsize: int = len(eol)
		self.limit: int = limit

	def reset(self) -> "LineParser":
		self.buffer.clear()
		self.line = None
		self.offset = 0
		return self

	def flush(self) -> bytes | None:
		return self.line

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bytes | None, int]:
		"""Returns the matching line and how many bytes were read in chunk from start. When line is None,
		then the whole chunk has been processed."""
		pos = len(self.buffer)
		self.buffer += chunk[start:]
		end = self.buffer.find(self.eol, self.offset)
		if end == -1:
			if len(self.buffer) > self.limit:
				raise LineTooLong(f"Line exceeds {self.limit} bytes")
			# The end of line may be split across chunks, so we rescan the
			# tail of the buffer next time.
			self.offset = max(0, len(self.buffer) - self.eolsize + 1)
			return None, len(chunk) - start
		elif end > self.limit:
			raise LineTooLong(f"Line exceeds {self.limit} bytes")
		else:
			self.line = bytes(self.buffer[:end])
			self.buffer.clear()
			self.offset = 0
			return self.line, (end - pos) + self.eolsize


# EOF
