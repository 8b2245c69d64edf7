from typing import Iterator, ClassVar, Literal
from ..utils.io import LineParser, LineTooLong
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	headername,
)

HTTPAtom = HTTPRequestLine | HTTPHeaders | HTTPRequest | HTTPProcessingStatus


class BadFormat(ValueError):
	pass


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` when a request line was parsed, `None` otherwise,
		along with the number of bytes read."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			# Empty lines before a request line are to be ignored
			# (RFC 9112 §2.2).
			return None, read
		try:
			ln = line.decode("ascii")
		except UnicodeDecodeError as e:
			raise BadFormat("Request line is not ASCII") from e
		parts = ln.split(" ")
		if len(parts) != 3:
			raise BadFormat(f"Malformed request line: {ln!r}")
		method, target, protocol = parts
		if not (method.isalpha() and method.isupper()):
			raise BadFormat(f"Malformed method: {method!r}")
		if not protocol.startswith("HTTP/"):
			raise BadFormat(f"Unsupported protocol: {protocol!r}")
		p: list[str] = target.split("?", 1)
		self.value = HTTPRequestLine(method, p[0], p[1] if len(p) > 1 else "", protocol)
		return True, read

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	LIMIT: ClassVar[int] = 100

	def __init__(self) -> None:
		super().__init__()
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line ending the headers, otherwise it's the name of the parsed header."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		try:
			ln: str = line.decode("latin-1")
		except UnicodeDecodeError as e:
			raise BadFormat("Header is not decodable") from e
		i = ln.find(":")
		if i <= 0:
			raise BadFormat(f"Malformed header: {ln!r}")
		h = ln[:i].strip().lower()
		v = ln[i + 1 :].strip()
		if h == "content-length":
			try:
				self.contentLength = int(v)
			except ValueError as e:
				raise BadFormat(f"Malformed Content-Length: {v!r}") from e
		elif h == "content-type":
			self.contentType = v
		n: str = headername(h)
		self.headers[n] = v
		if len(self.headers) > self.LIMIT:
			raise BadFormat("Too many headers")
		return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class HTTPParser:
	"""A stateful HTTP request parser. Request bodies are never parsed: a
	request announcing one is flagged with `hasBody`, and the connection is
	to be closed once it is answered."""

	def __init__(self) -> None:
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.parser: MessageParser | HeadersParser = self.message
		self.requestLine: HTTPRequestLine | None = None

	def reset(self) -> "HTTPParser":
		self.message.reset()
		self.headers.reset()
		self.parser = self.message
		self.requestLine = None
		return self

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# The underlying parsers keep a buffer up until they are flushed,
			# so a partially read chunk doesn't need to be fed again.
			try:
				ln, read = self.parser.feed(chunk, offset)
			except (BadFormat, LineTooLong):
				self.reset()
				yield HTTPProcessingStatus.BadFormat
				return
			offset += read
			if ln is None:
				continue
			elif self.parser is self.message:
				line = self.message.flush()
				self.requestLine = line
				if line is not None:
					yield line
					self.parser = self.headers
			elif ln is False and self.requestLine is not None:
				headers = self.headers.flush()
				yield headers
				line = self.requestLine
				yield HTTPRequest(
					method=line.method,
					path=line.path,
					query=line.query,
					headers=headers,
					protocol=line.protocol,
					hasBody=bool(headers.contentLength)
					or "Transfer-Encoding" in headers.headers,
				)
				self.requestLine = None
				self.parser = self.message.reset()
			# Otherwise `ln` is the name of a parsed header.


# EOF
