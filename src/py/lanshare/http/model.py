import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import (
	Any,
	BinaryIO,
	Callable,
	NamedTuple,
	TypeAlias,
	TypeVar,
)
from urllib.parse import unquote_plus

from ..utils.io import DEFAULT_ENCODING
from .api import ResponseFactory
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in name.split("-"))
		headers[key] = normalized
		return normalized


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		res[unquote_plus(kv[0])] = unquote_plus(kv[1]) if len(kv) > 1 else ""
	return res


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Complete = 2
	Timeout = 10
	NoData = 11
	BadFormat = 12


# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class HTTPRequestError(Exception):
	"""To be raised by handlers to generate an error response, 500 unless
	a status is given."""

	STATUS: int = 500

	def __init__(self, message: str, status: int | None = None):
		super().__init__(message)
		self.message: str = message
		self.status: int = self.STATUS if status is None else status


class IncompleteBody(Exception):
	"""The body could not be written in full, the connection must be
	aborted as the announced length can't be honoured."""

	def __init__(self, expected: int, written: int):
		super().__init__(f"Body interrupted after {written}/{expected} bytes")
		self.expected: int = expected
		self.written: int = written


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a whole body as bytes."""

	payload: bytes = b""

	@property
	def length(self) -> int:
		return len(self.payload)


class HTTPBodyFile(NamedTuple):
	"""A body streamed from an open file, of which exactly `length` bytes
	are to be sent."""

	file: BinaryIO
	length: int

	def close(self) -> None:
		self.file.close()


THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile


class HTTPBodyWriter(ABC):
	"""A generic writer for bodies."""

	__slots__ = ["shouldClose", "chunkSize"]

	def __init__(self, chunkSize: int = 64_000) -> None:
		self.shouldClose: bool = False
		self.chunkSize: int = chunkSize

	async def write(self, body: THTTPBody | bytes | None) -> int:
		"""Writes the given type of body, returning the number of bytes
		written."""
		if body is None:
			return 0
		elif isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodyFile):
			written = await self._writeFile(body)
			if written != body.length:
				self.shouldClose = True
				raise IncompleteBody(body.length, written)
			return written
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(self, body: HTTPBodyFile) -> int:
		"""Writes at most `body.length` bytes from the file, reading chunks
		in an executor so that the loop is never blocked on disk."""
		loop = asyncio.get_running_loop()
		remaining: int = body.length
		written: int = 0
		while remaining > 0:
			chunk: bytes = await loop.run_in_executor(
				None, body.file.read, min(self.chunkSize, remaining)
			)
			if not chunk:
				# The file was truncated since it was opened
				break
			await self._writeBytes(chunk)
			written += len(chunk)
			remaining -= len(chunk)
		return written

	@abstractmethod
	async def _writeBytes(self, chunk: bytes) -> int: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP requests, which also acts as a factory for
	responses."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"_headers",
		"_params",
		"hasBody",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: str = "",
		headers: HTTPHeaders | None = None,
		protocol: str = "HTTP/1.1",
		hasBody: bool = False,
	):
		super().__init__()
		self.method: str = method
		# NOTE: The path is kept as received, still URL-encoded.
		self.path: str = path
		self.query: str = query
		self.protocol: str = protocol
		self.hasBody: bool = hasBody
		self._headers: HTTPHeaders = headers or HTTPHeaders({})
		self._params: dict[str, str] | None = None

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	@property
	def params(self) -> dict[str, str]:
		if self._params is None:
			self._params = parseQuery(self.query) if self.query else {}
		return self._params

	def param(
		self,
		name: str,
		default: T | None = None,
		processor: Callable[[str | T | None], str | T | None] | None = None,
	) -> str | T | None:
		v = self.params.get(name, default)
		return processor(v) if processor else v

	def hasParam(self, name: str) -> bool:
		return name in self.params

	@property
	def keepAlive(self) -> bool:
		connection = (self.header("Connection") or "").lower()
		if self.protocol == "HTTP/1.0":
			return connection == "keep-alive"
		else:
			return connection != "close"

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol="HTTP/1.1",
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			body = HTTPBodyBlob(content.encode(DEFAULT_ENCODING))
		elif isinstance(content, bytes):
			body = HTTPBodyBlob(content)
		elif isinstance(content, HTTPBodyFile):
			body = content
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		# The length of the body always wins over the given one, as
		# announcing a wrong length breaks the connection framing.
		length: int = body.length if body is not None else (contentLength or 0)
		res_headers: dict[str, str] = {}
		if contentType is not None:
			res_headers["Content-Type"] = contentType
		for k, v in (headers or {}).items():
			res_headers[headername(k)] = v
		res_headers["Content-Length"] = str(length)
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				res_headers,
				contentType=res_headers.get("Content-Type"),
				contentLength=length,
			),
			body=body,
			protocol=protocol,
		)

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
		"shouldClose",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose

	@property
	def contentLength(self) -> int | None:
		return self.headers.contentLength

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [
			f"{headername(k)}: {v}" for k, v in self.headers.headers.items()
		]
		if self.shouldClose and "Connection" not in self.headers.headers:
			lines.append("Connection: close")
		lines.insert(0, f"{self.protocol} {self.status} {message}")
		lines.append("")
		lines.append("")
		# Header values are ASCII only: non-ASCII file names go through
		# RFC 5987 encoding.
		return "\r\n".join(lines).encode("ascii")

	def close(self) -> None:
		"""Releases any resource held by the body, can be called more than
		once."""
		if isinstance(self.body, HTTPBodyFile):
			self.body.close()

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
