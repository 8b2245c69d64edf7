import asyncio
import socket
import threading
import time
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from lanshare.access import AccessLog, AccessRecord
from lanshare.http.model import HTTPBodyWriter, HTTPHeaders, HTTPRequest, HTTPResponse
from lanshare.model import Application, mount
from lanshare.server import AIOSocketServer, ServerOptions
from lanshare.services.files import FileService

# A 42 bytes text file
HELLO: bytes = b"Hello from the share, forty-two bytes. :)\n"


class BytesWriter(HTTPBodyWriter):
	"""Collects what is written in memory."""

	def __init__(self) -> None:
		super().__init__()
		self.data: bytearray = bytearray()

	async def _writeBytes(self, chunk: bytes) -> int:
		self.data += chunk
		return len(chunk)


@pytest.fixture
def share(tmp_path: Path) -> Path:
	"""A share root along with a file outside of it."""
	root = tmp_path / "share"
	root.mkdir()
	(root / "hello.txt").write_bytes(HELLO)
	(root / "alpha.xyz").write_bytes(bytes(range(256)))
	(root / ".hidden").write_text("secret")
	(root / "docs").mkdir()
	(root / "docs" / "guide.md").write_text("# Guide\n")
	(root / "Zeta").mkdir()
	(tmp_path / "outside.txt").write_text("not shared")
	return root


@pytest.fixture
def hello() -> bytes:
	return HELLO


@pytest.fixture
def records() -> list[AccessRecord]:
	return []


@pytest.fixture
def app(share: Path, records: list[AccessRecord]) -> Application:
	return mount(
		FileService(share), access=AccessLog(enabled=False, onRecord=records.append)
	)


@pytest.fixture
def fetch(app: Application) -> Callable[..., tuple[HTTPResponse, bytes]]:
	"""Processes a request within the application, returning the response
	and its body."""

	def f(
		method: str, target: str, headers: dict[str, str] | None = None
	) -> tuple[HTTPResponse, bytes]:
		path, _, query = target.partition("?")
		req = HTTPRequest(method, path, query, HTTPHeaders(headers or {}))

		async def process() -> tuple[HTTPResponse, bytes]:
			r = app.process(req)
			res = r if isinstance(r, HTTPResponse) else await r
			writer = BytesWriter()
			try:
				await writer.write(res.body)
			finally:
				res.close()
			return res, bytes(writer.data)

		return asyncio.run(process())

	return f


@pytest.fixture
def server(app: Application) -> Iterator[tuple[str, int]]:
	"""Runs the server on an ephemeral port in a background thread."""
	ready = threading.Event()
	stopped = threading.Event()
	address: dict[str, Any] = {}

	def onListening(host: str, port: int) -> None:
		address["port"] = port
		ready.set()

	options = ServerOptions(
		host="127.0.0.1",
		port=0,
		polling=0.05,
		keepalive=5.0,
		stopSignals=False,
		condition=lambda: not stopped.is_set(),
		onListening=onListening,
	)
	thread = threading.Thread(
		target=lambda: asyncio.run(AIOSocketServer.Serve(app, options)), daemon=True
	)
	thread.start()
	assert ready.wait(5), "Server did not start"
	yield ("127.0.0.1", address["port"])
	stopped.set()
	thread.join(5)


@pytest.fixture
def exchange() -> Callable[[tuple[str, int], bytes], bytes]:
	"""Sends a raw payload and returns everything received until the server
	closes the connection."""

	def f(address: tuple[str, int], payload: bytes) -> bytes:
		chunks: list[bytes] = []
		with socket.create_connection(address, timeout=5) as s:
			s.sendall(payload)
			while data := s.recv(65_536):
				chunks.append(data)
		return b"".join(chunks)

	return f


@pytest.fixture
def waitUntil() -> Callable[..., bool]:
	"""Records are written right after the response, so they may lag
	behind what the client received."""

	def f(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
		deadline = time.monotonic() + timeout
		while not predicate():
			if time.monotonic() > deadline:
				return False
			time.sleep(0.01)
		return True

	return f


# EOF
