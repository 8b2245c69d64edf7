import asyncio
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, NamedTuple

from .access import AccessLog
from .config import HOST, LOG_REQUESTS, PORT
from .http.model import (
	HTTPBodyFile,
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
	IncompleteBody,
)
from .http.parser import HTTPParser
from .model import Application, Service, mount
from .utils.logging import debug, event, exception, info, warning, error


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = "0.0.0.0"  # nosec: B104
	port: int = 8080
	backlog: int = 1_024
	# This is the polling timeout for accepting new requests. Every second is
	# good
	polling: float = 1.0
	readsize: int = 4_096
	# Idle time after which a kept-alive connection is closed. There is no
	# timeout on a response being streamed.
	keepalive: float = 60.0
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True
	# Called with the bound host and port once the server listens
	onListening: Callable[[str, int], None] | None = None


OPTIONS: ServerOptions = ServerOptions()

SERVER_BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain; charset=utf-8\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad Request"
)

SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain; charset=utf-8\r\n"
	b"Content-Length: 21\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal Server Error"
)


def clientName(address: Any) -> str:
	if isinstance(address, tuple) and len(address) >= 2:
		return f"{address[0]}:{address[1]}"
	else:
		return str(address or "-")


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
	) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(self, chunk: bytes) -> int:
		await self.loop.sock_sendall(self.client, chunk)
		return len(chunk)

	async def _writeFile(self, body: HTTPBodyFile) -> int:
		# The count caps what is sent to what was announced, even if the
		# file grew in the meantime. A file that shrank makes this return
		# less than the count.
		return await self.loop.sock_sendfile(self.client, body.file, 0, body.length)


class AIOSocketServer:
	"""AsyncIO backend using sockets directly."""

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		client: socket.socket,
		address: Any,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Asynchronous worker, processing the requests of a client
		connection in the context of an application."""
		name: str = clientName(address)
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		req_count: int = 0
		try:
			parser: HTTPParser = HTTPParser()
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			while keep_alive and not writer.shouldClose:
				try:
					chunk = await asyncio.wait_for(
						loop.sock_recv(client, options.readsize),
						timeout=options.keepalive,
					)
				except asyncio.TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not chunk:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				# With HTTP pipelining, we may receive more than one request
				# in the same payload.
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						await cls.SendBadRequest(app, writer, name)
						keep_alive = False
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						# We never read request bodies, so the connection
						# can't be reused after a request that has one.
						if atom.hasBody or not atom.keepAlive:
							keep_alive = False
						await cls.SendResponse(
							atom, app, writer, name, close=not keep_alive
						)
					if not keep_alive or writer.shouldClose:
						break
			debug(
				"Connection closed",
				Client=name,
				Requests=req_count,
				Status=status.name,
			)
		except ConnectionError as e:
			debug("Connection lost", Client=name, Reason=e.__class__.__name__)
		except Exception as e:
			exception(e)
		finally:
			# The above loop takes care of keep alive, so we always close
			# the connection on exit.
			client.close()

	@staticmethod
	async def SendBadRequest(
		app: Application, writer: HTTPBodyWriter, client: str
	) -> None:
		writer.shouldClose = True
		try:
			await writer.write(SERVER_BAD_REQUEST)
		except OSError as e:
			debug("Could not send response", Client=client, Reason=e.__class__.__name__)
		finally:
			app.record(client, "-", "-", 400)

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: HTTPBodyWriter,
		client: str,
		*,
		close: bool = False,
	) -> HTTPResponse | None:
		"""Processes the request within the application and sends a response
		using the given writer. The request is recorded exactly once, whatever
		happens."""
		res: HTTPResponse | None = None
		status: int = 500
		sent: int = 0
		failure: str | None = None
		try:
			r = app.process(request)
			res = r if isinstance(r, HTTPResponse) else await r
		except Exception as e:
			exception(e, "Request processing failed")
			failure = e.__class__.__name__
		try:
			if res is None:
				writer.shouldClose = True
				await writer.write(SERVER_ERROR)
			else:
				status = res.status
				res.shouldClose = res.shouldClose or close
				await writer.write(res.head())
				# HEAD responses have the same head as GET ones, but no body.
				if request.method != "HEAD":
					sent = await writer.write(res.body)
				if res.shouldClose:
					writer.shouldClose = True
		except IncompleteBody as e:
			# The head is sent, so the only way to notify the client is to
			# abort the connection.
			warning("Aborting incomplete response", Client=client, Path=request.path)
			writer.shouldClose = True
			sent = e.written
			failure = "incomplete body"
		except ConnectionError as e:
			# Client did an early close
			writer.shouldClose = True
			failure = f"client disconnected ({e.__class__.__name__})"
		except OSError as e:
			writer.shouldClose = True
			failure = f"I/O error ({e.__class__.__name__})"
			exception(e, "Response interrupted")
		finally:
			if res:
				res.close()
			app.record(
				client, request.method, request.path, status, sent=sent, error=failure
			)
		return res

	@classmethod
	async def Serve(
		cls,
		app: Application,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
		except OSError as e:
			server.close()
			error(
				f"Unable to bind to {options.host}:{options.port}, aborting.",
				"HOSTPORTERR",
			)
			raise e
		host, port = server.getsockname()[:2]
		# The argument is the backlog of connections that will be accepted before
		# they are refused.
		server.listen(options.backlog)
		# This is what we need to use it with asyncio
		server.setblocking(False)

		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()

		state = ServerState()
		# Signal handlers can only be registered from the main thread.
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, lambda: state.stop())
			loop.add_signal_handler(SIGTERM, lambda: state.stop())
		loop.set_exception_handler(state.onException)

		await app.start()
		info("Server listening", icon="🚀", Host=host, Port=port)
		if options.onListening:
			options.onListening(host, port)

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, address = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(app, client, address, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			await app.stop()


def run(
	*components: Application | Service,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	keepalive: float = OPTIONS.keepalive,
	condition: Callable[[], bool] | None = None,
	logRequests: bool = LOG_REQUESTS,
	onListening: Callable[[str, int], None] | None = None,
) -> None:
	"""High level function to run the server."""
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		keepalive=keepalive,
		condition=condition,
		onListening=onListening,
	)
	app = mount(*components, access=AccessLog(enabled=logRequests))
	try:
		asyncio.run(AIOSocketServer.Serve(app, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
