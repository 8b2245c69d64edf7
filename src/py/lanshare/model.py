from typing import Iterable, ClassVar, Any, Coroutine

from .access import AccessLog, AccessRecord
from .errors import InvalidPath, UnsupportedMethod
from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .routing import Handler, Dispatcher
from .utils.logging import warning

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
	PREFIX: ClassVar[str] = ""
	NO_HANDLER: ClassVar[list[str]] = [
		"name",
		"app",
		"prefix",
		"_handlers",
		"isMounted",
		"handlers",
		"start",
		"stop",
	]

	def __init__(self, name: str | None = None, *, prefix: str | None = None) -> None:
		self.name: str = name or self.__class__.__name__
		self.app: Application | None = None
		self.prefix = prefix or self.PREFIX
		self._handlers: list[Handler] | None = None

	async def start(self) -> None:
		"""Can be overridden to do asynchronous pre-start work"""
		pass

	async def stop(self) -> None:
		"""Can be overridden to do asynchronous post-stop work"""
		pass

	@property
	def isMounted(self) -> bool:
		return self.app is not None

	@property
	def handlers(self) -> list[Handler]:
		if self._handlers is None:
			self._handlers = list(self.iterHandlers())
		return self._handlers

	def iterHandlers(self) -> Iterable[Handler]:
		for name in dir(self):
			if name in self.NO_HANDLER or name.startswith("__"):
				continue
			handler = Handler.Get(getattr(self, name))
			if handler:
				yield handler

	def __repr__(self) -> str:
		return f"(Service {self.name}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
	"""Routes requests to the handlers of the mounted services. This is where
	the outcome of requests that no handler can take is decided, and where
	every request is recorded."""

	def __init__(
		self,
		services: list[Service] | None = None,
		*,
		access: AccessLog | None = None,
	) -> None:
		self.dispatcher: Dispatcher = Dispatcher()
		self.services: list[Service] = []
		self.access: AccessLog = access or AccessLog()
		for service in services or ():
			self.mount(service)

	async def start(self) -> "Application":
		for srv in self.services:
			await srv.start()
		return self

	async def stop(self) -> "Application":
		for srv in self.services:
			await srv.stop()
		return self

	def process(
		self, request: HTTPRequest
	) -> HTTPResponse | Coroutine[Any, Any, HTTPResponse]:
		# The method is checked first, so that unsupported methods never
		# reach a handler.
		if not self.dispatcher.accepts(request.method):
			return self.onError(
				request, UnsupportedMethod(f"Unsupported method: {request.method}")
			)
		if not request.path.startswith("/"):
			return self.onError(request, InvalidPath("Request target is not a path"))
		route, params = self.dispatcher.match(request.method, request.path)
		if route and route.handler:
			return route.handler(request, params or {})
		else:
			return self.onRouteNotFound(request)

	def onError(self, request: HTTPRequest, error: HTTPRequestError) -> HTTPResponse:
		warning(
			"Request rejected",
			Method=request.method,
			Path=request.path,
			Status=error.status,
			Reason=error.message,
		)
		if isinstance(error, UnsupportedMethod):
			return request.notAllowed(self.dispatcher.methods)
		else:
			return request.error(error.status)

	def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
		return request.notFound()

	def record(
		self,
		client: str,
		method: str,
		path: str,
		status: int,
		*,
		sent: int = 0,
		error: str | None = None,
	) -> AccessRecord:
		return self.access.record(client, method, path, status, sent=sent, error=error)

	def mount(self, service: Service, prefix: str | None = None) -> Service:
		if service.isMounted:
			raise RuntimeError(
				f"Cannot mount service, it is already mounted: {service}"
			)
		for handler in service.handlers:
			self.dispatcher.register(handler, prefix or service.prefix)
		service.app = self
		self.services.append(service)
		return service


def mount(*components: Application | Service, access: AccessLog | None = None) -> Application:
	"""Mounts the given services into an application, which is the
	first given application or a new one."""
	apps: list[Application] = [_ for _ in components if isinstance(_, Application)]
	app: Application = apps[0] if apps else Application(access=access)
	for item in components:
		if isinstance(item, Service):
			app.mount(item)
		elif not isinstance(item, Application):
			raise RuntimeError(f"Unsupported component type {type(item)}: {item}")
	return app


# EOF
