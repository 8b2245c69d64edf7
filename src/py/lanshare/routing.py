import re
from inspect import iscoroutine
from typing import Any, Callable, ClassVar, NamedTuple, Pattern

from .decorators import Extra
from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .utils.logging import debug, warning


async def awaited(value: Any) -> Any:
	return (await value) if iscoroutine(value) else value


# -----------------------------------------------------------------------------
#
# ROUTE
#
# -----------------------------------------------------------------------------
#
# A route is a template like `/docs/{name}` or `/{path:any}`. Routes match
# the raw request path, so parameters are extracted still URL-encoded and
# decoding is left to the handler.


class RoutePattern(NamedTuple):
	expr: str
	convert: Callable[[str], Any]


class Literal(NamedTuple):
	text: str


class Parameter(NamedTuple):
	name: str
	pattern: RoutePattern


class Route:
	"""A route template, compiled to a regular expression on first use."""

	RE_PARAMETER: ClassVar[Pattern[str]] = re.compile(
		r"\{(?P<name>[A-Za-z_]\w*)(:(?P<type>[^}]+))?\}"
	)

	# `segment` is the default, `any` spans separators and may be empty.
	PATTERNS: ClassVar[dict[str, RoutePattern]] = {
		"segment": RoutePattern(r"[^/]+", str),
		"int": RoutePattern(r"-?\d+", int),
		"any": RoutePattern(r".*", str),
	}

	@classmethod
	def Parse(cls, template: str) -> list[Literal | Parameter]:
		res: list[Literal | Parameter] = []
		end: int = 0
		for m in cls.RE_PARAMETER.finditer(template):
			if m.start() > end:
				res.append(Literal(template[end : m.start()]))
			kind: str = (m.group("type") or "segment").lower()
			if kind not in cls.PATTERNS:
				raise ValueError(
					f"Unknown route pattern '{kind}' in {template!r}, expected one of: {', '.join(cls.PATTERNS)}"
				)
			res.append(Parameter(m.group("name"), cls.PATTERNS[kind]))
			end = m.end()
		if end < len(template):
			res.append(Literal(template[end:]))
		return res

	def __init__(self, text: str, handler: "Handler | None" = None):
		self.text: str = text
		self.chunks: list[Literal | Parameter] = self.Parse(text)
		self.handler: Handler | None = handler
		self._regexp: Pattern[str] | None = None

	@property
	def priority(self) -> int:
		return self.handler.priority if self.handler else 0

	@property
	def regexp(self) -> Pattern[str]:
		if self._regexp is None:
			self._regexp = re.compile(f"^{self.toRegExp()}$")
		return self._regexp

	def toRegExp(self) -> str:
		return "".join(
			re.escape(_.text)
			if isinstance(_, Literal)
			else f"(?P<{_.name}>{_.pattern.expr})"
			for _ in self.chunks
		)

	def match(self, path: str) -> dict[str, Any] | None:
		"""Returns the converted parameters when the path matches, `None`
		otherwise."""
		m = self.regexp.match(path)
		if not m:
			return None
		return {
			_.name: _.pattern.convert(m.group(_.name))
			for _ in self.chunks
			if isinstance(_, Parameter)
		}

	def __repr__(self) -> str:
		return f"(Route {self.text!r} {self.priority})"


# -----------------------------------------------------------------------------
#
# HANDLER
#
# -----------------------------------------------------------------------------


class Handler:
	"""Binds a function decorated with `@on` to the methods and routes it
	answers."""

	@staticmethod
	def Attr(value: Any, key: str, default: Any = None) -> Any:
		annotations = Extra.Annotations.get(id(value))
		return (
			annotations.get(key, default)
			if annotations is not None
			else getattr(value, key, default)
		)

	@classmethod
	def Get(cls, value: Any) -> "Handler | None":
		"""Returns a handler for the value if it was decorated with `@on`."""
		if not callable(value):
			return None
		methods = cls.Attr(value, Extra.ON)
		return (
			cls(value, methods, cls.Attr(value, Extra.ON_PRIORITY, 0))
			if methods
			else None
		)

	def __init__(
		self,
		functor: Callable[..., Any],
		methods: list[tuple[str, str]],
		priority: int = 0,
	):
		self.functor = functor
		self.priority: int = priority
		self.methods: dict[str, list[str]] = {}
		for method, path in methods:
			self.methods.setdefault(method, []).append(path)

	async def __call__(
		self, request: HTTPRequest, params: dict[str, Any]
	) -> HTTPResponse:
		try:
			return await awaited(self.functor(request, **params))
		except HTTPRequestError as e:
			# The reason stays in the logs, the client only gets the status.
			warning(
				"Request failed",
				Method=request.method,
				Path=request.path,
				Status=e.status,
				Reason=e.message,
			)
			return request.error(e.status)

	def __repr__(self) -> str:
		return f"(Handler {self.functor.__name__} {self.priority} {self.methods})"


# -----------------------------------------------------------------------------
#
# DISPATCHER
#
# -----------------------------------------------------------------------------


class Dispatcher:
	"""Holds the routes of each method, ordered by decreasing priority. Routes
	of equal priority keep their registration order."""

	def __init__(self) -> None:
		self.routes: dict[str, list[Route]] = {}

	@property
	def methods(self) -> list[str]:
		return sorted(self.routes)

	def accepts(self, method: str) -> bool:
		return method in self.routes

	def register(self, handler: Handler, prefix: str | None = None) -> "Dispatcher":
		for method, paths in handler.methods.items():
			routes = self.routes.setdefault(method, [])
			for path in paths:
				path = f"{prefix or ''}{path}"
				if not path.startswith("/"):
					path = f"/{path}"
				debug("Registered route", Method=method, Path=path)
				routes.append(Route(path, handler))
			# `sort` is stable
			routes.sort(key=lambda _: -_.priority)
		return self

	def match(
		self, method: str, path: str
	) -> tuple[Route | None, dict[str, Any] | None]:
		"""Returns the first route matching the `path` for the `method`,
		along with its parameters."""
		for route in self.routes.get(method, ()):
			params = route.match(path)
			if params is not None:
				return route, params
		return None, None


# EOF
