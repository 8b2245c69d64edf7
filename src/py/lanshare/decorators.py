from typing import Any, Callable, ClassVar, TypeVar

T = TypeVar("T")


class Extra:
	"""Names of the attributes set by the decorators."""

	ON: ClassVar[str] = "_lanshare_on"
	ON_PRIORITY: ClassVar[str] = "_lanshare_on_priority"
	# Annotations of values without a `__dict__`, by object id
	Annotations: ClassVar[dict[int, dict[str, Any]]] = {}

	@staticmethod
	def Meta(scope: Any) -> dict[str, Any]:
		"""Returns the mutable mapping holding the annotations of `scope`."""
		attrs = getattr(scope, "__dict__", None)
		if isinstance(attrs, dict):
			return attrs
		return Extra.Annotations.setdefault(id(scope), {})


def on(
	priority: int = 0, **methods: str | list[str] | tuple[str, ...]
) -> Callable[[T], T]:
	"""Makes the decorated method answer the given HTTP methods on the given
	route templates (see `Route`). Methods joined with an underscore share
	the same routes:

	>    @on(GET_HEAD=("/", "/{path:any}"))
	>    def read(self, request, path=""):
	>        ...

	The method takes the request and the route parameters, and returns a
	response or a coroutine producing one. Among the routes matching a path,
	the one with the highest priority wins."""

	def decorator(function: T) -> T:
		meta = Extra.Meta(function)
		routes: list[tuple[str, str]] = meta.setdefault(Extra.ON, [])
		meta.setdefault(Extra.ON_PRIORITY, priority)
		for names, templates in methods.items():
			for template in (templates,) if isinstance(templates, str) else templates:
				routes += [(_, template) for _ in names.upper().split("_") if _]
		return function

	return decorator


# EOF
