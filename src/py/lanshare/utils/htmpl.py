from typing import (
	LiteralString,
	Iterable,
	Iterator,
	Union,
	Callable,
	cast,
)
from mypy_extensions import KwArg, VarArg

# --
# HTMPL defines functions to create HTML documents as node trees. Text
# content and attribute values are always escaped when rendered, so that
# untrusted strings (like file names) can be passed as-is.

HTML_EMPTY: list[LiteralString] = (
	"area base br col embed hr img input link meta source track wbr".split()
)
HTML_ESCAPED = str.maketrans(
	{"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}
)


def escape(text: str) -> str:
	return text.translate(HTML_ESCAPED)


TNodeContent = Union["Node", str, int, float]
TAttributeContent = str | bool | float | int | None


class Node:
	__slots__ = ["name", "attributes", "children"]

	def __init__(
		self,
		name: str,
		children: Iterable[TNodeContent] | None = None,
		attributes: dict[str, TAttributeContent] | None = None,
	):
		self.name = name
		self.attributes: dict[str, TAttributeContent] = attributes or {}
		self.children: list[TNodeContent] = [_ for _ in children] if children else []

	def iterHTML(self) -> Iterator[str]:
		if self.name == "#text":
			yield escape(str(self.attributes.get("#value") or ""))
		elif self.name == "#raw":
			yield str(self.attributes.get("#value") or "")
		else:
			yield f"<{self.name}"
			for k, v in self.attributes.items():
				if v is None or v is False:
					continue
				yield f" {k}" if v is True else f' {k}="{escape(str(v))}"'
			yield ">"
			if self.name in HTML_EMPTY:
				return
			for _ in self.children:
				if isinstance(_, Node):
					yield from _.iterHTML()
				else:
					yield escape(str(_))
			yield f"</{self.name}>"

	def __str__(self) -> str:
		return "".join(self.iterHTML())


def text(value: str) -> Node:
	return Node("#text", attributes={"#value": value})


def raw(html: str) -> Node:
	"""Wraps trusted, pre-rendered HTML."""
	return Node("#raw", attributes={"#value": html})


NodeFactory = Callable[
	[
		VarArg(TNodeContent | list[TNodeContent] | None),
		KwArg(TAttributeContent),
	],
	Node,
]


def nodeFactory(name: str) -> NodeFactory:
	def f(*children: TNodeContent | list[TNodeContent] | None, **attributes: TAttributeContent) -> Node:
		content: list[TNodeContent] = []
		for _ in children:
			if _ is None:
				continue
			elif isinstance(_, list):
				content += [text(c) if isinstance(c, str) else c for c in _]
			else:
				content.append(text(_) if isinstance(_, str) else _)
		attrs: dict[str, TAttributeContent] = {}
		for k, v in attributes.items():
			# `_` stands for `class`, and trailing underscores are dropped so
			# that `for_` becomes `for`.
			attrs["class" if k == "_" else k.rstrip("_")] = v
		return Node(name, content, attrs)

	f.__name__ = name
	return cast(NodeFactory, f)


HTML_TAGS: list[LiteralString] = (
	"""\
a body br caption code div footer h1 h2 head header hr html li link main meta
nav ol p section small span strong style table tbody td th thead time title tr
ul\
""".split()
)


class Markup:
	__slots__ = ["_factories", "_name"]

	def __init__(self, name: str, factories: dict[str, NodeFactory]):
		self._name: str = name
		self._factories: dict[str, NodeFactory] = factories

	def __getattr__(self, name: str) -> NodeFactory:
		factories = self._factories
		if name not in factories:
			raise AttributeError(
				f"No tag {name}, pick one of {','.join(factories.keys())}"
			)
		return factories[name]


def markup(name: str, tags: list[LiteralString]) -> Markup:
	return Markup(name, {_: nodeFactory(_) for _ in tags})


H: Markup = markup("html", HTML_TAGS)


def html(*nodes: Node, doctype: str | None = None) -> Iterator[str]:
	if doctype:
		yield f"{doctype}\n" if doctype.startswith("<!") else f"<!DOCTYPE {doctype}>\n"
	for _ in nodes:
		yield from _.iterHTML()


# EOF
