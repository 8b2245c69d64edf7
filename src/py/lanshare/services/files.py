import asyncio
from pathlib import Path
from typing import Any, Callable, TypeVar

from ..config import ROOT, SHOW_HIDDEN
from ..decorators import on
from ..errors import InvalidPath, NotFound
from ..http.model import HTTPRequest, HTTPResponse
from ..listing import ListingEntry, asJSON, entries, render
from ..model import Service
from ..resolver import ResolvedTarget, ShareRoot, TargetKind, resolve
from ..streamer import FileStream

T = TypeVar("T")


async def blocking(function: Callable[..., T], *args: Any) -> T:
	"""Runs filesystem work in the loop's executor, so that a slow disk
	doesn't hold back the other requests."""
	return await asyncio.get_running_loop().run_in_executor(None, function, *args)


class FileService(Service):
	"""Serves the share root read-only: directories as listings, files as
	streamed downloads."""

	def __init__(
		self,
		root: ShareRoot | Path | str | None = None,
		*,
		hidden: bool = SHOW_HIDDEN,
	):
		super().__init__()
		self.root: ShareRoot = (
			root if isinstance(root, ShareRoot) else ShareRoot.Make(root or ROOT)
		)
		self.hidden: bool = hidden

	@on(GET_HEAD=("/", "/{path:any}"))
	async def read(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		# HEAD takes the very same path, the server skips the body.
		target: ResolvedTarget = await blocking(resolve, self.root, path)
		match target.kind:
			case TargetKind.Directory:
				return await self.renderDirectory(request, target)
			case TargetKind.File:
				return await self.renderFile(request, target)
			case TargetKind.Missing:
				raise NotFound(target.reason or "Not found")
			case _:
				raise InvalidPath(target.reason or "Invalid path")

	async def renderDirectory(
		self, request: HTTPRequest, target: ResolvedTarget
	) -> HTTPResponse:
		if target.path is None:
			raise InvalidPath("Directory target has no path")
		items = await blocking(self.listing, target.path)
		if request.param("format") == "json":
			return request.respond(asJSON(items), contentType="application/json")
		else:
			return request.respondHTML(render(self.root, target, items))

	async def renderFile(
		self, request: HTTPRequest, target: ResolvedTarget
	) -> HTTPResponse:
		stream: FileStream = await blocking(FileStream.Open, self.root, target)
		headers: dict[str, str] = {}
		if request.hasParam("download"):
			headers["Content-Disposition"] = stream.disposition()
		# The response owns the file from now on, and closes it once sent.
		return request.respond(
			stream.body, contentType=stream.contentType, headers=headers
		)

	def listing(self, path: Path) -> list[ListingEntry]:
		return entries(path, root=self.root, hidden=self.hidden)


# EOF
