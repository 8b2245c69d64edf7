"""
Share Example

Shares a directory with the local network, with a custom service on top
of the built-in `FileService`.

Features shown:
- Directory listings and file downloads from a share root
- Extending the file service with an extra route
- Recording requests with a callback

Usage:
    python share.py [DIRECTORY]

Test with:
    http://localhost:8080/                 # Browse the share
    http://localhost:8080/?format=json     # Listing as JSON
    http://localhost:8080/README.md?download
    http://localhost:8080/stats            # Requests served so far
"""

import asyncio
import sys

from lanshare.access import AccessLog, AccessRecord
from lanshare.decorators import on
from lanshare.model import mount
from lanshare.server import AIOSocketServer, ServerOptions
from lanshare.services.files import FileService
from lanshare.utils.logging import info


class StatsFileService(FileService):
	"""A file service that also reports how many requests it served."""

	def __init__(self, root: str):
		super().__init__(root)
		self.statuses: dict[int, int] = {}

	def onRecord(self, record: AccessRecord) -> None:
		self.statuses[record.status] = self.statuses.get(record.status, 0) + 1

	# The priority makes this route win over the catch-all file route, so a
	# file named `stats` at the root is shadowed.
	@on(priority=1, GET_HEAD="/stats")
	def stats(self, request):
		return request.returns({str(k): v for k, v in sorted(self.statuses.items())})


if __name__ == "__main__":
	service = StatsFileService(sys.argv[1] if len(sys.argv) > 1 else ".")
	info("Starting share example", Root=str(service.root))
	app = mount(service, access=AccessLog(onRecord=service.onRecord))
	asyncio.run(AIOSocketServer.Serve(app, ServerOptions(host="127.0.0.1")))

# EOF
