import time
from typing import NamedTuple, Callable

from .utils.logging import LogLevel, event, exception


class AccessRecord(NamedTuple):
	"""What is recorded for every request, once."""

	client: str
	method: str
	path: str
	status: int
	time: float
	sent: int = 0
	error: str | None = None


class AccessLog:
	"""Records one entry per request. Recording is best effort: a failing
	log sink is reported but never fails the response."""

	def __init__(
		self,
		enabled: bool = True,
		*,
		onRecord: Callable[[AccessRecord], None] | None = None,
	) -> None:
		self.enabled: bool = enabled
		self.onRecord: Callable[[AccessRecord], None] | None = onRecord
		self.count: int = 0

	def record(
		self,
		client: str,
		method: str,
		path: str,
		status: int,
		*,
		at: float | None = None,
		sent: int = 0,
		error: str | None = None,
	) -> AccessRecord:
		rec = AccessRecord(
			client=client,
			method=method,
			path=path,
			status=status,
			time=time.time() if at is None else at,
			sent=sent,
			error=error,
		)
		self.count += 1
		try:
			if self.enabled:
				self.write(rec)
			if self.onRecord:
				self.onRecord(rec)
		except Exception as e:
			exception(e, "Could not write access record")
		return rec

	def write(self, rec: AccessRecord) -> None:
		context: dict[str, str | int | None] = {
			"Status": rec.status,
			"Client": rec.client,
			"Sent": rec.sent,
		}
		if rec.error:
			context["Error"] = rec.error
		if rec.error or rec.status >= 500:
			level = LogLevel.Error
		elif rec.status >= 400:
			level = LogLevel.Warning
		else:
			level = LogLevel.Info
		event(rec.method, rec.path, at=rec.time, level=level, **context)


# EOF
