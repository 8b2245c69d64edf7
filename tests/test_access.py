import io
import re

import pytest

from lanshare.access import AccessLog, AccessRecord
from lanshare.utils.logging import (
	SINKS,
	FileSink,
	LogLevel,
	StreamSink,
	addSink,
	removeSink,
)


def plain(out: io.StringIO) -> str:
	"""The output without its color codes."""
	return re.sub(r"\033\[[\d;]*m", "", out.getvalue())


@pytest.fixture
def stream():
	out = io.StringIO()
	sink = addSink(StreamSink(out))
	yield out
	removeSink(sink)


def test_record(stream):
	records: list[AccessRecord] = []
	log = AccessLog(onRecord=records.append)
	rec = log.record("10.0.0.2:5123", "GET", "/docs/", 200, at=1_700_000_000.0, sent=512)
	assert records == [rec]
	assert log.count == 1
	assert rec.time == 1_700_000_000.0
	line = plain(stream)
	assert "GET" in line
	assert "/docs/" in line
	assert "Status=200" in line
	assert "Client=10.0.0.2:5123" in line
	assert "Sent=512" in line


def test_disabled_log_still_counts(stream):
	records: list[AccessRecord] = []
	log = AccessLog(enabled=False, onRecord=records.append)
	log.record("-", "POST", "/a", 405)
	assert log.count == 1
	assert len(records) == 1
	assert stream.getvalue() == ""


def test_error_is_recorded(stream):
	rec = AccessLog().record("c", "GET", "/big.iso", 200, sent=10, error="incomplete body")
	assert rec.error == "incomplete body"
	assert "Error='incomplete body'" in plain(stream)


def test_failing_sink_never_raises():
	class Broken(StreamSink):
		def _write(self, line: str) -> None:
			raise OSError("disk full")

	sink = addSink(Broken())
	try:
		rec = AccessLog().record("c", "GET", "/", 200)
		assert rec.status == 200
	finally:
		removeSink(sink)
	assert sink not in SINKS


def test_failing_callback_never_raises():
	def onRecord(rec: AccessRecord) -> None:
		raise RuntimeError("callback failed")

	log = AccessLog(enabled=False, onRecord=onRecord)
	rec = log.record("c", "GET", "/", 200)
	assert rec.status == 200
	assert log.count == 1


def test_file_sink(tmp_path):
	path = tmp_path / "logs" / "lanshare.log"
	sink = addSink(FileSink(path))
	try:
		AccessLog().record("c", "GET", "/missing", 404, at=0.0)
	finally:
		removeSink(sink)
	line = path.read_text().strip()
	assert line.startswith("[")
	assert "] WARNING - GET /missing" in line
	assert "Status=404" in line


def test_level():
	seen: list[LogLevel] = []

	class Levels(StreamSink):
		def _write(self, line: str) -> None:
			pass

		def write(self, entry) -> None:
			seen.append(entry.level)

	sink = addSink(Levels())
	try:
		log = AccessLog()
		log.record("c", "GET", "/", 200)
		log.record("c", "GET", "/x", 404)
		log.record("c", "GET", "/y", 500)
		log.record("c", "GET", "/z", 200, error="client disconnected")
	finally:
		removeSink(sink)
	assert seen == [LogLevel.Info, LogLevel.Warning, LogLevel.Error, LogLevel.Error]


# EOF
