import pytest

from lanshare.utils.io import LineParser, LineTooLong


def feedAll(parser: LineParser, chunks: list[bytes]) -> list[bytes]:
	lines: list[bytes] = []
	for chunk in chunks:
		offset: int = 0
		while offset < len(chunk):
			line, read = parser.feed(chunk, offset)
			offset += read
			if line is not None:
				lines.append(line)
	return lines


def test_lines_across_chunks():
	parser = LineParser()
	lines = feedAll(
		parser,
		[
			b"GET /docs/ HTTP/1.1\r\nHost: 127.0.0.1\r\nConnection: close",
			b"\r\n\r",
			b"\n",
		],
	)
	assert lines == [
		b"GET /docs/ HTTP/1.1",
		b"Host: 127.0.0.1",
		b"Connection: close",
		b"",
	]


def test_byte_by_byte():
	payload = b"HEAD / HTTP/1.0\r\nHost: lan\r\n\r\n"
	parser = LineParser()
	lines = feedAll(parser, [payload[i : i + 1] for i in range(len(payload))])
	assert lines == [b"HEAD / HTTP/1.0", b"Host: lan", b""]


def test_line_limit():
	parser = LineParser(limit=64)
	assert parser.feed(b"x" * 64) == (None, 64)
	with pytest.raises(LineTooLong):
		parser.feed(b"x")
	# A line within the limit is fine once the parser is reset
	assert parser.reset().feed(b"ok\r\n") == (b"ok", 4)


# EOF
