import os
import sys
import time
import inspect
import threading
from enum import Enum
from pathlib import Path
from typing import ClassVar, NamedTuple, Any, TextIO, TypeAlias
from contextvars import ContextVar

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
FORCE_COLOR: bool = "FORCE_COLOR" in os.environ
COLOR: bool = FORCE_COLOR or NO_COLOR is False

TValue: TypeAlias = str | int | float | bool | None

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="lanshare")


class Term:
	BOLD: ClassVar[str] = "" if NO_COLOR else "\033[1m"
	NORMAL: ClassVar[str] = "" if NO_COLOR else "\033[0m"
	RESET: ClassVar[str] = "" if NO_COLOR else "\033[0m"

	@staticmethod
	def Color(color: int, bold: bool = False) -> str:
		return f"\033[{'1' if bold else '0'};38;5;{color}m" if COLOR else ""


class LogType(Enum):
	Message = 0  # A general information message
	Event = 20  # An event, like a served request


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: Any = None
	context: dict[str, TValue] | None = None
	icon: str | None = None
	stack: list[str] | None = None


TStack: TypeAlias = list[str]


def callstack(offset: int = 1) -> list[str]:
	"""Returns a list of function/method names on the call stack.
	For methods, the class name is included as 'ClassName.methodName'."""
	return [
		(
			f"{_.frame.f_locals['self'].__class__.__qualname__}.{_.function}"
			if "self" in _.frame.f_locals
			else _.function
		).replace("<lambda>", "λ")
		for _ in reversed(inspect.stack()[offset:])
	]


def formatData(value: Any, *, color: bool = True) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		bold, normal = (Term.BOLD, Term.NORMAL) if color else ("", "")
		return " ".join(
			f"{bold}{k}{normal}={formatData(v, color=color)}" for k, v in value.items()
		)
	elif isinstance(value, list) or isinstance(value, tuple):
		return ",".join(formatData(v, color=color) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


# -----------------------------------------------------------------------------
#
# SINKS
#
# -----------------------------------------------------------------------------


class LogSink:
	"""Receives log entries. Sinks may be called from more than one thread."""

	def __init__(self) -> None:
		self.lock = threading.Lock()

	def write(self, entry: LogEntry) -> None:
		line = self.format(entry)
		with self.lock:
			self._write(line)

	def format(self, entry: LogEntry) -> str:
		raise NotImplementedError

	def _write(self, line: str) -> None:
		raise NotImplementedError

	def close(self) -> None:
		pass


class StreamSink(LogSink):
	"""Colored, human oriented output on a terminal stream."""

	def __init__(self, stream: TextIO | None = None) -> None:
		super().__init__()
		self.stream: TextIO | None = stream

	def format(self, entry: LogEntry) -> str:
		icon: str = f" {entry.icon}" if entry.icon else ""
		clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
		if entry.type == LogType.Event:
			line = f"{clr}{Term.BOLD}[{entry.origin}] {entry.name}{Term.RESET} {formatData(entry.value)} {formatData(entry.context)}{Term.RESET}\n"
		else:
			line = f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET}{icon} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
		if entry.stack:
			line += f"{clr}{Term.Color(38)}  {' ' * len(entry.origin)} {'→'.join(entry.stack)}{Term.RESET}\n"
		return line

	def _write(self, line: str) -> None:
		# We resolve stderr late so that redirections (and test captures)
		# are honoured.
		stream = self.stream or sys.stderr
		stream.write(line)
		stream.flush()


class FileSink(LogSink):
	"""Appends plain text lines to a log file, like
	`[17-10-26 12:00:00] INFO - GET /docs Status=200`."""

	def __init__(self, path: Path | str) -> None:
		super().__init__()
		self.path: Path = Path(path)
		self.path.parent.mkdir(parents=True, exist_ok=True)
		self.file: TextIO = open(self.path, "a", encoding="utf8")

	def format(self, entry: LogEntry) -> str:
		stamp = time.strftime("%d-%m-%y %H:%M:%S", time.localtime(entry.time))
		level = entry.level.name.upper()
		context = formatData(entry.context, color=False) if entry.context else ""
		if entry.type == LogType.Event:
			text = f"{entry.name} {formatData(entry.value, color=False)}"
		else:
			text = entry.message or ""
		return f"[{stamp}] {level} - {text}{' ' if context else ''}{context}\n"

	def _write(self, line: str) -> None:
		self.file.write(line)
		self.file.flush()

	def close(self) -> None:
		with self.lock:
			self.file.close()


SINKS: list[LogSink] = [StreamSink()]


def addSink(sink: LogSink) -> LogSink:
	SINKS.append(sink)
	return sink


def removeSink(sink: LogSink) -> LogSink:
	if sink in SINKS:
		SINKS.remove(sink)
	sink.close()
	return sink


def send(entry: LogEntry) -> LogEntry:
	for sink in SINKS:
		sink.write(entry)
	return entry


# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------


def entry(
	*,
	origin: str | None = None,
	at: float | None = None,
	type: LogType = LogType.Message,
	level: LogLevel = LogLevel.Info,
	message: str | None = None,
	name: str | None = None,
	value: Any = None,
	context: dict[str, TValue],
	icon: str | None = None,
	stack: TStack | bool | None = None,
) -> LogEntry:
	return LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time() if at is None else at,
		type=type,
		level=level,
		message=message,
		name=name,
		value=value,
		context=context,
		icon=icon,
		stack=callstack(2) if stack is True else stack if stack else None,
	)


def debug(
	message: str,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	**context: TValue,
) -> LogEntry:
	return send(
		entry(
			message=message,
			level=LogLevel.Debug,
			origin=origin,
			at=at,
			context=context,
			icon=icon,
		)
	)


def info(
	message: str,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	**context: TValue,
) -> LogEntry:
	return send(
		entry(message=message, origin=origin, at=at, context=context, icon=icon)
	)


def warning(
	message: str,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	stack: TStack | bool | None = None,
	**context: TValue,
) -> LogEntry:
	return send(
		entry(
			message=message,
			level=LogLevel.Warning,
			origin=origin,
			at=at,
			context=context,
			icon=icon,
			stack=stack,
		)
	)


def error(
	message: str,
	code: int | str | None,
	*,
	origin: str | None = None,
	at: float | None = None,
	icon: str | None = None,
	stack: TStack | bool | None = None,
	**context: TValue,
) -> LogEntry:
	return send(
		entry(
			message=message,
			value=code,
			level=LogLevel.Error,
			origin=origin,
			at=at,
			context=context,
			icon=icon,
			stack=stack,
		)
	)


def event(
	event: str,
	value: Any = None,
	*,
	origin: str | None = None,
	at: float | None = None,
	level: LogLevel = LogLevel.Info,
	**context: TValue,
) -> LogEntry:
	return send(
		entry(
			name=event,
			value=value,
			type=LogType.Event,
			level=level,
			origin=origin,
			at=at,
			context=context,
		)
	)


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	try:
		stream = sys.stderr
		stream.write(
			f"!!! EXCP {f'{message}: [{exception.__class__.__name__}] {exception}' if message else f'[{exception.__class__.__name__}] {exception}'}\n"
		)
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			stream.write(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n",
			)
			tb = tb.tb_next
		stream.flush()
	except Exception:  # nosec: B110
		# Swallow all exceptions so that this function can be called from an exception
		# handler safely, such as in the implementation of logging sinks.
		pass

	# Return the exception so that this function can be called like:
	#   raise exception(e)
	return exception


# EOF
