import argparse
import sys

from . import config
from .resolver import ShareRoot
from .server import run
from .services.files import FileService
from .utils.logging import FileSink, addSink, error, info
from .utils.net import shareURL


def parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(
		prog="lanshare",
		description="Shares a directory read-only with the hosts of the local network",
	)
	p.add_argument(
		"-p", "--port", type=int, default=config.PORT, help="Port to listen on"
	)
	p.add_argument(
		"-f",
		"--folder",
		default=config.ROOT,
		help="Directory to share, the current one by default",
	)
	p.add_argument(
		"-i",
		"--interface",
		default=config.HOST,
		help="Address of the interface to listen on, all of them by default",
	)
	p.add_argument(
		"--hidden",
		action=argparse.BooleanOptionalAction,
		default=config.SHOW_HIDDEN,
		help="Whether listings include hidden (dot) entries",
	)
	p.add_argument(
		"--log",
		default=config.LOG_PATH,
		help="Also writes the log to the given file",
	)
	return p


def main(args: list[str] | None = None) -> int:
	options = parser().parse_args(args)
	if options.log:
		try:
			addSink(FileSink(options.log))
		except OSError as e:
			error(f"Could not open log file {options.log}: {e}", "LOGFILE")
			return 1
	try:
		root = ShareRoot.Make(options.folder)
	except OSError as e:
		error(f"Cannot share {options.folder}: {e}", "ROOTERR")
		return 1
	info(
		"Sharing directory",
		icon="📂",
		Root=str(root),
		URL=shareURL(options.interface, options.port),
	)
	try:
		run(
			FileService(root, hidden=options.hidden),
			host=options.interface,
			port=options.port,
		)
	except OSError:
		# The server already logged why it could not bind
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
