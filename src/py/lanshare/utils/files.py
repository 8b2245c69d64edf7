from pathlib import Path

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

# A fixed table, so that the served types don't depend on the host's
# mime.types database.
CONTENT_TYPES: dict[str, str] = {
	# Text
	"txt": "text/plain; charset=utf-8",
	"md": "text/markdown; charset=utf-8",
	"csv": "text/csv; charset=utf-8",
	"log": "text/plain; charset=utf-8",
	"html": "text/html; charset=utf-8",
	"htm": "text/html; charset=utf-8",
	"css": "text/css; charset=utf-8",
	"js": "text/javascript; charset=utf-8",
	"mjs": "text/javascript; charset=utf-8",
	"json": "application/json",
	"xml": "application/xml",
	"yaml": "application/yaml",
	"yml": "application/yaml",
	# Images
	"png": "image/png",
	"jpg": "image/jpeg",
	"jpeg": "image/jpeg",
	"gif": "image/gif",
	"webp": "image/webp",
	"svg": "image/svg+xml",
	"ico": "image/x-icon",
	"bmp": "image/bmp",
	"avif": "image/avif",
	# Audio & video
	"mp3": "audio/mpeg",
	"m4a": "audio/mp4",
	"ogg": "audio/ogg",
	"wav": "audio/wav",
	"flac": "audio/flac",
	"mp4": "video/mp4",
	"m4v": "video/mp4",
	"webm": "video/webm",
	"mkv": "video/x-matroska",
	"mov": "video/quicktime",
	"avi": "video/x-msvideo",
	# Documents
	"pdf": "application/pdf",
	"epub": "application/epub+zip",
	"doc": "application/msword",
	"docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
	"xls": "application/vnd.ms-excel",
	"xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
	"ppt": "application/vnd.ms-powerpoint",
	"pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
	"odt": "application/vnd.oasis.opendocument.text",
	# Archives
	"zip": "application/zip",
	"gz": "application/gzip",
	"tgz": "application/gzip",
	"bz2": "application/x-bzip2",
	"xz": "application/x-xz",
	"7z": "application/x-7z-compressed",
	"tar": "application/x-tar",
	"rar": "application/vnd.rar",
	"wasm": "application/wasm",
}

SIZE_UNITS: tuple[str, ...] = ("B", "KB", "MB", "GB", "TB", "PB")


def contentType(path: Path | str) -> str:
	"""Returns the content type for the given path based on its extension."""
	name = path.name if isinstance(path, Path) else str(path)
	if "." not in name:
		return DEFAULT_CONTENT_TYPE
	return CONTENT_TYPES.get(name.rsplit(".", 1)[-1].lower(), DEFAULT_CONTENT_TYPE)


def humanSize(size: int) -> str:
	"""Formats a byte count like `512 B` or `1.50 KB`."""
	value = float(size)
	unit = 0
	while value >= 1024.0 and unit < len(SIZE_UNITS) - 1:
		value /= 1024.0
		unit += 1
	return f"{size} {SIZE_UNITS[0]}" if unit == 0 else f"{value:.2f} {SIZE_UNITS[unit]}"


# EOF
