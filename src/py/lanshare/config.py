from os import getenv

PORT: int = int(getenv("PORT", 8080))

# A LAN share is meant to be reachable from the other hosts of the network
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

ROOT: str = getenv("LANSHARE_ROOT", ".")

# Whether listings include hidden (dot) entries
SHOW_HIDDEN: bool = getenv("LANSHARE_HIDDEN", "1") == "1"

# Path of the log file, no log file when empty
LOG_PATH: str | None = getenv("LANSHARE_LOG") or None

LOG_REQUESTS: bool = getenv("LANSHARE_LOG_REQUESTS", "1") == "1"

# EOF
