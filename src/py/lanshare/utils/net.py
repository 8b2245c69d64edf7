import socket

from .logging import debug

# An address that is never contacted: connecting a UDP socket sends no
# packet, it only makes the system pick the outgoing interface.
PROBE_ADDRESS: tuple[str, int] = ("10.254.254.254", 1)

LOOPBACK: str = "127.0.0.1"


def localAddress() -> str:
	"""Returns the first non-loopback IPv4 address of this host, as seen by
	the other hosts of the LAN, or the loopback address when there is
	none."""
	s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
	try:
		s.connect(PROBE_ADDRESS)
		address: str = s.getsockname()[0]
	except OSError as e:
		debug("Could not detect local address", Reason=e.__class__.__name__)
		address = LOOPBACK
	finally:
		s.close()
	return LOOPBACK if address.startswith("127.") or address == "0.0.0.0" else address  # nosec: B104


def shareURL(host: str, port: int) -> str:
	"""The URL the share is reachable at from the LAN. Wildcard hosts are
	replaced by the detected local address."""
	if host in ("", "0.0.0.0", "::"):  # nosec: B104
		host = localAddress()
	return f"http://{host}:{port}/"


# EOF
