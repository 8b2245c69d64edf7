from .http.model import HTTPRequestError, IncompleteBody  # NOQA: F401

# --
# The errors of the file serving engine. They all carry the status they
# surface as, and their message is for the logs only: responses only ever
# contain the status message.


class InvalidPath(HTTPRequestError):
	"""Malformed path, traversal attempt, out-of-root or unservable target."""

	STATUS = 400


class NotFound(HTTPRequestError):
	STATUS = 404


class UnsupportedMethod(HTTPRequestError):
	STATUS = 405


class TransientIOFailure(HTTPRequestError):
	"""The target vanished or became unreadable between its resolution
	and its use."""

	STATUS = 500


# EOF
