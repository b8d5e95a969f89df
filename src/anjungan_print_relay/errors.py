"""
Error taxonomy for the print relay.

Client errors (bad or missing input) map to HTTP 400, execution errors
(shell-outs, print primitives, rendering) map to HTTP 500. The server turns
every PrintRelayError into a `{success: false, error}` response.
"""


class PrintRelayError(Exception):
    """Base class for errors reported back to the HTTP caller."""

    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidEncoding(PrintRelayError):
    """Hex/base64 payload could not be decoded under an explicit encoding signal."""

    status = 400


class MissingPayload(PrintRelayError):
    """No field in the request body carried any byte content."""

    status = 400


class MissingTarget(PrintRelayError):
    """No printer or share field was populated."""

    status = 400


class OSSubmissionFailure(PrintRelayError):
    """A shell-out or print primitive exited non-zero, raised, or timed out."""

    status = 500


class RenderFailure(PrintRelayError):
    """Headless HTML rendering failed or timed out."""

    status = 500
