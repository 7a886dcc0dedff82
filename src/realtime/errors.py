"""Push-channel failures."""

# Application close code (4000-4999 range) sent when a handshake cannot
# resolve an identity.
UNAUTHENTICATED_CLOSE_CODE = 4401
UNAUTHENTICATED_REASON = "unauthenticated"


class ChannelError(Exception):
    """Base class for push-channel failures."""


class Unauthenticated(ChannelError):
    """No identity could be resolved for the caller."""

    close_code = UNAUTHENTICATED_CLOSE_CODE
    reason = UNAUTHENTICATED_REASON

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail)
        self.detail = detail


class TransportFailure(ChannelError):
    """A send or connect on a single channel failed."""
