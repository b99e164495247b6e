"""Exception hierarchy for the GPS Track Viewer."""


class TrackViewerError(Exception):
    """Base exception for all viewer errors."""


class TrackSourceError(TrackViewerError):
    """A track source could not be fetched or is unusable as a whole.

    Individual malformed rows never raise; they are dropped during parsing.
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"{source}: {message}")


class UnknownDeviceError(TrackViewerError, KeyError):
    """The device identifier is not in the registry."""

    def __init__(self, device: str) -> None:
        self.device = device
        super().__init__(f"Unknown device: {device}")

    def __str__(self) -> str:
        return self.args[0]
