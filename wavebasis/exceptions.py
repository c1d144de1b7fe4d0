"""Exceptions."""


class WaveBasisError(Exception):
    """Base class for every error raised by wavebasis."""


class InvalidArgumentError(WaveBasisError, ValueError):
    """Malformed request parameters, detectable before any computation."""


class LengthMismatchError(InvalidArgumentError):
    """Signal length incompatible with the requested decomposition depth."""


class ConsistencyError(WaveBasisError):
    """Values that contradict each other under every admissible tree depth."""


class UnsupportedModeError(WaveBasisError, NotImplementedError):
    """Recognised transform or selection mode that is not implemented."""
