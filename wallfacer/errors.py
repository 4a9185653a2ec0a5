"""
Exception hierarchy.

Library code raises these; only the command-line entry points catch
``WallfacerError`` and turn it into a non-zero exit status.
"""


class WallfacerError(Exception):
    """Base class for every fatal error raised by wallfacer."""


class GeometryError(WallfacerError, ValueError):
    """Malformed geometry or aspect-ratio text."""


class ImageTooSmallError(WallfacerError):
    """Image cannot hold a crop for a ratio, or cannot be upscaled to the minimum size."""


class UnsupportedFormatError(WallfacerError):
    """Output extension has no optimizer."""


class ConfigError(WallfacerError):
    """Configuration file is unreadable or invalid."""


class StoreError(WallfacerError):
    """Metadata table is missing where required, or has malformed rows."""


class ToolError(WallfacerError):
    """An external tool could not be spawned or exited with a failure status."""


class DetectorProtocolError(WallfacerError):
    """Face detector output does not line up with the submitted paths."""


class PipelineError(WallfacerError):
    """An image reached a pipeline step it was not advanced for."""


class ImageReadError(WallfacerError):
    """Image file is missing, unreadable or not a recognised image."""
