"""Run-level errors. Per-file codec failures are never wrapped in these."""


class PixelSqueezeError(Exception):
    """Base class for errors that abort a whole run."""


class ConfigurationError(PixelSqueezeError):
    """Raised when the request is invalid, before any file is processed."""


class OutputDirectoryError(PixelSqueezeError):
    """Raised when the output directory cannot be created."""
