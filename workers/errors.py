"""
Exception types for the effects worker.
Each known failure kind of a job maps to one class so the worker loop can
log it without a traceback and decide what happens to the queue message.
"""


class EffectsError(Exception):
    """Base class for all worker errors."""


class ConfigError(EffectsError):
    """Missing or invalid startup configuration."""


class JobParseError(EffectsError):
    """Queue message body is not a valid effect job."""


class UnknownPresetError(EffectsError):
    """Job names an effect preset that is not configured."""

    def __init__(self, name: str, available=()):
        self.name = name
        self.available = sorted(available)
        super().__init__(
            f"Unknown effect preset '{name}' "
            f"(available: {', '.join(self.available) or 'none'})"
        )


class StorageError(EffectsError):
    """Download, upload or delete against object storage failed."""

    def __init__(self, operation: str, bucket: str, key: str, cause: Exception = None):
        self.operation = operation
        self.bucket = bucket
        self.key = key
        self.cause = cause
        message = f"{operation} s3://{bucket}/{key} failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class TransformError(EffectsError):
    """ffmpeg exited non-zero or could not be started."""

    def __init__(self, message: str, result=None):
        self.result = result
        super().__init__(message)


class TransformTimeout(TransformError):
    """ffmpeg did not finish within the configured timeout."""

    def __init__(self, message: str, timeout: float, result=None):
        self.timeout = timeout
        super().__init__(message, result)
