# File: livescribe/core/common/errors.py


class CaptureError(RuntimeError):
    """Base class for failures acquiring or driving the capture device."""
    user_message = "Failed to start recording. Please check your microphone."


class PermissionDeniedError(CaptureError):
    user_message = "Microphone permission denied. Please allow microphone access."


class CaptureDeviceError(CaptureError):
    pass


class RecognitionError(RuntimeError):
    """A single speech-to-text request failed. Recoverable on the next chunk."""


class StorageError(RuntimeError):
    pass


class MetadataRepairError(RuntimeError):
    """The container could not be parsed or rewritten."""


class FinalizeError(RuntimeError):
    """
    Terminal failure while persisting a stopped recording.
    The transcript is left in ERROR status when this is raised.
    """
    user_message = "Failed to save recording."


class UploadValidationError(ValueError):
    """Rejected before any network call is made."""


class InvalidStateError(RuntimeError):
    """Operation is not allowed in the session's current state."""
