# File: livescribe/core/common/enums.py

from enum import Enum, unique


@unique
class TranscriptStatus(str, Enum):
    RECORDING = "recording"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@unique
class TranscriptSource(str, Enum):
    RECORDING = "recording"
    UPLOAD = "upload"


@unique
class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPING = "stopping"
    STOPPED = "stopped"
