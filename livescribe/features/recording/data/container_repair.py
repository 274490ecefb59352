import logging
from typing import Dict, Optional

from ..domain.interfaces import IMetadataRepairer
from .ffmpeg_remux import FFmpegRemuxRepairer
from .webm_metadata import EbmlMetadataRepairer, is_webm

logger = logging.getLogger(__name__)


class ContainerMetadataRepairer(IMetadataRepairer):
    """
    Picks a repairer from the recording's mime type.
    An empty mime type (device default) is sniffed from the bytes.
    Containers without a repairer are returned unchanged.
    """

    def __init__(self, mime_type: str, repairers: Optional[Dict[str, IMetadataRepairer]] = None):
        self.mime_type = mime_type
        self.repairers = repairers if repairers is not None else {
            "audio/webm": EbmlMetadataRepairer(),
            "audio/ogg": FFmpegRemuxRepairer(".ogg"),
            "audio/mp4": FFmpegRemuxRepairer(".m4a"),
        }

    def repair(self, data: bytes, duration_ms: float) -> bytes:
        container = self.mime_type.split(";")[0].strip().lower()
        if not container and is_webm(data):
            container = "audio/webm"

        repairer = self.repairers.get(container)
        if repairer is None:
            logger.warning(f"No metadata repair for '{container or 'unknown'}', storing as recorded")
            return data
        return repairer.repair(data, duration_ms)
