# File: livescribe/features/segmentation/service/segmenter.py
"""
Turns a flat word stream into readable speaker turns.

Used identically by the live view, the finalized view, export and the
summarization input, so everything here must stay pure.
"""

from typing import Dict, Iterable, List, Mapping, Optional

from livescribe.features.transcripts.domain.models import Word, SpeakerLabel
from ..domain.models import SpeakerSegment


def segment(words: Iterable[Word]) -> List[SpeakerSegment]:
    segments: List[SpeakerSegment] = []
    current_speaker: Optional[int] = None
    current_start = 0.0
    current_text: List[str] = []

    for word in words:
        if current_text and word.speaker == current_speaker:
            current_text.append(word.text)
            continue

        if current_text:
            segments.append(SpeakerSegment(current_speaker, current_start, " ".join(current_text)))

        current_speaker = word.speaker
        current_start = word.start_time
        current_text = [word.text]

    if current_text:
        segments.append(SpeakerSegment(current_speaker, current_start, " ".join(current_text)))

    return segments


def speaker_label(speaker_number: int, labels: Optional[Mapping[int, str]] = None) -> str:
    """Custom label if one was set, otherwise 1-based 'Speaker N'."""
    if labels and speaker_number in labels:
        return labels[speaker_number]
    return f"Speaker {speaker_number + 1}"


def label_map(labels: Iterable[SpeakerLabel]) -> Dict[int, str]:
    return {label.speaker_number: label.label for label in labels}


def format_for_summary(words: Iterable[Word], labels: Optional[Mapping[int, str]] = None) -> str:
    """
    One "<speaker label>: <text>" line per segment.
    Adjacent speakers that share a custom label still get separate lines.
    """
    return "\n".join(
        f"{speaker_label(seg.speaker_number, labels)}: {seg.text}"
        for seg in segment(words)
    )
