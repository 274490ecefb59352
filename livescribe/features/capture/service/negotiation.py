from typing import Callable, Sequence

# Preference order for recorder containers. Opus in WebM is the most widely
# supported and the one Deepgram auto-detects most reliably.
MIME_PREFERENCES = (
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/ogg;codecs=opus",
    "audio/mp4",
)


def negotiate_mime_type(is_supported: Callable[[str], bool], preferences: Sequence[str] = MIME_PREFERENCES) -> str:
    """
    First supported type from the preference list.
    Returns "" when none is supported, which means "let the device pick".
    """
    for mime_type in preferences:
        if is_supported(mime_type):
            return mime_type
    return ""
