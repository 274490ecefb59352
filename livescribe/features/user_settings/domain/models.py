from dataclasses import dataclass


@dataclass(frozen=True)
class UserSettings:
    """
    Per-user options consulted when building each recognition request.
    """
    language: str = "en"
    auto_punctuation: bool = True
