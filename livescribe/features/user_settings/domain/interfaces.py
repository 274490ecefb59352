from abc import ABC, abstractmethod
from typing import Optional
from .models import UserSettings


class IUserSettingsProvider(ABC):
    @abstractmethod
    def get(self, owner_id: str) -> UserSettings:
        """Returns stored settings, or defaults when the user has none."""
        pass

    @abstractmethod
    def upsert(self, owner_id: str, language: Optional[str] = None, auto_punctuation: Optional[bool] = None) -> UserSettings:
        """Updates only the fields that are given."""
        pass
