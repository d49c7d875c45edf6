"""MediaStorePort: abstract interface for the media record store."""

from abc import ABC, abstractmethod
from typing import Optional

from mediascribe.domain.models import MediaRecord


class MediaStorePort(ABC):
    @abstractmethod
    def get(self, path: str) -> Optional[MediaRecord]:
        """Return the record for a media path, or None."""

    @abstractmethod
    def get_or_create(self, path: str) -> MediaRecord:
        """Return the record for a media path, creating an unsaved one if needed."""

    @abstractmethod
    def save(self, record: MediaRecord) -> None:
        """Persist a record after a mutation."""

    @abstractmethod
    def all(self) -> list[MediaRecord]:
        """Every known record."""
