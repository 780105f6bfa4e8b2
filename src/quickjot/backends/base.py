"""Abstract base classes for remote collaborators."""

from abc import ABC, abstractmethod
from typing import Any


class RemoteClassifierError(Exception):
    """Remote classifier unreachable, timed out, or answered with garbage."""


class SaveError(Exception):
    """Remote save backend rejected or never received a payload."""


class RemoteClassifier(ABC):
    """Abstract base class for remote text classifiers."""

    @abstractmethod
    def classify(
        self,
        text: str,
        timezone: str,
        user_id: str,
        max_items: int,
    ) -> Any:
        """
        Ask the remote service to classify text.

        Args:
            text: Raw input text
            timezone: IANA timezone of the user
            user_id: Opaque user identifier
            max_items: Upper bound on returned items

        Returns:
            The decoded response payload, unvalidated

        Raises:
            RemoteClassifierError: On transport, status or decoding failure
        """
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this classifier is configured and usable."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Classifier name for display."""
        ...


class SaveBackend(ABC):
    """Abstract base class for item persistence targets."""

    @abstractmethod
    def save(self, payload: list[dict]) -> None:
        """Persist a batch of serialized items.

        Raises:
            SaveError: When the batch was not stored
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for display."""
        ...
