"""Path classifier interface."""

from abc import ABC, abstractmethod

from ..models import MediaGuess


class IPathClassifier(ABC):
    """Interface for filename-to-title classification."""

    @abstractmethod
    def classify(self, relative_path: str, filename: str) -> MediaGuess:
        """Classify a media file from its location and name.

        Args:
            relative_path: Directory of the file relative to the share root.
            filename: File name including extension.

        Returns:
            Structured media guess.
        """
        pass
