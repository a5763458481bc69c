"""Common interface of the metric extractors."""

from abc import ABC, abstractmethod
from typing import Any

from pagescore.document import Document


class Extractor(ABC):
    """Reads a document and produces one PageAnalysis section.

    Extractors keep no state between calls.
    """

    # Name of the PageAnalysis field this extractor fills
    section: str = ""

    @abstractmethod
    def extract(self, document: Document, url: str = "") -> Any:
        """Produce the section record for document.

        Args:
            document: Document to read
            url: Page URL, used to classify links

        Returns:
            The section record
        """
