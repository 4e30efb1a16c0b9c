"""Base class for tabular source adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class SourceAdapter(ABC):
    """Read one data file into a list of flat records."""

    #: Lower-case file suffixes this adapter handles.
    suffixes: tuple[str, ...] = ()

    def handles(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    @abstractmethod
    def read(self, path: Path) -> list[dict[str, Any]]:
        """Return the file's records in file order.

        Raises
        ------
        f1rag.utils.errors.SourceReadError
            If the file cannot be opened or parsed.
        """
