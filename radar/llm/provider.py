"""
LLM provider abstraction.

The LLM labels feed items and describes page changes. It never decides
what gets fetched, stored or scheduled.
"""

from abc import ABC, abstractmethod
from typing import Any


class LLMProvider(ABC):
    """Abstract base for LLM providers.

    ``complete`` is synchronous; async callers run it in a worker thread.
    """

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Send prompt and return completion text."""
        ...
