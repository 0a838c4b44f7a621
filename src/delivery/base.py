"""
Module to contain base class for posting transports
"""
from abc import ABC, abstractmethod
from typing import Optional

from core.entities import MediaImage


class PostingError(Exception):
    """Posting failed and should not be retried."""


class TransientPostingError(PostingError):
    """Rate limit, HTTP 429, network or timeout failure. Worth one retry."""


class PostingTransport(ABC):
    """
    Base interface for all posting transports.
    """

    name: str

    @abstractmethod
    async def post(self, text: str, media: Optional[MediaImage] = None) -> str:
        """
        Post a standalone segment and return its message id.
        Must raise PostingError (or TransientPostingError) on failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def reply(self, text: str, in_reply_to: str) -> str:
        """
        Post a segment as a reply to `in_reply_to` and return its message id.
        """
        raise NotImplementedError
