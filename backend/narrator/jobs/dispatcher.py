"""Job dispatcher interface."""

from abc import ABC, abstractmethod


class JobDispatcher(ABC):
    """Hands media items to the pipeline outside the request/response cycle."""

    @abstractmethod
    async def submit(self, media_item_id: str) -> None:
        """Queue a media item for processing and return immediately."""
        ...

    @abstractmethod
    def pending(self) -> int:
        """Number of submitted items not yet picked up by a worker."""
        ...

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...
