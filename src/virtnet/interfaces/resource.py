"""Lifecycle interface for resources driven by an orchestrator."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

SpecT = TypeVar("SpecT")
StateT = TypeVar("StateT")


class Resource(ABC, Generic[SpecT, StateT]):
    """Create/read/update/delete/exists, one implementation per resource kind."""

    @abstractmethod
    def create(self, spec: SpecT) -> StateT:
        pass

    @abstractmethod
    def read(self, state: StateT) -> StateT:
        pass

    @abstractmethod
    def update(self, state: StateT, desired: SpecT) -> StateT:
        pass

    @abstractmethod
    def delete(self, state: StateT) -> None:
        pass

    @abstractmethod
    def exists(self, state: StateT) -> bool:
        pass
