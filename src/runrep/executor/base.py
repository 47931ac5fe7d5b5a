"""Executor protocol for running runrep commands remotely."""

from typing import BinaryIO, Callable, Protocol, TypeVar

from runrep.types import Command

T = TypeVar("T")


class RemoteExecutor(Protocol):
    """Protocol for remote runrep execution.

    One executor owns at most one connection and must not be shared between
    concurrent callers. `fetch` is only meaningful after `execute` returned.
    """

    protocol_name: str

    def execute(self, command: Command, target) -> None:
        """Run the command. Raises DomainError if runrep reports a failure."""
        ...

    def fetch(self, command: Command, target, consumer: Callable[[BinaryIO], T]) -> T:
        """Open the command's output file and hand the stream to `consumer`."""
        ...

    def delete(self, command: Command, target) -> None:
        """Remove the command's output file. A missing file is not an error."""
        ...

    def is_closed(self) -> bool:
        """Check if the executor has been closed for good."""
        ...

    def close(self) -> None:
        """Close executor and cleanup resources."""
        ...
