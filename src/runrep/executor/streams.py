"""Stream consumers for fetched report files."""

from pathlib import Path
from typing import BinaryIO, Callable

CHUNK_SIZE = 32768


def copy_to(sink: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Callable[[BinaryIO], int]:
    """Consumer that copies the stream into `sink`. Returns bytes written."""

    def consume(stream: BinaryIO) -> int:
        total = 0
        while chunk := stream.read(chunk_size):
            sink.write(chunk)
            total += len(chunk)
        return total

    return consume


def save_to(path: Path, chunk_size: int = CHUNK_SIZE) -> Callable[[BinaryIO], int]:
    """Consumer that writes the stream to a local file, created only once the remote file is open."""

    def consume(stream: BinaryIO) -> int:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            return copy_to(f, chunk_size)(stream)

    return consume


def read_all(stream: BinaryIO) -> bytes:
    return stream.read()
