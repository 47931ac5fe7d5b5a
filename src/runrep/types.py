"""Core type definitions for runrep."""

from dataclasses import dataclass, field
from typing import Literal, Union

from pydantic import BaseModel


@dataclass(frozen=True)
class Command:
    """A runrep script ready to send, plus its credential-free twin for logging.

    `text` holds the runrep password and is kept out of repr().
    """

    text: str = field(repr=False)
    redacted_text: str
    output_resource: str

    def __post_init__(self):
        if not self.text.strip() or not self.redacted_text.strip():
            raise ValueError("Command and redacted command must not be blank.")

    @property
    def loggable(self) -> str:
        return self.redacted_text


@dataclass(frozen=True)
class FileReport:
    """Run an RSL report file with `read` + `runfile`."""

    name: str


@dataclass(frozen=True)
class AdHocQuery:
    """Run a Geneva SQL query with `rungsql`."""

    query: str


@dataclass(frozen=True)
class StoredReport:
    """Run a stored report, query or file by name with one of the run commands."""

    command_name: str
    target: str


Report = Union[FileReport, AdHocQuery, StoredReport]


class ReportRun(BaseModel):
    """Outcome of one report pipeline step."""

    status: Literal["success", "runrep_failure", "failure"]
    command: str
    output_resource: str
    bytes_fetched: int | None = None
    elapsed_ms: int = 0
    error: str | None = None
    remote_error_line: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"
