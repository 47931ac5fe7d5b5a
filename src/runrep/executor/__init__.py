"""Executor module for remote runrep execution."""

from runrep.executor.base import RemoteExecutor
from runrep.executor.classifier import ERROR_KEYWORDS, classify, is_error_line
from runrep.executor.ssh import (
    ConnectionCache,
    ConnectionIdentity,
    ExecutorSettings,
    RemoteReader,
    SSHCommandExecutor,
    SSHConfig,
)
from runrep.executor.streams import copy_to, read_all, save_to

__all__ = [
    "ERROR_KEYWORDS",
    "ConnectionCache",
    "ConnectionIdentity",
    "ExecutorSettings",
    "RemoteExecutor",
    "RemoteReader",
    "SSHCommandExecutor",
    "SSHConfig",
    "classify",
    "copy_to",
    "is_error_line",
    "read_all",
    "save_to",
]
