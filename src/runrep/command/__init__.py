"""Runrep command building."""

from runrep.command.builder import PASSWORD_MASK, build_command, report_parameters, validate
from runrep.command.params import RunrepParameters

__all__ = [
    "PASSWORD_MASK",
    "RunrepParameters",
    "build_command",
    "report_parameters",
    "validate",
]
