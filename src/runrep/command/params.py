"""Runrep parameter source and its validation rules."""

import posixpath
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from runrep.errors import ValidationError

DYNAMIC_ACCOUNTING = "Dynamic"
CLOSED_PERIOD_ACCOUNTING = "ClosedPeriod"

ACCOUNTING_RUN_TYPES = [
    DYNAMIC_ACCOUNTING,
    CLOSED_PERIOD_ACCOUNTING,
    "UnAmendedClosedPeriod",
    "Incremental",
    "NAV",
    "WouldBeAdjustments",
    "TWR",
    "Snapshot",
]

CONSOLIDATE_ALL = "-c1"
CONSOLIDATE_GROUPS_ONLY = "-c2"
NONE_CONSOLIDATED = "-c3"

CONSOLIDATION_OPTIONS = {
    "All": CONSOLIDATE_ALL,
    "GroupsOnly": CONSOLIDATE_GROUPS_ONLY,
    "None": NONE_CONSOLIDATED,
}

# runrep output format -> file extension
OUTPUT_FORMATS = {
    "ascii": ".txt",
    "asciinoid": ".txt",
    "asciinoheader": ".txt",
    "bcp": ".txt",
    "bcpid": ".txt",
    "bcpnospace": ".txt",
    "col": ".txt",
    "csv": ".csv",
    "csvnospace": ".csv",
    "json": ".json",
    "pdf": ".pdf",
    "pdfnoid": ".pdf",
    "rmf": ".rmf",
    "tsv": ".tsv",
    "xml": ".xml",
    "xmlerr": ".xml",
}

# ISO local date-time: yyyy-MM-ddTHH:mm[:ss[.fffffffff]], no offset
_LOCAL_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.(?P<fraction>\d{1,9}))?)?$"
)

ESCAPED_QUOTE = '\\"'


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def parse_local_datetime(value: str | None, field_name: str) -> datetime | None:
    """Parse an ISO local date-time. Blank values yield None.

    Up to nine fractional digits are accepted; anything past microseconds is dropped.
    """
    if is_blank(value):
        return None
    value = value.strip()
    try:
        match = _LOCAL_DATETIME.match(value)
        if not match:
            raise ValueError(value)
        normalized = value
        fraction = match.group("fraction")
        if fraction is not None:
            normalized = value[: match.start("fraction")] + fraction[:6].ljust(6, "0")
        return datetime.fromisoformat(normalized)
    except ValueError as e:
        raise ValidationError(f"Cannot parse value `{value}` from `{field_name}`.") from e


def validate_portfolio_list(portfolios: str | None) -> None:
    """Portfolio names containing spaces must be wrapped in escaped quotes."""
    if not portfolios:
        return
    for portfolio in portfolios.split(","):
        portfolio = portfolio.strip()
        if " " in portfolio and not (
            portfolio.startswith(ESCAPED_QUOTE) and portfolio.endswith(ESCAPED_QUOTE)
        ):
            raise ValidationError(
                f"Portfolio list `{portfolios}` is invalid: portfolio names containing "
                f'spaces must be enclosed within escaped quotes, e.g. \\"My Portfolio\\".'
            )


@dataclass
class RunrepParameters:
    """Values needed to build a runrep script.

    Either `output_filename` names the remote output file directly, or a file
    named after `run_id` is placed in `output_directory`.
    """

    user: str
    password: str = field(repr=False)
    aga: str = ""
    output_format: str = "csv"
    output_filename: str | None = None
    output_directory: str = "/tmp"
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    portfolio_list: str | None = None
    period_start_date: str | None = None
    period_end_date: str | None = None
    knowledge_date: str | None = None
    prior_knowledge_date: str | None = None
    accounting_run_type: str | None = DYNAMIC_ACCOUNTING
    consolidation: str | None = NONE_CONSOLIDATED
    extra_flags: str | None = None

    @property
    def file_extension(self) -> str:
        try:
            return OUTPUT_FORMATS[self.output_format]
        except KeyError:
            raise ValidationError(f"Unsupported output format: {self.output_format}")

    @property
    def output_path(self) -> str:
        if not is_blank(self.output_filename):
            return self.output_filename
        return posixpath.join(self.output_directory, f"{self.run_id}{self.file_extension}")

    @property
    def consolidation_flag(self) -> str | None:
        """The `-cN` flag, whether `consolidation` holds an option name or the flag itself."""
        if is_blank(self.consolidation):
            return None
        consolidation = self.consolidation.strip()
        return CONSOLIDATION_OPTIONS.get(consolidation, consolidation)

    def validate(self) -> None:
        """Raise ValidationError if any parameter is malformed."""
        self._validate_credentials()
        if self.output_format not in OUTPUT_FORMATS:
            raise ValidationError(f"Unsupported output format: {self.output_format}")
        self._validate_choices()
        validate_portfolio_list(self.portfolio_list)
        self._validate_dates()

    def _validate_choices(self) -> None:
        run_type = self.accounting_run_type
        if not is_blank(run_type) and run_type not in ACCOUNTING_RUN_TYPES:
            raise ValidationError(
                f"Unsupported accounting run type `{run_type}`; "
                f"expected one of {', '.join(ACCOUNTING_RUN_TYPES)}."
            )
        flag = self.consolidation_flag
        if flag is not None and flag not in CONSOLIDATION_OPTIONS.values():
            options = [*CONSOLIDATION_OPTIONS, *CONSOLIDATION_OPTIONS.values()]
            raise ValidationError(
                f"Unsupported consolidation `{self.consolidation}`; expected one of {', '.join(options)}."
            )

    def _validate_credentials(self) -> None:
        if is_blank(self.user):
            raise ValidationError("`runrep` user cannot be blank")
        if is_blank(self.password):
            raise ValidationError("`runrep` password cannot be blank")

    def _validate_dates(self) -> None:
        start = parse_local_datetime(self.period_start_date, "Period Start Date")
        end = parse_local_datetime(self.period_end_date, "Period End Date")
        knowledge = parse_local_datetime(self.knowledge_date, "Knowledge Date")
        prior_knowledge = parse_local_datetime(self.prior_knowledge_date, "Prior Knowledge Date")

        if start is not None and end is not None and start > end:
            raise ValidationError(
                f"`periodStartDate` ({self.period_start_date}) must be less than or equal "
                f"to `periodEndDate` ({self.period_end_date})."
            )

        if knowledge is not None and prior_knowledge is not None and prior_knowledge > knowledge:
            raise ValidationError(
                f"`priorKnowledgeDate` ({self.prior_knowledge_date}) must be less than or equal "
                f"to `knowledgeDate` ({self.knowledge_date})."
            )

        if self.accounting_run_type == CLOSED_PERIOD_ACCOUNTING and prior_knowledge is None:
            raise ValidationError(
                f"`{CLOSED_PERIOD_ACCOUNTING}` accounting was selected, "
                "`priorKnowledgeDate` cannot be blank."
            )
