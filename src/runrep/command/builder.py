"""Build runrep here-document scripts from parameters and a report variant.

Every script has four parts:

    runrep -f empty.lst -b << EOF          <- init
    connect <user>/<password> -k <aga>     <- connect
    <report body>                          <- varies per report kind
    exit                                   <- exit
    EOF

The redacted twin differs only in the connect line, where the password is masked.
"""

from runrep.command.params import (
    DYNAMIC_ACCOUNTING,
    NONE_CONSOLIDATED,
    RunrepParameters,
    is_blank,
)
from runrep.errors import ValidationError
from runrep.types import AdHocQuery, Command, FileReport, Report, StoredReport

RUNREP_INIT = "runrep -f empty.lst -b << EOF"
RUNREP_EXIT = "exit\nEOF"
# Only the connect line is masked. A password repeated in the query, extra
# flags or output path stays visible in the redacted text.
PASSWORD_MASK = "*********"

ACCOUNTING_RUN_TYPE_FLAG = "-at"

# portfolio, period start, period end, knowledge date, prior knowledge date
SHORT_FLAGS = ("-p", "-ps", "-pe", "-k", "-pk")
# rungsql rejects the short forms
LONG_FLAGS = (
    "--Portfolio",
    "--PeriodStartDate",
    "--PeriodEndDate",
    "--KnowledgeDate",
    "--PriorKnowledgeDate",
)

RUN_COMMAND_NAMES = ("run", "runfile", "runf", "runnumber", "runquery")


def _format_parameter(flag: str, value: str | None) -> str | None:
    return f"{flag} {value}" if not is_blank(value) else None


def _format_accounting_run_type(params: RunrepParameters) -> str | None:
    run_type = params.accounting_run_type
    if is_blank(run_type) or run_type == DYNAMIC_ACCOUNTING:
        return None
    return f"{ACCOUNTING_RUN_TYPE_FLAG} {run_type}"


def _format_consolidation(params: RunrepParameters) -> str | None:
    flag = params.consolidation_flag
    if flag is None or flag == NONE_CONSOLIDATED:
        return None
    return flag


def _format_extra_flags(params: RunrepParameters) -> str | None:
    return None if is_blank(params.extra_flags) else params.extra_flags.strip()


def report_parameters(params: RunrepParameters, flags: tuple[str, ...] = SHORT_FLAGS) -> str:
    """Join the non-blank report arguments with single spaces."""
    values = (
        params.portfolio_list,
        params.period_start_date,
        params.period_end_date,
        params.knowledge_date,
        params.prior_knowledge_date,
    )
    parts = [_format_parameter(flag, value) for flag, value in zip(flags, values)]
    parts += [
        _format_accounting_run_type(params),
        _format_consolidation(params),
        _format_extra_flags(params),
    ]
    return " ".join(part for part in parts if part is not None)


def _file_report_body(params: RunrepParameters, report: FileReport) -> str:
    name = report.name[:-4] if report.name.endswith(".rsl") else report.name
    runfile = f'runfile "{name}" -f {params.output_format} -o "{params.output_path}"'
    tail = report_parameters(params)
    if tail:
        runfile = f"{runfile} {tail}"
    return f'read "{name}.rsl"\n{runfile}'


def _adhoc_query_body(params: RunrepParameters, report: AdHocQuery) -> str:
    rungsql = f'rungsql -f {params.output_format} -o "{params.output_path}"'
    tail = report_parameters(params, LONG_FLAGS)
    if tail:
        rungsql = f"{rungsql} {tail}"
    return f"{rungsql}\n{report.query}"


def _stored_report_body(params: RunrepParameters, report: StoredReport) -> str:
    target = f'"{report.target}"' if " " in report.target else report.target
    return (
        f"{report.command_name} {target} -f {params.output_format} "
        f"-o {params.output_path} {report_parameters(params)}"
    ).strip()


_BODIES = {
    FileReport: _file_report_body,
    AdHocQuery: _adhoc_query_body,
    StoredReport: _stored_report_body,
}


def report_body(params: RunrepParameters, report: Report) -> str:
    try:
        body = _BODIES[type(report)]
    except KeyError:
        raise TypeError(f"Unsupported report type: {type(report).__name__}")
    return body(params, report)


def validate_report(report: Report) -> None:
    """Validate the report-kind specific fields."""
    if isinstance(report, FileReport):
        if is_blank(report.name):
            raise ValidationError("`rslName` cannot be blank")

    elif isinstance(report, AdHocQuery):
        query = (report.query or "").strip()
        if not query:
            raise ValidationError("`gsqlQuery` cannot be blank")
        if query.lower().startswith("select") and not query.endswith(";"):
            raise ValidationError("`gsqlQuery` must end with a semicolon (;)")

    elif isinstance(report, StoredReport):
        if is_blank(report.command_name):
            raise ValidationError("`runCommandName` cannot be blank")
        if is_blank(report.target):
            raise ValidationError("`runCommandTarget` cannot be blank")
        if report.command_name not in RUN_COMMAND_NAMES:
            names = ", ".join(f"'{name}'" for name in RUN_COMMAND_NAMES)
            raise ValidationError(f"`runCommandName` must be one of {names}.")
        if report.target.strip().startswith("-"):
            raise ValidationError(
                "`runCommandTarget` starts with a '-' character; runrep will misinterpret "
                "this as flags. You can fix this issue by temporarily renaming the object."
            )

    else:
        raise TypeError(f"Unsupported report type: {type(report).__name__}")


def validate(params: RunrepParameters, report: Report) -> None:
    """Validate parameters and report fields without building anything."""
    params.validate()
    validate_report(report)


def build_command(
    params: RunrepParameters,
    report: Report,
    validate_first: bool = True,
) -> Command:
    """Assemble the runrep script and its redacted twin."""
    if validate_first:
        validate(params, report)

    connect = f"connect {params.user}/{params.password} -k {params.aga}"
    redacted_connect = f"connect {params.user}/{PASSWORD_MASK} -k {params.aga}"
    body = report_body(params, report)

    text = "\n".join([RUNREP_INIT, connect, body, RUNREP_EXIT]) + "\n"
    redacted_text = "\n".join([RUNREP_INIT, redacted_connect, body, RUNREP_EXIT]) + "\n"

    return Command(text=text, redacted_text=redacted_text, output_resource=params.output_path)
