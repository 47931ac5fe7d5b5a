"""Configuration models for runrep."""

import os
from datetime import date, datetime
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, field_validator

from runrep.command.params import (
    DYNAMIC_ACCOUNTING,
    NONE_CONSOLIDATED,
    RunrepParameters,
)
from runrep.executor.ssh import ExecutorSettings, SSHConfig
from runrep.types import AdHocQuery, FileReport, Report, StoredReport

# Used when the corresponding password is left out of the config file
RUNREP_PASSWORD_ENV = "RUNREP_PASSWORD"
SSH_PASSWORD_ENV = "RUNREP_SSH_PASSWORD"


class SSHSettings(BaseModel):
    """SSH host where the runrep utility lives."""

    host: str
    user: str
    port: int = 22
    password: str | None = None
    key_path: str | None = None
    key_passphrase: str | None = None
    known_hosts: str | None = None
    strict_host_key_checking: bool = False
    connect_timeout: str = "30s"
    data_timeout: str = "5m"
    settle_interval: str = "3s"

    @field_validator("connect_timeout", "data_timeout", "settle_interval")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        parse_duration(v)
        return v

    def to_ssh_config(self) -> SSHConfig:
        return SSHConfig(
            host=self.host,
            user=self.user,
            port=self.port,
            password=self.password or os.environ.get(SSH_PASSWORD_ENV),
            key_path=self.key_path,
            key_passphrase=self.key_passphrase,
        )

    def to_executor_settings(self) -> ExecutorSettings:
        return ExecutorSettings(
            connect_timeout=parse_duration(self.connect_timeout),
            data_timeout=parse_duration(self.data_timeout),
            settle_interval=parse_duration(self.settle_interval),
            known_hosts=self.known_hosts,
            strict_host_key_checking=self.strict_host_key_checking,
        )


class RunrepSettings(BaseModel):
    """runrep login and report arguments."""

    user: str
    password: str | None = None
    aga: str = ""
    output_format: str = "csv"
    output_path: str | None = None
    output_directory: str = "/tmp"
    portfolio: str | None = None
    period_start_date: str | None = None
    period_end_date: str | None = None
    knowledge_date: str | None = None
    prior_knowledge_date: str | None = None
    accounting_run_type: str = DYNAMIC_ACCOUNTING
    consolidation: str = NONE_CONSOLIDATED
    extra_flags: str | None = None

    @field_validator(
        "aga",
        "period_start_date",
        "period_end_date",
        "knowledge_date",
        "prior_knowledge_date",
        mode="before",
    )
    @classmethod
    def coerce_yaml_scalars(cls, v):
        # YAML reads unquoted timestamps as datetimes and bare numbers as ints
        if isinstance(v, (date, datetime)):
            return v.isoformat()
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def to_parameters(self) -> RunrepParameters:
        return RunrepParameters(
            user=self.user,
            password=self.password or os.environ.get(RUNREP_PASSWORD_ENV, ""),
            aga=self.aga,
            output_format=self.output_format,
            output_filename=self.output_path,
            output_directory=self.output_directory,
            portfolio_list=self.portfolio,
            period_start_date=self.period_start_date,
            period_end_date=self.period_end_date,
            knowledge_date=self.knowledge_date,
            prior_knowledge_date=self.prior_knowledge_date,
            accounting_run_type=self.accounting_run_type,
            consolidation=self.consolidation,
            extra_flags=self.extra_flags,
        )


class ReportSettings(BaseModel):
    """Which report to run."""

    kind: Literal["rsl", "gsql", "stored"] = "rsl"
    name: str | None = None  # rsl
    query: str | None = None  # gsql
    query_file: str | None = None  # gsql, read when query is not set
    run_command_name: str | None = None  # stored
    run_command_target: str | None = None  # stored

    def model_post_init(self, __context):
        if self.kind == "rsl" and not self.name:
            raise ValueError("report.name is required when kind is 'rsl'")
        if self.kind == "gsql" and not (self.query or self.query_file):
            raise ValueError("report.query or report.query_file is required when kind is 'gsql'")
        if self.kind == "stored" and not (self.run_command_name and self.run_command_target):
            raise ValueError(
                "report.run_command_name and report.run_command_target are required when kind is 'stored'"
            )

    def to_report(self, base_dir: Path | None = None) -> Report:
        if self.kind == "rsl":
            return FileReport(name=self.name)
        if self.kind == "gsql":
            query = self.query
            if not query:
                query_path = Path(self.query_file).expanduser()
                if base_dir is not None and not query_path.is_absolute():
                    query_path = base_dir / query_path
                query = query_path.read_text()
            return AdHocQuery(query=query)
        return StoredReport(command_name=self.run_command_name, target=self.run_command_target)


class RunrepConfig(BaseModel):
    """Main runrep configuration."""

    ssh: SSHSettings
    runrep: RunrepSettings
    report: ReportSettings


def parse_duration(duration_str: str) -> int:
    """Parse duration string to seconds. Supports: 30s, 5m, 2h, 1d."""
    duration_str = duration_str.strip().lower()
    if not duration_str:
        raise ValueError("Empty duration string")

    multipliers = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    unit = duration_str[-1]

    if unit not in multipliers:
        raise ValueError(f"Invalid duration unit: {unit}. Use s, m, h, or d.")

    try:
        value = int(duration_str[:-1])
    except ValueError:
        raise ValueError(f"Invalid duration value: {duration_str[:-1]}")

    return value * multipliers[unit]


def load_config(path: Path) -> RunrepConfig:
    """Load configuration from YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return RunrepConfig(**data)


def get_config_template() -> str:
    """Get the default configuration template."""
    return """# runrep configuration

ssh:
  host: geneva.example.com  # host running the runrep utility (usually the AGA host)
  user: geneva
  port: 22
  # password: secret  # or set RUNREP_SSH_PASSWORD
  # key_path: ~/.ssh/id_rsa
  # key_passphrase: null
  # known_hosts: ~/.ssh/known_hosts
  strict_host_key_checking: false
  connect_timeout: 30s
  data_timeout: 5m  # raise this for large reports or accounting runs
  settle_interval: 3s  # wait for runrep to finish writing the output file

runrep:
  user: runrep-user
  # password: secret  # or set RUNREP_PASSWORD
  aga: "9999"
  output_format: csv
  # output_path: /tmp/report.csv  # fixed path; overrides output_directory
  output_directory: /tmp
  # portfolio: 'MyPortfolio1,\\"9000 International Fixed Income\\"'
  # period_start_date: 2023-01-01T00:00:00
  # period_end_date: 2023-01-31T00:00:00
  # knowledge_date: 2023-02-01T23:59:59
  # prior_knowledge_date: 2022-12-31T23:59:59  # required for ClosedPeriod
  accounting_run_type: Dynamic
  consolidation: "-c3"  # -c1/All, -c2/GroupsOnly, -c3/None
  # extra_flags: '-af "iLBC=USD,EUR"'

report:
  kind: rsl  # rsl, gsql or stored
  name: netassets
  # query: "select * from businessunit;"  # kind: gsql
  # query_file: query.gsql  # kind: gsql
  # run_command_name: run  # kind: stored (run, runfile, runf, runnumber, runquery)
  # run_command_target: "Tax Lot Appraisal with Accruals"  # kind: stored
"""
