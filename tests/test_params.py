"""Tests for runrep parameter validation."""

from datetime import datetime

import pytest

from runrep.command.params import (
    ACCOUNTING_RUN_TYPES,
    CONSOLIDATION_OPTIONS,
    OUTPUT_FORMATS,
    RunrepParameters,
    parse_local_datetime,
    validate_portfolio_list,
)
from runrep.errors import ValidationError


def make_params(**overrides) -> RunrepParameters:
    values = dict(user="usr", password="pw", aga="9999", output_filename="/tmp/r1.csv")
    values.update(overrides)
    return RunrepParameters(**values)


class TestCredentials:
    def test_valid(self):
        make_params().validate()

    @pytest.mark.parametrize("field", ["user", "password"])
    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_blank(self, field, value):
        with pytest.raises(ValidationError, match=field):
            make_params(**{field: value}).validate()

    def test_password_not_in_repr(self):
        assert "hunter2" not in repr(make_params(password="hunter2"))


class TestDates:
    def test_start_after_end_names_both_values(self):
        params = make_params(
            period_start_date="2023-02-01T00:00:00",
            period_end_date="2023-01-01T00:00:00",
        )
        with pytest.raises(ValidationError) as exc_info:
            params.validate()

        message = str(exc_info.value)
        assert "2023-02-01T00:00:00" in message
        assert "2023-01-01T00:00:00" in message

    def test_equal_start_and_end(self):
        make_params(
            period_start_date="2023-01-01T00:00:00",
            period_end_date="2023-01-01T00:00:00",
        ).validate()

    def test_only_one_bound_is_fine(self):
        make_params(period_start_date="2023-02-01T00:00:00").validate()
        make_params(period_end_date="2023-01-01T00:00:00").validate()

    @pytest.mark.parametrize(
        "field",
        ["period_start_date", "period_end_date", "knowledge_date", "prior_knowledge_date"],
    )
    def test_unparseable(self, field):
        with pytest.raises(ValidationError, match="Cannot parse value `2023-13-45`"):
            make_params(**{field: "2023-13-45"}).validate()

    def test_prior_knowledge_after_knowledge(self):
        params = make_params(
            knowledge_date="2023-01-01T00:00:00",
            prior_knowledge_date="2023-06-01T00:00:00",
        )
        with pytest.raises(ValidationError, match="priorKnowledgeDate"):
            params.validate()

    def test_closed_period_requires_prior_knowledge_date(self):
        with pytest.raises(ValidationError, match="ClosedPeriod"):
            make_params(accounting_run_type="ClosedPeriod").validate()

        make_params(
            accounting_run_type="ClosedPeriod",
            prior_knowledge_date="2022-12-31T23:59:59",
        ).validate()


class TestParseLocalDatetime:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2023-01-31T00:00", datetime(2023, 1, 31)),
            ("2023-01-31T10:20:30", datetime(2023, 1, 31, 10, 20, 30)),
            (" 2023-01-31T10:20:30.500 ", datetime(2023, 1, 31, 10, 20, 30, 500000)),
            ("2023-01-31T10:20:30.5", datetime(2023, 1, 31, 10, 20, 30, 500000)),
            ("2023-01-01T00:00:00.123456789", datetime(2023, 1, 1, 0, 0, 0, 123456)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_local_datetime(value, "Knowledge Date") == expected

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_blank(self, value):
        assert parse_local_datetime(value, "Knowledge Date") is None

    @pytest.mark.parametrize(
        "value",
        [
            "2023-01-31",
            "2023-01-31 10:20:30",
            "2023-01-31T10:20:30Z",
            "2023-01-31T10:20:30.1234567890",
            "2023-01-31T10:20:30.",
            "yesterday",
        ],
    )
    def test_invalid(self, value):
        with pytest.raises(ValidationError, match="Knowledge Date"):
            parse_local_datetime(value, "Knowledge Date")


class TestPortfolioList:
    @pytest.mark.parametrize(
        "portfolios",
        [
            None,
            "",
            "Green",
            "123,456,789",
            'MyPortfolio1,\\"9000 International Fixed Income\\"',
            ' \\"My Portfolio\\" , Other',
        ],
    )
    def test_valid(self, portfolios):
        validate_portfolio_list(portfolios)

    @pytest.mark.parametrize(
        "portfolios",
        ["My Portfolio", 'Green,"My Portfolio"', 'Green,\\"My Portfolio'],
    )
    def test_unescaped_spaces(self, portfolios):
        with pytest.raises(ValidationError, match="escaped quotes"):
            validate_portfolio_list(portfolios)


class TestOutput:
    def test_unsupported_format(self):
        with pytest.raises(ValidationError, match="Unsupported output format"):
            make_params(output_format="docx").validate()

    @pytest.mark.parametrize("fmt", sorted(OUTPUT_FORMATS))
    def test_supported_formats(self, fmt):
        make_params(output_format=fmt).validate()

    def test_explicit_filename_wins(self):
        params = make_params(output_filename="/reports/out.csv", output_directory="/data")
        assert params.output_path == "/reports/out.csv"

    def test_path_from_run_id(self):
        params = make_params(output_filename=None, output_format="tsv", run_id="run-1")
        assert params.output_path == "/tmp/run-1.tsv"

    def test_run_ids_are_unique(self):
        assert make_params().run_id != make_params().run_id


class TestChoices:
    @pytest.mark.parametrize("run_type", sorted(ACCOUNTING_RUN_TYPES))
    def test_accounting_run_types(self, run_type):
        make_params(accounting_run_type=run_type, prior_knowledge_date="2022-12-31T23:59:59").validate()

    @pytest.mark.parametrize("run_type", ["ClosedPeriods", "dynamic", "-at NAV"])
    def test_unknown_accounting_run_type(self, run_type):
        with pytest.raises(ValidationError, match="accounting run type"):
            make_params(accounting_run_type=run_type).validate()

    def test_blank_accounting_run_type(self):
        make_params(accounting_run_type=None).validate()

    @pytest.mark.parametrize(
        "consolidation,flag",
        [("All", "-c1"), ("GroupsOnly", "-c2"), ("None", "-c3"), ("-c1", "-c1"), (" -c2 ", "-c2"), (None, None)],
    )
    def test_consolidation_flag(self, consolidation, flag):
        params = make_params(consolidation=consolidation)
        params.validate()
        assert params.consolidation_flag == flag

    @pytest.mark.parametrize("consolidation", ["-c4", "everything", "c1"])
    def test_unknown_consolidation(self, consolidation):
        with pytest.raises(ValidationError, match="consolidation"):
            make_params(consolidation=consolidation).validate()

    def test_catalogs(self):
        assert len(ACCOUNTING_RUN_TYPES) == 8
        assert sorted(CONSOLIDATION_OPTIONS.values()) == ["-c1", "-c2", "-c3"]
