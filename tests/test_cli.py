import csv
import json

import pytest
from click.testing import CliRunner

from amortization.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def db(runner, tmp_path):
    path = str(tmp_path / "test.sqlite")
    result = runner.invoke(cli, ["init", path])
    assert result.exit_code == 0, result.output
    return path


def create_test_loan(runner, db):
    result = runner.invoke(
        cli,
        ["create", db, "test", "--apr", "3.75", "--balance", "213100", "--term", "30", "--start", "2016-04-01"],
    )
    assert result.exit_code == 0, result.output
    return result


def test_create_and_list(runner, db):
    result = create_test_loan(runner, db)
    assert "Monthly payment" in result.output

    result = runner.invoke(cli, ["show", db])
    assert result.exit_code == 0
    assert "test: Balance = $213100.00, APR = 3.75%" in result.output
    assert "Monthly payment" not in result.output


def test_show_verbosity_levels(runner, db):
    create_test_loan(runner, db)

    result = runner.invoke(cli, ["show", db, "test", "-v"])
    assert result.exit_code == 0
    assert "Monthly payment:" in result.output
    assert "Interest =" not in result.output

    result = runner.invoke(cli, ["show", db, "test", "-vv"])
    assert result.exit_code == 0
    assert "2016-05-01: Interest = 665.94" in result.output
    assert "2046-04-01:" in result.output


def test_show_missing_loan(runner, db):
    result = runner.invoke(cli, ["show", db, "nope"])
    assert result.exit_code == 1
    assert "Could not find loan with the name: nope" in result.output


def test_duplicate_loan(runner, db):
    create_test_loan(runner, db)
    result = runner.invoke(
        cli, ["create", db, "test", "-a", "3.75", "-b", "1000", "-t", "1"]
    )
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_invalid_term(runner, db):
    result = runner.invoke(cli, ["create", db, "bad", "-a", "5", "-b", "1000", "-t", "0"])
    assert result.exit_code == 2
    assert "Term must be a positive number of periods" in result.output


def test_pay_and_history(runner, db):
    runner.invoke(cli, ["create", db, "flat", "-a", "0", "-b", "12000", "-t", "12", "--months"])

    result = runner.invoke(cli, ["pay", db, "flat", "--amount", "1000", "--date", "2016-05-01"])
    assert result.exit_code == 0, result.output
    assert "You paid $1000.00 towards the balance, $0.00 in interest" in result.output
    assert "$11000.00 remaining" in result.output

    result = runner.invoke(cli, ["pay", db, "flat", "-a", "500", "-e", "-d", "2016-05-15"])
    assert result.exit_code == 0, result.output
    assert "$10500.00 remaining" in result.output

    result = runner.invoke(cli, ["history", db, "flat"])
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert lines[1].startswith("2016-05-01\t1000.00")
    assert lines[2].startswith("2016-05-15\t500.00")

    result = runner.invoke(cli, ["show", db, "flat", "-v"])
    assert "pay off your loan 1 months early" in result.output


def test_insufficient_payment(runner, db):
    create_test_loan(runner, db)
    result = runner.invoke(cli, ["pay", db, "test", "-a", "500"])
    assert result.exit_code == 1
    assert "Amount paid is insufficient payment" in result.output


def test_pay_the_displayed_monthly_payment(runner, db):
    result = runner.invoke(cli, ["create", db, "amort", "-a", "4.5", "-b", "20000", "-t", "5"])
    assert result.exit_code == 0, result.output
    assert "Monthly payment: 372.86" in result.output

    result = runner.invoke(cli, ["pay", db, "amort", "-a", "372.85"])
    assert result.exit_code == 1
    assert "Expected 372.86, got 372.85" in result.output

    result = runner.invoke(cli, ["pay", db, "amort", "-a", "372.86"])
    assert result.exit_code == 0, result.output
    assert "Payment received" in result.output


def test_pay_rejects_bad_amount(runner, db):
    create_test_loan(runner, db)
    result = runner.invoke(cli, ["pay", db, "test", "-a", "lots"])
    assert result.exit_code == 2


def test_export_schedule(runner, db, tmp_path):
    create_test_loan(runner, db)

    json_path = tmp_path / "schedule.json"
    result = runner.invoke(cli, ["show", db, "test", "--output", str(json_path)])
    assert result.exit_code == 0, result.output
    data = json.loads(json_path.read_text())
    assert len(data["schedule"]) == 360
    assert data["summary"]["paid_off"] is True
    assert data["schedule"][-1]["balance"] == 0

    csv_path = tmp_path / "schedule.csv"
    result = runner.invoke(cli, ["show", db, "test", "--output", str(csv_path)])
    assert result.exit_code == 0, result.output
    with csv_path.open(newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["Period", "Date", "Interest", "Principal", "Balance"]
    assert len(rows) == 361


def test_uninitialized_database(runner, tmp_path):
    result = runner.invoke(cli, ["show", str(tmp_path / "empty.sqlite")])
    assert result.exit_code == 1
    assert "Error with database" in result.output
