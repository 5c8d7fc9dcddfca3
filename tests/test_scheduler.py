import pytest

from app.scheduler import build_scheduler, parse_run_hour


@pytest.mark.parametrize(
    "value,expected",
    [
        ("01:00", (1, 0)),
        ("23:45", (23, 45)),
        ("24:00", (1, 0)),
        ("noon", (1, 0)),
        (None, (1, 0)),
    ],
)
def test_parse_run_hour(value, expected):
    assert parse_run_hour(value) == expected


def test_build_scheduler_registers_daily_job():
    scheduler = build_scheduler()
    job = scheduler.get_job("auto_billing_job")
    assert job is not None
    assert job.name == "Daily Auto Billing Check"
