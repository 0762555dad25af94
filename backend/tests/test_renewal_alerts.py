"""
Tests for the renewal alert job and its sent-alert ledger.
"""
from datetime import date

import pytest
from apscheduler.triggers.cron import CronTrigger

from app.models.renewal_alert import RenewalAlert
from app.models.user import User
from app.services.scheduler import (
    add_alert_job,
    get_scheduler,
    is_alert_day,
    parse_schedule_time,
    send_renewal_alerts,
    stop_scheduler,
)
from app.services.scheduler.renewal_alerts import JOB_ID

TODAY = date(2025, 3, 10)


class FakeSender:
    def __init__(self, results=None):
        self.calls = []
        self.results = list(results or [])

    def __call__(self, to_email, name, icon, days_until, renewal_date):
        self.calls.append((to_email, name, days_until, renewal_date))
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return True


def test_sends_alert_five_days_before(db, make_subscription):
    make_subscription(renewal_day=15)
    sender = FakeSender()

    result = send_renewal_alerts(db, TODAY, sender=sender)

    assert result.alerts_sent == ["ChatGPT Plus (J-5)"]
    assert sender.calls == [("alice@example.com", "ChatGPT Plus", 5, date(2025, 3, 15))]
    alert = db.query(RenewalAlert).one()
    assert (alert.renewal_date, alert.days_before, alert.recipient) == (date(2025, 3, 15), 5, "alice@example.com")


@pytest.mark.parametrize("today,days", [(date(2025, 3, 4), 11), (date(2025, 3, 14), 1)])
def test_other_alert_offsets(db, make_subscription, today, days):
    make_subscription(renewal_day=15)

    result = send_renewal_alerts(db, today, sender=FakeSender())

    assert result.alerts_sent == [f"ChatGPT Plus (J-{days})"]


def test_no_alert_on_other_days(db, make_subscription):
    make_subscription(renewal_day=14)
    sender = FakeSender()

    result = send_renewal_alerts(db, TODAY, sender=sender)

    assert result.alerts_sent == []
    assert sender.calls == []
    assert result.total_subscriptions == 1


def test_second_run_same_day_sends_nothing(db, make_subscription):
    make_subscription(renewal_day=15)
    sender = FakeSender()

    send_renewal_alerts(db, TODAY, sender=sender)
    result = send_renewal_alerts(db, TODAY, sender=sender)

    assert len(sender.calls) == 1
    assert result.alerts_sent == []
    assert result.already_sent == ["ChatGPT Plus (J-5)"]


def test_failed_send_is_retried_on_next_run(db, make_subscription):
    make_subscription(renewal_day=15)
    sender = FakeSender(results=[False, True])

    first = send_renewal_alerts(db, TODAY, sender=sender)
    assert first.alerts_sent == []
    assert first.errors == ["Failed to send alert for ChatGPT Plus"]
    assert db.query(RenewalAlert).count() == 0

    second = send_renewal_alerts(db, TODAY, sender=sender)
    assert second.alerts_sent == ["ChatGPT Plus (J-5)"]
    assert db.query(RenewalAlert).count() == 1


def test_sender_exception_counts_as_failure(db, make_subscription):
    make_subscription(renewal_day=15)

    result = send_renewal_alerts(db, TODAY, sender=FakeSender(results=[RuntimeError("smtp down")]))

    assert result.errors == ["Failed to send alert for ChatGPT Plus"]
    assert db.query(RenewalAlert).count() == 0


def test_alerts_disabled_subscription_skipped(db, make_subscription):
    make_subscription(renewal_day=15, alerts_enabled=False)
    make_subscription(name="Claude Pro", renewal_day=15, position=1)
    sender = FakeSender()

    result = send_renewal_alerts(db, TODAY, sender=sender)

    assert result.alerts_enabled == 1
    assert result.alerts_sent == ["Claude Pro (J-5)"]


def test_annual_subscription_alert(db, make_subscription):
    make_subscription(billing_cycle="annual", renewal_month=3, renewal_day=11)

    result = send_renewal_alerts(db, TODAY, sender=FakeSender())

    assert result.alerts_sent == ["ChatGPT Plus (J-1)"]


def test_custom_alert_days(db, make_subscription):
    make_subscription(renewal_day=13)

    result = send_renewal_alerts(db, TODAY, sender=FakeSender(), alert_days=(3,))

    assert result.alerts_sent == ["ChatGPT Plus (J-3)"]


def test_run_limited_to_one_user(db, user, make_subscription):
    other = User(email="carol@example.com", hashed_password="not-a-real-hash", is_active=True)
    db.add(other)
    db.commit()
    make_subscription(renewal_day=15)
    make_subscription(name="Carol Private", renewal_day=15, user_id=other.id)
    sender = FakeSender()

    result = send_renewal_alerts(db, TODAY, sender=sender, user_id=user.id)

    assert result.total_subscriptions == 1
    assert result.alerts_sent == ["ChatGPT Plus (J-5)"]
    assert [call[1] for call in sender.calls] == ["ChatGPT Plus"]


def test_scheduled_run_covers_every_user(db, user, make_subscription):
    other = User(email="carol@example.com", hashed_password="not-a-real-hash", is_active=True)
    db.add(other)
    db.commit()
    make_subscription(renewal_day=15)
    make_subscription(name="Carol Private", renewal_day=15, user_id=other.id)

    result = send_renewal_alerts(db, TODAY, sender=FakeSender())

    assert sorted(result.alerts_sent) == ["Carol Private (J-5)", "ChatGPT Plus (J-5)"]


def test_no_subscriptions(db):
    result = send_renewal_alerts(db, TODAY, sender=FakeSender())
    assert result.message == "No subscriptions found"


def test_smtp_not_configured(db, make_subscription, monkeypatch):
    monkeypatch.setattr("app.services.scheduler.renewal_alerts.is_email_configured", lambda: False)
    make_subscription(renewal_day=15)

    result = send_renewal_alerts(db, TODAY)

    assert result.message == "SMTP not configured"
    assert db.query(RenewalAlert).count() == 0


def test_is_alert_day():
    assert is_alert_day(11, (11, 5, 1))
    assert is_alert_day(1, (11, 5, 1))
    assert not is_alert_day(0, (11, 5, 1))


class TestSchedule:
    def test_parse_schedule_time(self):
        assert parse_schedule_time("08:30") == (8, 30)

    @pytest.mark.parametrize("value", ["8h30", "24:00", "12:60", "", None])
    def test_invalid_schedule_time(self, value):
        with pytest.raises(ValueError):
            parse_schedule_time(value)

    def test_add_alert_job_registers_daily_cron(self):
        try:
            add_alert_job("07:45")
            job = get_scheduler().get_job(JOB_ID)
            assert job is not None
            assert isinstance(job.trigger, CronTrigger)
        finally:
            stop_scheduler()
