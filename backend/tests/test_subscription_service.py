"""
Tests for subscription CRUD, ordering, credit resets and the dashboard summary.
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import update

from app.models.credit_history import CreditHistory
from app.models.subscription import Subscription
from app.services.renewal import evaluate_credit_cycle
from app.services.subscription import (
    apply_credit_reset,
    build_summary,
    build_timeline,
    create_subscription,
    delete_subscription,
    list_subscriptions,
    monthly_equivalent_price,
    refresh_credit_cycles,
    reorder_subscriptions,
    update_credits,
    update_subscription,
)

TODAY = date(2025, 3, 20)


def _data(**overrides):
    data = {
        "name": "Claude Pro",
        "icon": "🧠",
        "price": Decimal("18.00"),
        "currency": "EUR",
        "billing_cycle": "monthly",
        "renewal_day": 15,
        "renewal_month": None,
        "credits_total": 100,
        "credits_remaining": 80,
    }
    data.update(overrides)
    return data


class TestCrud:
    def test_create_appends_and_starts_period(self, db, user):
        first = create_subscription(db, user.id, _data(), TODAY)
        second = create_subscription(db, user.id, _data(name="Cursor"), TODAY)

        assert first.position == 0
        assert second.position == 1
        assert first.last_reset_date == TODAY
        assert first.credits_remaining == 80

    def test_created_credits_survive_refresh(self, db, user):
        create_subscription(db, user.id, _data(), TODAY)

        subscriptions = refresh_credit_cycles(db, user.id, TODAY)

        assert subscriptions[0].credits_remaining == 80
        assert db.query(CreditHistory).count() == 0

    def test_monthly_drops_renewal_month(self, db, user):
        subscription = create_subscription(db, user.id, _data(renewal_month=6), TODAY)
        assert subscription.renewal_month is None

    def test_create_rejects_remaining_above_total(self, db, user):
        with pytest.raises(ValueError, match="cannot exceed"):
            create_subscription(db, user.id, _data(credits_remaining=101), TODAY)

    def test_update_switches_to_annual(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)

        updated = update_subscription(
            db, user.id, subscription.id, {"billing_cycle": "annual", "renewal_month": 9}
        )

        assert updated.billing_cycle == "annual"
        assert updated.renewal_month == 9

    def test_update_rejects_null_for_required_column(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)
        with pytest.raises(ValueError, match="credits_total cannot be null"):
            update_subscription(db, user.id, subscription.id, {"credits_total": None})

    def test_update_to_annual_without_month_rejected(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)

        with pytest.raises(ValueError, match="renewal month"):
            update_subscription(db, user.id, subscription.id, {"billing_cycle": "annual"})

        db.refresh(subscription)
        assert subscription.billing_cycle == "monthly"

    def test_create_annual_without_month_rejected(self, db, user):
        with pytest.raises(ValueError, match="renewal month"):
            create_subscription(db, user.id, _data(billing_cycle="annual"), TODAY)

    def test_update_checks_credit_bounds_against_stored_total(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)
        with pytest.raises(ValueError):
            update_subscription(db, user.id, subscription.id, {"credits_remaining": 150})

    def test_update_credits(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)

        updated = update_credits(db, user.id, subscription.id, 150, credits_total=200)

        assert updated.credits_remaining == 150
        assert updated.credits_total == 200

    def test_update_credits_above_total(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)
        with pytest.raises(ValueError):
            update_credits(db, user.id, subscription.id, 101)

    def test_other_users_subscription_not_found(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)
        with pytest.raises(ValueError, match="not found"):
            update_credits(db, user.id + 1, subscription.id, 10)

    def test_delete_removes_history(self, db, user):
        subscription = create_subscription(db, user.id, _data(), TODAY)
        db.add(CreditHistory(subscription_id=subscription.id, user_id=user.id, credits_used=1, credits_total=10))
        db.commit()

        delete_subscription(db, user.id, subscription.id)

        assert list_subscriptions(db, user.id) == []
        assert db.query(CreditHistory).count() == 0


class TestReorder:
    def _three(self, db, user):
        return [create_subscription(db, user.id, _data(name=name), TODAY) for name in ("A", "B", "C")]

    def test_move_last_to_first(self, db, user):
        a, b, c = self._three(db, user)

        reorder_subscriptions(db, user.id, c.id, a.id)

        assert [s.name for s in list_subscriptions(db, user.id)] == ["C", "A", "B"]

    def test_move_first_to_last(self, db, user):
        a, b, c = self._three(db, user)

        reorder_subscriptions(db, user.id, a.id, c.id)

        ordered = list_subscriptions(db, user.id)
        assert [s.name for s in ordered] == ["B", "C", "A"]
        assert [s.position for s in ordered] == [0, 1, 2]

    def test_unknown_id_rejected(self, db, user):
        a, _, _ = self._three(db, user)
        with pytest.raises(ValueError, match="Invalid indices"):
            reorder_subscriptions(db, user.id, a.id, 9999)


class TestCreditReset:
    def test_refresh_resets_and_records_usage(self, db, user, make_subscription):
        subscription = make_subscription(credits_remaining=30, last_reset_date=date(2025, 2, 15))

        refresh_credit_cycles(db, user.id, TODAY)

        db.refresh(subscription)
        assert subscription.credits_remaining == 100
        assert subscription.last_reset_date == TODAY
        history = db.query(CreditHistory).all()
        assert [(h.credits_used, h.credits_total) for h in history] == [(70, 100)]

    def test_second_refresh_is_a_no_op(self, db, user, make_subscription):
        make_subscription(credits_remaining=30, last_reset_date=date(2025, 2, 15))

        refresh_credit_cycles(db, user.id, TODAY)
        refresh_credit_cycles(db, user.id, TODAY)

        assert db.query(CreditHistory).count() == 1

    def test_tracking_disabled_resets_without_history(self, db, user, make_subscription):
        subscription = make_subscription(
            credits_remaining=30, last_reset_date=date(2025, 2, 15), credits_tracking_disabled=True
        )

        refresh_credit_cycles(db, user.id, TODAY)

        db.refresh(subscription)
        assert subscription.credits_remaining == 100
        assert db.query(CreditHistory).count() == 0

    def test_stale_reset_loses_to_concurrent_writer(self, db, user, make_subscription):
        subscription = make_subscription(credits_remaining=30, last_reset_date=date(2025, 2, 15))
        evaluation = evaluate_credit_cycle(subscription, today=TODAY)
        assert evaluation.needs_reset

        # Another request applies the reset while this one still holds the old row
        db.expunge(subscription)
        db.execute(
            update(Subscription)
            .where(Subscription.id == subscription.id)
            .values(credits_remaining=100, last_reset_date=TODAY)
        )
        db.commit()
        db.add(subscription)

        applied = apply_credit_reset(db, subscription, evaluation)

        assert applied is False
        assert subscription.last_reset_date == TODAY
        assert db.query(CreditHistory).count() == 0

    def test_apply_without_reset_needed(self, db, user, make_subscription):
        subscription = make_subscription(last_reset_date=date(2025, 3, 15))
        evaluation = evaluate_credit_cycle(subscription, today=TODAY)

        assert apply_credit_reset(db, subscription, evaluation) is False


def _sub(id, name, **overrides):
    values = dict(
        id=id,
        name=name,
        icon="✨",
        price=Decimal("10.00"),
        currency="EUR",
        billing_cycle="monthly",
        renewal_day=1,
        renewal_month=None,
        trial_end_date=None,
        credits_total=0,
        credits_remaining=0,
        credits_tracking_disabled=False,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestSummary:
    today = date(2025, 3, 10)

    def _subscriptions(self):
        return [
            _sub(1, "ChatGPT", price=Decimal("20.00"), renewal_day=12, credits_total=100, credits_remaining=50),
            _sub(2, "Copilot", price=Decimal("120.00"), billing_cycle="annual", renewal_day=1, renewal_month=9),
            _sub(3, "Perplexity", currency="USD", renewal_day=25, credits_total=100, credits_remaining=10),
            _sub(
                4, "Runway", price=Decimal("5.00"), renewal_day=11,
                credits_total=100, credits_remaining=5, credits_tracking_disabled=True,
            ),
        ]

    def test_monthly_equivalent_price(self):
        assert monthly_equivalent_price(_sub(1, "x", price=Decimal("100"), billing_cycle="annual")) == Decimal("8.33")
        assert monthly_equivalent_price(_sub(1, "x", price=Decimal("9.99"))) == Decimal("9.99")

    def test_summary(self):
        summary = build_summary(self._subscriptions(), self.today)

        assert summary.subscription_count == 4
        assert summary.monthly_cost == {"EUR": Decimal("35.00"), "USD": Decimal("10.00")}
        assert summary.low_credit_count == 1
        assert summary.next_renewal.name == "Runway"
        assert [entry.name for entry in summary.credits_at_risk] == ["ChatGPT"]

    def test_empty_summary(self):
        summary = build_summary([], self.today)

        assert summary.subscription_count == 0
        assert summary.monthly_cost == {}
        assert summary.next_renewal is None
        assert summary.credits_at_risk == []

    def test_timeline_sorted_by_days_then_name(self):
        subscriptions = [_sub(1, "b", renewal_day=12), _sub(2, "a", renewal_day=12), _sub(3, "c", renewal_day=10)]

        timeline = build_timeline(subscriptions, self.today)

        assert [(entry.name, entry.days_until_renewal) for entry in timeline] == [("c", 0), ("a", 2), ("b", 2)]
        assert timeline[0].urgency == "critical"
