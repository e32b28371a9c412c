"""
Tests for the color overview built from live sessions and orders.
"""

import pytest

from shared.utils.exceptions import NotFoundError, ValidationError
from rest_api.models import DiningSession, utcnow
from rest_api.services.domain.order_service import (
    ItemRequest,
    OrderOptions,
    OrderService,
    PaymentIntent,
)
from rest_api.services.domain.overview_service import OverviewService, label_sort_key
from rest_api.services.domain.session_service import SessionService


def colors_of(db_session, tenant_id, policy):
    return {
        v.table_label: (v.color, v.reason)
        for v in OverviewService(db_session).overview(tenant_id, policy)
    }


class TestScanToGreen:
    """Walk one table from its first scan to green under both policies."""

    def test_fresh_session(self, db_session, seed_table):
        SessionService(db_session).ensure_active_session(seed_table)
        db_session.commit()

        assert colors_of(db_session, seed_table.tenant_id, "eat_later")["1"] == (
            "yellow",
            "session active, no orders yet",
        )
        assert colors_of(db_session, seed_table.tenant_id, "pay_first")["1"] == (
            "ash",
            "no payment yet",
        )

    def test_paid_order_until_ready(self, db_session, seed_table):
        session = SessionService(db_session).ensure_active_session(seed_table).session
        orders = OrderService(db_session)
        o1 = orders.place_order(
            session,
            [ItemRequest(name="Empanada", quantity=2, unit_price_cents=500)],
            OrderOptions(payment=PaymentIntent(pay_first=True)),
        ).order
        db_session.commit()

        assert o1.total_amount_cents == 1000
        assert colors_of(db_session, seed_table.tenant_id, "pay_first")["1"] == (
            "yellow",
            "paid, awaiting first dish",
        )

        orders.update_order_status(seed_table.tenant_id, o1.id, "READY")
        db_session.commit()

        assert colors_of(db_session, seed_table.tenant_id, "pay_first")["1"] == (
            "green",
            "first dish ready",
        )

    def test_completed_item_counts_as_ready(self, db_session, seed_table):
        session = SessionService(db_session).ensure_active_session(seed_table).session
        orders = OrderService(db_session)
        order = orders.place_order(
            session,
            [ItemRequest(name="Te", unit_price_cents=300)],
            OrderOptions(payment=PaymentIntent(method="online")),
        ).order
        orders.update_item_status(seed_table.tenant_id, order.items[0].id, "COMPLETED")
        db_session.commit()

        verdict = OverviewService(db_session).overview(seed_table.tenant_id, "pay_first")[0]

        assert verdict.color == "green"
        assert verdict.first_ready_at is not None

    def test_second_unpaid_order_keeps_yellow(self, db_session, seed_table):
        session = SessionService(db_session).ensure_active_session(seed_table).session
        orders = OrderService(db_session)
        orders.place_order(
            session,
            [ItemRequest(name="Empanada", quantity=2, unit_price_cents=500)],
            OrderOptions(payment=PaymentIntent(status="paid")),
        )
        db_session.commit()
        assert colors_of(db_session, seed_table.tenant_id, "eat_later")["1"][0] == "green"

        orders.place_order(session, [ItemRequest(name="Cafe", unit_price_cents=400)])
        db_session.commit()

        assert colors_of(db_session, seed_table.tenant_id, "eat_later")["1"] == (
            "yellow",
            "unpaid orders exist",
        )

    def test_paying_last_unpaid_order_turns_green(self, db_session, seed_table):
        session = SessionService(db_session).ensure_active_session(seed_table).session
        orders = OrderService(db_session)
        order = orders.place_order(session, [ItemRequest(name="Cafe", unit_price_cents=400)]).order
        db_session.commit()
        assert colors_of(db_session, seed_table.tenant_id, "eat_later")["1"][0] == "yellow"

        orders.update_payment_status(seed_table.tenant_id, order.id, "paid")
        db_session.commit()

        assert colors_of(db_session, seed_table.tenant_id, "eat_later")["1"] == (
            "green",
            "all orders paid",
        )

    def test_partially_paid_order_stays_yellow(self, db_session, seed_table):
        session = SessionService(db_session).ensure_active_session(seed_table).session
        orders = OrderService(db_session)
        order = orders.place_order(session, [ItemRequest(name="Cafe", unit_price_cents=400)]).order
        orders.update_payment_status(seed_table.tenant_id, order.id, "partially_paid")
        db_session.commit()

        assert colors_of(db_session, seed_table.tenant_id, "eat_later")["1"][0] == "yellow"

    def test_closing_turns_ash(self, db_session, seed_table):
        sessions = SessionService(db_session)
        session = sessions.ensure_active_session(seed_table).session
        sessions.close(seed_table.tenant_id, session.id)
        db_session.commit()

        for policy in ("eat_later", "pay_first"):
            assert colors_of(db_session, seed_table.tenant_id, policy)["1"] == (
                "ash",
                "no active session",
            )


class TestOverviewShape:
    def test_one_verdict_per_active_table_sorted(self, db_session, seed_tenant, make_table):
        for label in ("10", "Terrace", "2", "1"):
            make_table(seed_tenant, label=label)
        make_table(seed_tenant, label="Retired", is_active=False)

        verdicts = OverviewService(db_session).overview(seed_tenant.id, "eat_later")

        assert [v.table_label for v in verdicts] == ["1", "2", "10", "Terrace"]
        assert all(v.color == "ash" for v in verdicts)
        assert all(v.session_id is None for v in verdicts)

    def test_tables_of_other_tenants_are_excluded(
        self, db_session, seed_tenant, other_tenant, make_table
    ):
        make_table(seed_tenant, label="1")
        make_table(other_tenant, label="1")

        verdicts = OverviewService(db_session).overview(seed_tenant.id, "eat_later")

        assert len(verdicts) == 1

    def test_pointer_to_closed_session_is_ash(self, db_session, seed_table):
        """Only a pointer to a still-active session makes the table occupied."""
        closed = DiningSession(
            tenant_id=seed_table.tenant_id,
            table_id=seed_table.id,
            status="completed",
            payment_status="unpaid",
            started_at=utcnow(),
        )
        db_session.add(closed)
        db_session.flush()
        seed_table.current_session_id = closed.id
        db_session.commit()

        verdict = OverviewService(db_session).overview(seed_table.tenant_id, "eat_later")[0]

        assert verdict.color == "ash"
        assert verdict.session_id is None

    def test_counters_reported(self, db_session, seed_table):
        session = SessionService(db_session).ensure_active_session(seed_table).session
        orders = OrderService(db_session)
        orders.place_order(
            session,
            [ItemRequest(name="A", unit_price_cents=100)],
            OrderOptions(payment=PaymentIntent(pay_now=True)),
        )
        orders.place_order(session, [ItemRequest(name="B", unit_price_cents=100)])
        db_session.commit()

        verdict = OverviewService(db_session).overview(seed_table.tenant_id, "eat_later")[0]

        assert verdict.session_id == session.id
        assert verdict.counters.orders_count == 2
        assert verdict.counters.unpaid_count == 1
        assert verdict.counters.paid_count == 1
        assert verdict.counters.any_ready is False
        assert verdict.first_ready_at is None

    def test_unknown_policy(self, db_session, seed_tenant):
        with pytest.raises(ValidationError):
            OverviewService(db_session).overview(seed_tenant.id, "later")

    def test_unknown_tenant(self, db_session):
        with pytest.raises(NotFoundError):
            OverviewService(db_session).overview(4242, "eat_later")

    def test_inactive_tenant(self, db_session, seed_tenant):
        seed_tenant.is_active = False
        db_session.commit()

        with pytest.raises(NotFoundError):
            OverviewService(db_session).overview(seed_tenant.id, "eat_later")


class TestLabelSortKey:
    def test_numeric_before_text(self):
        labels = ["B", "10", "a", "2", "1"]
        assert sorted(labels, key=label_sort_key) == ["1", "2", "10", "B", "a"]
