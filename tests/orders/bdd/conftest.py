"""Shared BDD fixtures and step definitions for the Orders domain."""

from datetime import datetime, timedelta, timezone

import pytest
from orders.exceptions import OrdersError
from orders.order.order import DeliveryPartner, MerchantOrder, PickupPlan
from orders.order.workflow import active_countdown, plan_deadline
from pytest_bdd import given, parsers, then, when
from shared.business_hours import BusinessHours

IST = timezone(timedelta(hours=5, minutes=30))
HOURS = BusinessHours(open_hour=10, close_hour=17, tz=IST)


def ist(text: str) -> datetime:
    return datetime.strptime(text, "%Y-%m-%d %H:%M").replace(tzinfo=IST)


@pytest.fixture()
def clock():
    return {"now": None}


@pytest.fixture()
def error():
    """Container for a refused action."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('an order placed on "{placed}" IST for seller "{merchant_id}"'),
    target_fixture="order",
)
def placed_order(placed, merchant_id, clock):
    created_at = ist(placed)
    clock["now"] = created_at
    order = MerchantOrder.receive(
        upstream_order_id="7001",
        merchant_id=merchant_id,
        created_at=created_at,
        lines_data=[{"title": "Brass Diya", "sku": "DIYA-01", "quantity": 1, "unit_price": 149.5}],
        accept_by=HOURS.add_business_duration(created_at, timedelta(hours=3)),
        received_at=created_at,
        currency="INR",
    )
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('seller "{merchant_id}" accepts the order at "{at}" IST'))
def seller_accepts(order, clock, merchant_id, at):
    clock["now"] = ist(at)
    order.accept(merchant_id, clock["now"])


@when(parsers.cfparse('seller "{merchant_id}" tries to accept the order at "{at}" IST'))
def seller_tries_to_accept(order, error, merchant_id, at):
    try:
        order.accept(merchant_id, ist(at))
    except OrdersError as exc:
        error["exc"] = exc


@when(parsers.cfparse('admin "{admin_id}" assigns pickup at "{at}" IST'))
def admin_assigns_pickup(order, clock, admin_id, at):
    clock["now"] = ist(at)
    order.assign_pickup(
        admin_id,
        PickupPlan(window="Today 16:00-18:00", address="12 MG Road, Bengaluru"),
        DeliveryPartner(name="Swift Couriers", phone="+91-98450-00000"),
        clock["now"],
    )


@when(parsers.cfparse('seller "{merchant_id}" dispatches the order at "{at}" IST'))
def seller_dispatches(order, clock, merchant_id, at):
    clock["now"] = ist(at)
    order.assert_owned_by(merchant_id)
    order.mark_dispatched(merchant_id, clock["now"])


@when(parsers.cfparse('seller "{merchant_id}" tries to dispatch the order at "{at}" IST'))
def seller_tries_to_dispatch(order, error, merchant_id, at):
    try:
        order.assert_owned_by(merchant_id)
        order.mark_dispatched(merchant_id, ist(at))
    except OrdersError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('at "{at}" IST the order is "{phase}"'))
def phase_at(order, at, phase):
    assert order.phase(ist(at)).value == phase


@then(parsers.cfparse('the order is "{phase}"'))
def phase_now(order, clock, phase):
    assert order.phase(clock["now"]).value == phase


@then(parsers.cfparse('the action is refused as "{name}"'))
def refused(error, name):
    assert error["exc"] is not None
    assert type(error["exc"]).__name__ == name


@then(parsers.cfparse('the order must be accepted by "{deadline}" IST'))
def accept_by(order, deadline):
    assert order.accept_deadline() == ist(deadline)


@then(parsers.cfparse('at "{at}" IST the countdown reads "{display}"'))
def countdown_reads(order, at, display):
    assert active_countdown(order, ist(at)).display == display


@then(parsers.cfparse('at "{at}" IST there is no countdown'))
def no_countdown(order, at):
    assert active_countdown(order, ist(at)) is None


@then(parsers.cfparse('pickup must be planned by "{deadline}" IST'))
def plan_by(order, clock, deadline):
    assert plan_deadline(order, clock["now"]) == ist(deadline)
