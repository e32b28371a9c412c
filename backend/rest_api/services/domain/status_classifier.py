"""
Table color classification.

Pure function from per-session counters to a dashboard color. The overview
endpoint and the color hint returned at scan/checkout time both go through
classify(), so the two can never disagree.

eat_later (diners pay at the end):
    ash     no active session
    yellow  active, no orders yet / some order unpaid
    green   active, every order paid

pay_first (diners pay before food arrives):
    ash     no active session / active but nothing paid yet
    yellow  paid, no dish ready yet
    green   first dish ready
"""

from dataclasses import dataclass

from shared.config.constants import DisplayPolicy, TableColor
from shared.utils.exceptions import ValidationError

REASON_NO_SESSION = "no active session"
REASON_NO_ORDERS = "session active, no orders yet"
REASON_UNPAID = "unpaid orders exist"
REASON_ALL_PAID = "all orders paid"
REASON_FIRST_DISH = "first dish ready"
REASON_AWAITING_DISH = "paid, awaiting first dish"
REASON_NO_PAYMENT = "no payment yet"


@dataclass(frozen=True)
class SessionCounters:
    """
    What the classifier needs to know about a table's active session.

    unpaid_count counts orders whose payment_status is not "paid";
    any_ready is True when an order is READY/COMPLETED or an item COMPLETED.
    """

    active: bool
    orders_count: int = 0
    unpaid_count: int = 0
    paid_count: int = 0
    any_ready: bool = False

    @property
    def unpaid_exists(self) -> bool:
        return self.unpaid_count > 0

    @property
    def all_paid(self) -> bool:
        # Vacuously true with no orders
        return self.unpaid_count == 0

    @property
    def any_paid(self) -> bool:
        return self.paid_count > 0


NO_SESSION = SessionCounters(active=False)


@dataclass(frozen=True)
class Verdict:
    color: str
    reason: str


def check_policy(policy: str) -> str:
    """Return the policy if known, else raise ValidationError."""
    if policy not in DisplayPolicy.ALL:
        raise ValidationError(
            f"Unknown display policy '{policy}', expected one of: {', '.join(DisplayPolicy.ALL)}",
            policy=policy,
        )
    return policy


def classify(counters: SessionCounters, policy: str) -> Verdict:
    check_policy(policy)

    if not counters.active:
        return Verdict(TableColor.ASH, REASON_NO_SESSION)

    if policy == DisplayPolicy.EAT_LATER:
        if counters.orders_count == 0:
            return Verdict(TableColor.YELLOW, REASON_NO_ORDERS)
        if counters.unpaid_exists:
            return Verdict(TableColor.YELLOW, REASON_UNPAID)
        return Verdict(TableColor.GREEN, REASON_ALL_PAID)

    if counters.any_ready:
        return Verdict(TableColor.GREEN, REASON_FIRST_DISH)
    if counters.any_paid:
        return Verdict(TableColor.YELLOW, REASON_AWAITING_DISH)
    return Verdict(TableColor.ASH, REASON_NO_PAYMENT)


def predict_colors(counters: SessionCounters) -> dict[str, str]:
    """Color under every policy, keyed by policy name."""
    return {policy: classify(counters, policy).color for policy in DisplayPolicy.ALL}
