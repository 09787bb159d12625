"""State machines for domain entities.

Deterministic state machines that define valid state transitions for
orders and their payments. The order transition table is the single
source of truth: every status change goes through
``validate_order_transition``.
"""

from enum import Enum

from oms.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Order State Machine
# ============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states.

    State diagram:
        PENDING ───────────────────────────────────────► CANCELLED
          │                                                 ▲
          │ start_processing                                │
          ▼                                                 │
        PROCESSING ──────────────────────────────────────►──┤
          │                                                 │
          │ mark_as_paid                                    │
          ▼                                                 │
        PAID ────────────────────────────────────────────►──┘
          │
          │ mark_as_shipped
          ▼
        SHIPPED
          │
          │ mark_as_delivered
          ▼
        DELIVERED
          │
          │ refund
          ▼
        REFUNDED
    """

    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get list of valid target states, in declaration order.

        Returns:
            List of states that can be transitioned to.
        """
        targets = _ORDER_TRANSITIONS.get(self, set())
        return [status for status in OrderStatus if status in targets]

    def is_editable(self) -> bool:
        """Check if order items can be added, removed or re-quantified.

        Returns:
            True if order is in an editable state.
        """
        return self in {OrderStatus.PENDING, OrderStatus.PROCESSING}

    def is_cancellable(self) -> bool:
        """Check if order can be cancelled.

        Returns:
            True if order can be cancelled.
        """
        return self.can_transition_to(OrderStatus.CANCELLED)

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state.

        Returns:
            True if no further transitions are possible.
        """
        return len(_ORDER_TRANSITIONS.get(self, set())) == 0

    def is_active(self) -> bool:
        """Check if the order still holds product stock.

        Delivered orders can only be refunded and are treated as
        finished for stock and product-deletion purposes.

        Returns:
            True if order is neither delivered, cancelled nor refunded.
        """
        return self not in INACTIVE_ORDER_STATUSES


# Order state transitions (defined outside enum to avoid Enum restrictions)
_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal state
    OrderStatus.REFUNDED: set(),  # Terminal state
}

INACTIVE_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)


# ============================================================================
# Payment Status
# ============================================================================


class PaymentStatus(str, Enum):
    """Payment lifecycle of an order.

    PENDING until the order is paid, COMPLETED afterwards, REFUNDED once
    a paid order is cancelled or refunded.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_order_transition(
    order_id: str,
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> None:
    """Validate and raise if order state transition is invalid.

    Args:
        order_id: Order identifier for error message.
        current_status: Current order status.
        target_status: Target order status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
