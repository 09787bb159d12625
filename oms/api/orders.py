"""Order API endpoints.

Provides endpoints for the order lifecycle:
- POST /orders - create an order (reserves stock)
- GET /orders/status/{status} - orders in one status, newest first
- GET /orders/{id} - order details
- POST/PATCH/DELETE /orders/{id}/items - edit lines of a pending order
- POST /orders/{id}/process|pay|ship|deliver|refund|cancel - transitions
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from oms.api.dependencies import get_actor, get_services, raise_for_failure
from oms.api.schemas import (
    ErrorResponse,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderItemAddRequest,
    OrderItemQuantityRequest,
    OrderPayRequest,
    OrderRefundRequest,
    OrderResponse,
    OrderShipRequest,
)
from oms.application.commands import (
    AddOrderItemCommand,
    CancelOrderCommand,
    CreateOrderCommand,
    MarkOrderAsDeliveredCommand,
    MarkOrderAsPaidCommand,
    MarkOrderAsShippedCommand,
    OrderLine,
    RefundOrderCommand,
    RemoveOrderItemCommand,
    StartProcessingCommand,
    UpdateOrderItemQuantityCommand,
)
from oms.application.dto import order_to_dict
from oms.application.results import OrderResult
from oms.infrastructure.bootstrap import Container

router = APIRouter(prefix="/orders", tags=["Orders"])

Services = Annotated[Container, Depends(get_services)]
Actor = Annotated[str, Depends(get_actor)]

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def order_response(result: OrderResult, default_code: str) -> OrderResponse:
    """Convert a command result to a response, raising on failure."""
    raise_for_failure(result, default_code)
    return OrderResponse(**order_to_dict(result.order))


# ============================================================================
# Creation & Reads
# ============================================================================


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Create order",
    description="Create an order for a customer, taking stock for every line.",
)
async def create_order(request: OrderCreateRequest, services: Services, actor: Actor) -> OrderResponse:
    """Create an order.

    Stock for all lines is reserved atomically with the order; if any
    line cannot be satisfied nothing is written.
    """
    result = await services.orders.create_order(
        CreateOrderCommand(
            customer_id=request.customer_id,
            items=[OrderLine(line.product_id, line.quantity) for line in request.items],
            shipping_address=request.shipping_address,
            notes=request.notes,
            currency=request.currency,
            actor=actor,
        )
    )
    return order_response(result, "ORDER_CREATE_FAILED")


@router.get(
    "/status/{order_status}",
    response_model=list[OrderResponse],
    responses={401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="List orders by status",
)
async def list_orders_by_status(order_status: str, services: Services) -> list[OrderResponse]:
    """Orders currently in one status, newest first."""
    result = await services.queries.get_orders_by_status(order_status)
    raise_for_failure(result, "INVALID_STATUS")
    return [OrderResponse(**item) for item in result.data]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Get order details",
)
async def get_order(order_id: str, services: Services) -> OrderResponse:
    """Get an order by ID, with its items."""
    result = await services.queries.get_order(order_id)
    raise_for_failure(result, "ORDER_NOT_FOUND")
    return OrderResponse(**result.data)


# ============================================================================
# Items
# ============================================================================


@router.post(
    "/{order_id}/items",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Add order item",
)
async def add_item(
    order_id: str,
    request: OrderItemAddRequest,
    services: Services,
    actor: Actor,
) -> OrderResponse:
    """Add a line to a pending order."""
    result = await services.orders.add_item(
        AddOrderItemCommand(order_id, request.product_id, request.quantity, actor=actor)
    )
    return order_response(result, "ADD_ITEM_FAILED")


@router.patch(
    "/{order_id}/items/{item_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Change item quantity",
)
async def update_item_quantity(
    order_id: str,
    item_id: str,
    request: OrderItemQuantityRequest,
    services: Services,
    actor: Actor,
) -> OrderResponse:
    """Change the quantity of a line of a pending order."""
    result = await services.orders.update_item_quantity(
        UpdateOrderItemQuantityCommand(order_id, item_id, request.quantity, actor=actor)
    )
    return order_response(result, "UPDATE_ITEM_FAILED")


@router.delete(
    "/{order_id}/items/{item_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Remove order item",
)
async def remove_item(order_id: str, item_id: str, services: Services, actor: Actor) -> OrderResponse:
    """Remove a line from a pending order and restore its stock."""
    result = await services.orders.remove_item(RemoveOrderItemCommand(order_id, item_id, actor=actor))
    return order_response(result, "REMOVE_ITEM_FAILED")


# ============================================================================
# Lifecycle
# ============================================================================


@router.post(
    "/{order_id}/process",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Start processing",
)
async def start_processing(order_id: str, services: Services, actor: Actor) -> OrderResponse:
    """Move a pending order into processing."""
    result = await services.orders.start_processing(StartProcessingCommand(order_id, actor=actor))
    return order_response(result, "TRANSITION_FAILED")


@router.post(
    "/{order_id}/pay",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Mark order as paid",
)
async def pay_order(
    order_id: str,
    request: OrderPayRequest,
    services: Services,
    actor: Actor,
) -> OrderResponse:
    """Record payment. The amount must equal the order total."""
    result = await services.orders.mark_as_paid(
        MarkOrderAsPaidCommand(
            order_id=order_id,
            payment_method=request.payment_method,
            amount_paid=request.amount,
            currency=request.currency,
            actor=actor,
        )
    )
    return order_response(result, "PAYMENT_FAILED")


@router.post(
    "/{order_id}/ship",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Mark order as shipped",
)
async def ship_order(
    order_id: str,
    request: OrderShipRequest,
    services: Services,
    actor: Actor,
) -> OrderResponse:
    """Ship a paid order."""
    result = await services.orders.mark_as_shipped(
        MarkOrderAsShippedCommand(order_id, request.tracking_number, actor=actor)
    )
    return order_response(result, "SHIP_FAILED")


@router.post(
    "/{order_id}/deliver",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Mark order as delivered",
)
async def deliver_order(order_id: str, services: Services, actor: Actor) -> OrderResponse:
    """Confirm delivery of a shipped order."""
    result = await services.orders.mark_as_delivered(MarkOrderAsDeliveredCommand(order_id, actor=actor))
    return order_response(result, "DELIVER_FAILED")


@router.post(
    "/{order_id}/refund",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Refund order",
)
async def refund_order(
    order_id: str,
    request: OrderRefundRequest,
    services: Services,
    actor: Actor,
) -> OrderResponse:
    """Refund a delivered order."""
    result = await services.orders.refund(RefundOrderCommand(order_id, request.reason, actor=actor))
    return order_response(result, "REFUND_FAILED")


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    summary="Cancel order",
    description="Cancel a pending, processing or paid order and restore its stock.",
)
async def cancel_order(
    order_id: str,
    request: OrderCancelRequest,
    services: Services,
    actor: Actor,
) -> OrderResponse:
    """Cancel an order."""
    result = await services.orders.cancel_order(CancelOrderCommand(order_id, request.reason, actor=actor))
    return order_response(result, "CANCEL_FAILED")
