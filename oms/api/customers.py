"""Customer API endpoints.

- POST /customers - register a customer
- GET /customers/{id} - customer details
- GET /customers/{id}/orders - the customer's orders, newest first
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from oms.api.dependencies import get_actor, get_services, raise_for_failure
from oms.api.schemas import (
    CustomerCreateRequest,
    CustomerResponse,
    ErrorResponse,
    OrderResponse,
)
from oms.application.commands import CreateCustomerCommand
from oms.application.dto import customer_to_dict
from oms.infrastructure.bootstrap import Container

router = APIRouter(prefix="/customers", tags=["Customers"])

Services = Annotated[Container, Depends(get_services)]


@router.post(
    "",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Register customer",
)
async def create_customer(
    request: CustomerCreateRequest,
    services: Services,
    actor: Annotated[str, Depends(get_actor)],
) -> CustomerResponse:
    """Register a customer. Emails are unique."""
    result = await services.customers.create_customer(
        CreateCustomerCommand(
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            phone=request.phone,
            address=request.address,
            actor=actor,
        )
    )
    raise_for_failure(result, "CUSTOMER_CREATE_FAILED")
    return CustomerResponse(**customer_to_dict(result.customer))


@router.get(
    "/{customer_id}",
    response_model=CustomerResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get customer",
)
async def get_customer(customer_id: str, services: Services) -> CustomerResponse:
    result = await services.queries.get_customer(customer_id)
    raise_for_failure(result, "CUSTOMER_NOT_FOUND")
    return CustomerResponse(**result.data)


@router.get(
    "/{customer_id}/orders",
    response_model=list[OrderResponse],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="List customer orders",
)
async def list_customer_orders(customer_id: str, services: Services) -> list[OrderResponse]:
    """The customer's orders, newest first."""
    result = await services.queries.get_customer_orders(customer_id)
    raise_for_failure(result, "CUSTOMER_NOT_FOUND")
    return [OrderResponse(**order) for order in result.data]
