"""Product API endpoints.

Provides endpoints for catalog and inventory management:
- POST /products - create a product
- GET /products - paged, filtered catalog listing
- GET /products/low-stock - active products at or below threshold
- GET /products/{id} - product details
- PUT /products/{id} - update name, description, category, price
- POST /products/{id}/stock - signed stock adjustment
- POST /products/{id}/activate|deactivate - toggle availability
- GET /products/{id}/deletion-check - can the product be deleted
- DELETE /products/{id}?mode=soft|hard - delete a product
"""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from oms.api.dependencies import get_actor, get_services, raise_for_failure
from oms.api.schemas import (
    DeletionCheckResponse,
    DeletionModeEnum,
    ErrorResponse,
    ProductCreateRequest,
    ProductDeletedResponse,
    ProductListResponse,
    ProductResponse,
    ProductSortEnum,
    ProductUpdateRequest,
    StockAdjustmentRequest,
)
from oms.application.commands import (
    ActivateProductCommand,
    AdjustStockCommand,
    CreateProductCommand,
    DeactivateProductCommand,
    DeleteProductCommand,
    DeletionMode,
    UpdateProductDetailsCommand,
)
from oms.application.dto import product_to_dict
from oms.application.results import ProductResult
from oms.application.unit_of_work import ProductSearch
from oms.infrastructure.bootstrap import Container

router = APIRouter(prefix="/products", tags=["Products"])

Services = Annotated[Container, Depends(get_services)]
Actor = Annotated[str, Depends(get_actor)]

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def product_response(result: ProductResult, default_code: str) -> ProductResponse:
    """Convert a command result to a response, raising on failure."""
    raise_for_failure(result, default_code)
    return ProductResponse(**product_to_dict(result.product))


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Create product",
)
async def create_product(request: ProductCreateRequest, services: Services, actor: Actor) -> ProductResponse:
    """Add a product to the catalog. SKUs are unique."""
    result = await services.products.create_product(
        CreateProductCommand(
            name=request.name,
            sku=request.sku,
            price=request.price,
            stock_quantity=request.stock_quantity,
            currency=request.currency,
            description=request.description,
            category=request.category,
            min_stock_threshold=request.min_stock_threshold,
            actor=actor,
        )
    )
    return product_response(result, "PRODUCT_CREATE_FAILED")


@router.get(
    "",
    response_model=ProductListResponse,
    responses={401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="List products",
)
async def list_products(
    services: Services,
    page: int = Query(default=1, description="1-based page number"),
    page_size: int = Query(default=20, description="Products per page (max 100)"),
    category: str | None = Query(default=None, description="Exact category, case-insensitive"),
    is_active: bool | None = Query(default=True, description="Availability filter"),
    search: str | None = Query(default=None, description="Substring of name, description or SKU"),
    min_price: Decimal | None = Query(default=None, description="Lowest unit price"),
    max_price: Decimal | None = Query(default=None, description="Highest unit price"),
    sort_by: ProductSortEnum = Query(default=ProductSortEnum.NAME, description="Sort field"),
    descending: bool = Query(default=False, description="Reverse the ordering"),
) -> ProductListResponse:
    """Browse the catalog. Only active products unless ``is_active=false``."""
    result = await services.queries.list_products(
        ProductSearch(
            category=category,
            is_active=is_active,
            search_term=search,
            min_price=min_price,
            max_price=max_price,
            sort_by=sort_by.value,
            descending=descending,
            page=page,
            page_size=page_size,
        )
    )
    raise_for_failure(result)
    return ProductListResponse(**result.data)


# Registered before /{product_id} so "low-stock" is not taken for an ID.
@router.get(
    "/low-stock",
    response_model=list[ProductResponse],
    responses={401: {"model": ErrorResponse}},
    summary="List low-stock products",
)
async def list_low_stock(services: Services) -> list[ProductResponse]:
    """Active products whose stock is at or below their threshold."""
    result = await services.queries.get_low_stock_products()
    raise_for_failure(result)
    return [ProductResponse(**item) for item in result.data]


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    summary="Get product",
)
async def get_product(product_id: str, services: Services) -> ProductResponse:
    """Get a product by ID."""
    result = await services.queries.get_product(product_id)
    raise_for_failure(result, "PRODUCT_NOT_FOUND")
    return ProductResponse(**result.data)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    summary="Update product details",
)
async def update_product(
    product_id: str,
    request: ProductUpdateRequest,
    services: Services,
    actor: Actor,
) -> ProductResponse:
    """Update name, description, category and price.

    Existing order lines keep the price they were added with.
    """
    result = await services.products.update_details(
        UpdateProductDetailsCommand(
            product_id=product_id,
            name=request.name,
            price=request.price,
            description=request.description,
            category=request.category,
            actor=actor,
        )
    )
    return product_response(result, "PRODUCT_UPDATE_FAILED")


@router.post(
    "/{product_id}/stock",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    summary="Adjust stock",
)
async def adjust_stock(
    product_id: str,
    request: StockAdjustmentRequest,
    services: Services,
    actor: Actor,
) -> ProductResponse:
    """Restock (positive change) or take stock out (negative change)."""
    result = await services.products.adjust_stock(
        AdjustStockCommand(product_id, request.quantity_change, request.reason, actor=actor)
    )
    return product_response(result, "STOCK_ADJUSTMENT_FAILED")


@router.post(
    "/{product_id}/activate",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    summary="Activate product",
)
async def activate_product(product_id: str, services: Services, actor: Actor) -> ProductResponse:
    result = await services.products.activate(ActivateProductCommand(product_id, actor=actor))
    return product_response(result, "ACTIVATION_FAILED")


@router.post(
    "/{product_id}/deactivate",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    summary="Deactivate product",
)
async def deactivate_product(product_id: str, services: Services, actor: Actor) -> ProductResponse:
    result = await services.products.deactivate(DeactivateProductCommand(product_id, actor=actor))
    return product_response(result, "DEACTIVATION_FAILED")


@router.get(
    "/{product_id}/deletion-check",
    response_model=DeletionCheckResponse,
    responses=ERROR_RESPONSES,
    summary="Check whether a product can be deleted",
)
async def check_deletion(
    product_id: str,
    services: Services,
    suggest_alternatives: bool = Query(default=True, description="Suggest replacements when blocked"),
) -> DeletionCheckResponse:
    result = await services.products.check_deletion(product_id, suggest_alternatives)
    raise_for_failure(result, "DELETION_CHECK_FAILED")
    return DeletionCheckResponse(
        product_id=result.product_id,
        product_name=result.product_name,
        active_order_count=result.active_order_count,
        can_delete=result.can_delete,
        alternatives=result.alternatives,
    )


@router.delete(
    "/{product_id}",
    response_model=ProductDeletedResponse,
    responses=ERROR_RESPONSES,
    summary="Delete product",
    description="Soft delete deactivates the product; hard delete removes it. "
    "Both are refused while non-terminal orders reference the product.",
)
async def delete_product(
    product_id: str,
    services: Services,
    actor: Actor,
    mode: DeletionModeEnum = Query(default=DeletionModeEnum.SOFT, description="soft or hard"),
) -> ProductDeletedResponse:
    result = await services.products.delete_product(
        DeleteProductCommand(product_id, DeletionMode(mode.value), actor=actor)
    )
    raise_for_failure(result, "PRODUCT_DELETE_FAILED")
    return ProductDeletedResponse(product_id=result.product_id, hard_delete=result.hard_delete)
