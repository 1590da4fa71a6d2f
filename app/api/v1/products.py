"""Product endpoints: catalog reads, paging, search, purchases and admin-only writes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.auth import get_app_settings, get_current_user, require_admin
from app.core.config import Settings
from app.core.database import get_db
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.schemas.auth import CurrentUser
from app.schemas.product import ProductPage, ProductRead, ProductWrite, PurchaseResponse
from app.services import products as product_service

router = APIRouter()


def _read_all(products: list) -> list[ProductRead]:
    return [ProductRead.model_validate(p) for p in products]


@router.get("", response_model=list[ProductRead])
async def list_products(db: Annotated[AsyncSession, Depends(get_db)]) -> list[ProductRead]:
    return _read_all(await product_service.list_products(db))


@router.get("/paged", response_model=ProductPage)
async def list_products_page(
    db: Annotated[AsyncSession, Depends(get_db)],
    page_number: Annotated[int, Query()] = 1,
    page_size: Annotated[int, Query()] = 5,
) -> ProductPage:
    """Products ordered by id, one page at a time. 404 past the last page."""
    try:
        items, pages = await product_service.list_products_page(db, page_number, page_size)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    return ProductPage(
        page_number=page_number,
        page_size=page_size,
        total_pages=pages,
        items=_read_all(items),
    )


@router.get("/by-category/{category_id}", response_model=list[ProductRead])
async def list_products_for_category(
    category_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _user: Annotated[CurrentUser, Depends(get_current_user)],
) -> list[ProductRead]:
    products = await product_service.list_products_for_category(db, category_id)
    if not products:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No products in category {category_id}",
        )
    return _read_all(products)


@router.get("/search/{term}", response_model=list[ProductRead])
async def search_products(
    term: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    _user: Annotated[CurrentUser, Depends(get_current_user)],
) -> list[ProductRead]:
    products = await product_service.search_products(db, term)
    if not products:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No products match '{term}'",
        )
    return _read_all(products)


@router.patch("/buy/{name}/{quantity}", response_model=PurchaseResponse)
async def buy_product(
    name: str,
    quantity: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _user: Annotated[CurrentUser, Depends(get_current_user)],
) -> PurchaseResponse:
    try:
        product = await product_service.buy_product(db, name, quantity)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    return PurchaseResponse(
        message=product_service.purchase_message(product.name, quantity),
        remaining_stock=product.stock,
    )


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: int, db: Annotated[AsyncSession, Depends(get_db)]
) -> ProductRead:
    product = await product_service.get_product(db, product_id)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product {product_id} does not exist",
        )
    return ProductRead.model_validate(product)


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductWrite,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> ProductRead:
    try:
        product = await product_service.create_product(
            db, body, settings.PRODUCT_PLACEHOLDER_IMAGE_URL
        )
    except (ConflictError, ValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return ProductRead.model_validate(product)


@router.put("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_product(
    product_id: int,
    body: ProductWrite,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> Response:
    try:
        await product_service.update_product(
            db, product_id, body, settings.PRODUCT_PLACEHOLDER_IMAGE_URL
        )
    except (ConflictError, ValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> Response:
    try:
        await product_service.delete_product(db, product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
