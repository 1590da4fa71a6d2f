"""Product data access: CRUD, paging, search and stock purchases."""

import logging
import math

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models import Product
from app.schemas.product import ProductWrite
from app.services.categories import category_exists

logger = logging.getLogger(__name__)


async def list_products(session: AsyncSession) -> list[Product]:
    result = await session.execute(select(Product).order_by(Product.name))
    return list(result.scalars().all())


async def get_product(session: AsyncSession, product_id: int) -> Product | None:
    return await session.get(Product, product_id)


async def find_product_by_name(session: AsyncSession, name: str) -> Product | None:
    result = await session.execute(
        select(Product).where(func.lower(Product.name) == name.strip().lower())
    )
    return result.scalar_one_or_none()


async def count_products(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Product))
    return result.scalar_one()


def total_pages(total_items: int, page_size: int) -> int:
    if page_size < 1:
        raise ValidationError("page_size must be at least 1")
    return math.ceil(total_items / page_size)


async def list_products_page(
    session: AsyncSession, page_number: int, page_size: int
) -> tuple[list[Product], int]:
    """
    Return (items, total_pages) for a 1-based page ordered by id.
    Raises NotFoundError when page_number is past the last page.
    """
    if page_number < 1 or page_size < 1:
        raise ValidationError("page_number and page_size must be at least 1")
    pages = total_pages(await count_products(session), page_size)
    if page_number > pages:
        raise NotFoundError("No products on this page")
    result = await session.execute(
        select(Product)
        .order_by(Product.id)
        .offset((page_number - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), pages


async def list_products_for_category(session: AsyncSession, category_id: int) -> list[Product]:
    result = await session.execute(
        select(Product).where(Product.category_id == category_id).order_by(Product.name)
    )
    return list(result.scalars().all())


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def search_products(session: AsyncSession, term: str) -> list[Product]:
    """Case-insensitive substring match on name or description. Wildcards in `term` match literally."""
    pattern = f"%{_escape_like(term.strip().lower())}%"
    result = await session.execute(
        select(Product)
        .where(
            or_(
                func.lower(Product.name).like(pattern, escape="\\"),
                func.lower(Product.description).like(pattern, escape="\\"),
            )
        )
        .order_by(Product.name)
    )
    return list(result.scalars().all())


async def _check_write(session: AsyncSession, body: ProductWrite) -> None:
    if not await category_exists(session, category_id=body.category_id):
        raise ValidationError(f"Category {body.category_id} does not exist")


async def create_product(
    session: AsyncSession, body: ProductWrite, placeholder_img_url: str
) -> Product:
    if await find_product_by_name(session, body.name) is not None:
        raise ConflictError(f"Product '{body.name}' already exists")
    await _check_write(session, body)
    product = Product(**body.model_dump())
    if not product.img_url:
        product.img_url = placeholder_img_url
    session.add(product)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"Product '{body.name}' already exists") from e
    logger.info("Created product", extra={"product_id": product.id})
    return product


async def update_product(
    session: AsyncSession, product_id: int, body: ProductWrite, placeholder_img_url: str
) -> Product:
    product = await get_product(session, product_id)
    if product is None:
        raise ValidationError(f"Product {product_id} does not exist")
    await _check_write(session, body)
    clash = await find_product_by_name(session, body.name)
    if clash is not None and clash.id != product_id:
        raise ConflictError(f"Product '{body.name}' already exists")
    for key, value in body.model_dump().items():
        setattr(product, key, value)
    if not product.img_url:
        product.img_url = placeholder_img_url
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"Product '{body.name}' already exists") from e
    await session.refresh(product)
    return product


async def delete_product(session: AsyncSession, product_id: int) -> None:
    product = await get_product(session, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} does not exist")
    await session.delete(product)
    await session.commit()
    logger.info("Deleted product", extra={"product_id": product_id})


async def buy_product(session: AsyncSession, name: str, quantity: int) -> Product:
    """
    Decrement stock of the named product by `quantity`.

    The decrement is a single conditional UPDATE, so concurrent purchases can never
    drive stock below zero.
    """
    if not name or not name.strip() or quantity <= 0:
        raise ValidationError("Product name or quantity is not valid")
    product = await find_product_by_name(session, name)
    if product is None:
        raise NotFoundError(f"Product '{name}' does not exist")
    result = await session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
    )
    if result.rowcount == 0:
        await session.rollback()
        raise ValidationError(
            f"Could not buy product '{name}': requested quantity exceeds available stock"
        )
    await session.commit()
    await session.refresh(product)
    logger.info(
        "Product purchased",
        extra={"product_id": product.id, "quantity": quantity, "remaining_stock": product.stock},
    )
    return product


def purchase_message(name: str, quantity: int) -> str:
    units = "unit" if quantity == 1 else "units"
    return f"Bought {quantity} {units} of product '{name}'"
