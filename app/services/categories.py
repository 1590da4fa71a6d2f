"""Category data access: list, get, create, rename, delete."""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError
from app.models import Category, Product

logger = logging.getLogger(__name__)


async def list_categories(session: AsyncSession) -> list[Category]:
    result = await session.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def get_category(session: AsyncSession, category_id: int) -> Category | None:
    return await session.get(Category, category_id)


async def category_exists(session: AsyncSession, *, category_id: int | None = None, name: str | None = None) -> bool:
    """Existence by id, or by name ignoring case and surrounding whitespace."""
    stmt = select(func.count()).select_from(Category)
    if category_id is not None:
        stmt = stmt.where(Category.id == category_id)
    if name is not None:
        stmt = stmt.where(func.lower(Category.name) == name.strip().lower())
    result = await session.execute(stmt)
    return result.scalar_one() > 0


async def create_category(session: AsyncSession, name: str) -> Category:
    if await category_exists(session, name=name):
        raise ConflictError(f"Category '{name}' already exists")
    category = Category(name=name.strip())
    session.add(category)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"Category '{name}' already exists") from e
    logger.info("Created category", extra={"category_id": category.id})
    return category


async def update_category(session: AsyncSession, category_id: int, name: str) -> Category:
    category = await get_category(session, category_id)
    if category is None:
        raise NotFoundError(f"Category {category_id} does not exist")
    if category.name.lower() != name.strip().lower() and await category_exists(session, name=name):
        raise ConflictError(f"Category '{name}' already exists")
    category.name = name.strip()
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"Category '{name}' already exists") from e
    return category


async def delete_category(session: AsyncSession, category_id: int) -> None:
    """Delete an empty category. Categories that still hold products are a conflict."""
    category = await get_category(session, category_id)
    if category is None:
        raise NotFoundError(f"Category {category_id} does not exist")
    in_use = await session.execute(
        select(func.count()).select_from(Product).where(Product.category_id == category_id)
    )
    if in_use.scalar_one() > 0:
        raise ConflictError(f"Category {category_id} still has products")
    await session.delete(category)
    await session.commit()
    logger.info("Deleted category", extra={"category_id": category_id})
