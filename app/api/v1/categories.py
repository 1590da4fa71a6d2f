"""Category endpoints: anonymous reads, admin-only writes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.auth import require_admin
from app.core.database import get_db
from app.core.errors import ConflictError, NotFoundError
from app.schemas.auth import CurrentUser
from app.schemas.category import CategoryRead, CategoryWrite
from app.services import categories as category_service

router = APIRouter()


@router.get("", response_model=list[CategoryRead])
async def list_categories(db: Annotated[AsyncSession, Depends(get_db)]) -> list[CategoryRead]:
    return [CategoryRead.model_validate(c) for c in await category_service.list_categories(db)]


@router.get("/{category_id}", response_model=CategoryRead)
async def get_category(
    category_id: int, db: Annotated[AsyncSession, Depends(get_db)]
) -> CategoryRead:
    category = await category_service.get_category(db, category_id)
    if category is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Category {category_id} does not exist",
        )
    return CategoryRead.model_validate(category)


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryWrite,
    db: Annotated[AsyncSession, Depends(get_db)],
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> CategoryRead:
    try:
        category = await category_service.create_category(db, body.name)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return CategoryRead.model_validate(category)


@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: int,
    body: CategoryWrite,
    db: Annotated[AsyncSession, Depends(get_db)],
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> CategoryRead:
    try:
        category = await category_service.update_category(db, category_id, body.name)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return CategoryRead.model_validate(category)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> Response:
    try:
        await category_service.delete_category(db, category_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
