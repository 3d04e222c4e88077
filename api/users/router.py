"""
FastAPI router for the users resource.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from core.db import Database

from . import schemas, service
from .dependencies import get_database

router = APIRouter()


@router.get("/users", response_model=list[schemas.UserResponse])
async def list_users(db: Database = Depends(get_database)) -> list[schemas.UserResponse]:
    """
    All users ordered by id.
    """
    return await service.list_users(db)


@router.get("/users/{user_id}", response_model=schemas.UserResponse)
async def get_user(user_id: int, db: Database = Depends(get_database)) -> schemas.UserResponse:
    return await service.get_user(db, user_id)


@router.post("/users", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: schemas.UserPayload | None = None,
    db: Database = Depends(get_database),
) -> schemas.UserResponse:
    return await service.create_user(db, payload)


@router.put("/users/{user_id}", response_model=schemas.UserResponse)
async def update_user(
    user_id: int,
    payload: schemas.UserPayload | None = None,
    db: Database = Depends(get_database),
) -> schemas.UserResponse:
    """
    Replace name, lastname and email; refreshes updated_at.
    """
    return await service.update_user(db, user_id, payload)


@router.delete("/users/{user_id}", response_model=schemas.DeleteUserResponse)
async def delete_user(user_id: int, db: Database = Depends(get_database)) -> schemas.DeleteUserResponse:
    return await service.delete_user(db, user_id)
