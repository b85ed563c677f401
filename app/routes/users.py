"""User management API routes."""

from typing import Dict, List, Optional
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.logging_config import log_database_event, log_request
from app.models.user import User
from app import schemas

router = APIRouter(prefix="/api", tags=["Users"])

USER_NOT_FOUND = "User not found."


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": USER_NOT_FOUND})


def _unprocessable(errors: Dict[str, List[str]]) -> JSONResponse:
    first_error = next(iter(errors.values()))[0]
    return JSONResponse(status_code=422, content={"message": first_error, "errors": errors})


async def _find_conflicts(
    db: AsyncSession,
    username: Optional[str],
    email: Optional[str],
    exclude_id: Optional[uuid.UUID] = None,
) -> Dict[str, List[str]]:
    """Return unique-field errors for username/email already taken by another user."""
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return {}

    query = select(User).where(or_(*clauses))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)

    errors: Dict[str, List[str]] = {}
    for existing in result.scalars():
        if username is not None and existing.username == username:
            errors["username"] = ["The username has already been taken."]
        if email is not None and existing.email == email:
            errors["email"] = ["The email has already been taken."]
    return errors


@router.get("/users", response_model=schemas.UserListEnvelope)
async def list_users(request: Request, db: AsyncSession = Depends(get_db)):
    log_request(request)
    result = await db.execute(select(User).order_by(User.username))
    return {"data": result.scalars().all()}


@router.get("/users/{user_id}", response_model=schemas.UserEnvelope)
async def get_user(user_id: uuid.UUID, request: Request, db: AsyncSession = Depends(get_db)):
    log_request(request)
    user = await db.get(User, user_id)
    if user is None:
        return _not_found()
    return {"message": "OK", "data": user}


@router.post("/admin/users", response_model=schemas.UserEnvelope, status_code=201)
async def create_user(
    payload: schemas.UserCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Create a user.

    Usernames and emails are unique; emails are stored lower-cased. A clash
    answers 422 with per-field errors, the same shape as payload validation.
    """
    log_request(request, extra_data={"username": payload.username})

    email = payload.email.strip().lower()
    username = payload.username.strip()
    errors = await _find_conflicts(db, username, email)
    if errors:
        return _unprocessable(errors)

    user = User(
        username=username,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=email,
        phone=payload.phone.strip(),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    log_database_event("create", "users", record_id=str(user.id))
    return {"message": "User created successfully!", "data": user}


@router.patch("/users/{user_id}", response_model=schemas.UserEnvelope)
async def update_user(
    user_id: uuid.UUID,
    payload: schemas.UserUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Apply a partial update to a user."""
    log_request(request, extra_data={"user_id": str(user_id)})

    user = await db.get(User, user_id)
    if user is None:
        return _not_found()

    changes = {
        key: value.strip() if isinstance(value, str) else value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }
    if "email" in changes:
        changes["email"] = changes["email"].lower()

    errors = await _find_conflicts(
        db, changes.get("username"), changes.get("email"), exclude_id=user.id
    )
    if errors:
        return _unprocessable(errors)

    for key, value in changes.items():
        setattr(user, key, value)
    await db.commit()
    await db.refresh(user)

    log_database_event("update", "users", record_id=str(user.id), extra_data={"fields": sorted(changes)})
    return {"message": "User updated successfully!", "data": user}


@router.delete("/users/{user_id}", response_model=schemas.MessageResponse)
async def delete_user(user_id: uuid.UUID, request: Request, db: AsyncSession = Depends(get_db)):
    log_request(request, extra_data={"user_id": str(user_id)})

    user = await db.get(User, user_id)
    if user is None:
        return _not_found()

    await db.delete(user)
    await db.commit()

    log_database_event("delete", "users", record_id=str(user_id))
    return {"message": "User deleted successfully!"}
