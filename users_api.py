"""
User administration routes.

Every route resolves the caller, loads the target profile, then asks
policy.can_perform() before touching anything.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

import storage
from auth import Actor, get_current_actor
from policy import ROLES, USER_STATUSES, can_perform, normalize_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

MIN_PURGE_REASON_LENGTH = 10


# ----------------------------
# Request models
# ----------------------------
class ChangeRoleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_role: Optional[str] = Field(None, alias="newRole")


class StatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_status: Optional[str] = Field(None, alias="newStatus")


class DeleteRequest(BaseModel):
    reason: Optional[str] = None


class PurgeRequest(BaseModel):
    confirmed: Optional[Any] = None  # must be literally true
    reason: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class SettingsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None
    status: Optional[str] = None
    is_temporary_password: Optional[Any] = Field(None, alias="isTemporaryPassword")


# ----------------------------
# Helpers
# ----------------------------
def _session():
    if not storage.SessionLocal:
        raise HTTPException(status_code=500, detail="DB not configured (missing DATABASE_URL).")
    return storage.SessionLocal()


def _target(db, user_id: str) -> storage.Profile:
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=400, detail="User ID is required")
    profile = db.get(storage.Profile, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


def _authorize(actor: Actor, action: str, target: Optional[storage.Profile] = None) -> None:
    allowed = can_perform(
        actor.role,
        action,
        target.type if target else None,
        actor_id=actor.id,
        target_id=target.id if target else None,
    )
    if not allowed:
        logger.warning("Denied %s for %s (%s) on %s", action, actor.id, actor.role, target.id if target else "-")
        raise HTTPException(status_code=403, detail="Forbidden: Insufficient permissions")


def _commit(db, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error during %s", what)
        raise HTTPException(status_code=500, detail=f"Failed to {what}")


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------
# Routes
# ----------------------------
@router.get("/deleted")
def list_deleted_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: Optional[str] = None,
    search: Optional[str] = None,
    deleted_by: Optional[str] = Query(None, alias="deletedBy"),
    actor: Actor = Depends(get_current_actor),
):
    _authorize(actor, "list_deleted_users")

    db = _session()
    try:
        q = db.query(storage.Profile).filter(storage.Profile.deleted_at.isnot(None))
        role = normalize_role(type)
        if type and not role:
            raise HTTPException(status_code=400, detail=f"Invalid user type: {type}")
        if role:
            q = q.filter(storage.Profile.type == role)
        if search:
            like = f"%{search}%"
            q = q.filter(or_(storage.Profile.name.ilike(like), storage.Profile.email.ilike(like)))
        if deleted_by:
            q = q.filter(storage.Profile.deleted_by == deleted_by)

        total = q.count()
        rows = (
            q.order_by(storage.Profile.deleted_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "users": [p.to_dict() for p in rows],
            "pagination": {"page": page, "limit": limit, "total": total},
        }
    finally:
        db.close()


@router.get("/{user_id}")
def get_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "view_profile", profile)
        return profile.to_dict()
    finally:
        db.close()


@router.put("/{user_id}")
def update_profile(user_id: str, req: ProfileUpdateRequest, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "update_profile", profile)

        if req.name is None and req.email is None:
            raise HTTPException(status_code=400, detail="Request body is required")

        if req.name is not None:
            profile.name = req.name.strip() or None
        if req.email is not None:
            email = req.email.strip().lower()
            if "@" not in email:
                raise HTTPException(status_code=400, detail=f"Invalid email: {req.email}")
            taken = (
                db.query(storage.Profile)
                .filter(storage.Profile.email == email, storage.Profile.id != user_id)
                .first()
            )
            if taken:
                raise HTTPException(status_code=409, detail="Email is already in use")
            profile.email = email

        _commit(db, "update user profile")
        logger.info("User %s profile updated by %s", user_id, actor.id)
        return profile.to_dict()
    finally:
        db.close()


@router.get("/{user_id}/files")
def list_user_files(user_id: str, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "view_files", profile)
        files = (
            db.query(storage.FileUpload)
            .filter(storage.FileUpload.user_id == user_id)
            .order_by(storage.FileUpload.uploaded_at.desc())
            .all()
        )
        return [f.to_dict() for f in files]
    finally:
        db.close()


@router.post("/{user_id}/change-role")
def change_role(user_id: str, req: ChangeRoleRequest, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "change_role", profile)

        role = normalize_role(req.new_role)
        if not role:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid role: {req.new_role}. Valid roles are: {', '.join(ROLES)}",
            )

        previous = profile.type
        profile.type = role
        _commit(db, "change user role")
        logger.info("User %s role %s -> %s by %s", user_id, previous, role, actor.id)
        return {"message": "User role updated successfully", "user": profile.to_dict()}
    finally:
        db.close()


@router.put("/{user_id}/status")
def update_status(user_id: str, req: StatusRequest, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "change_status", profile)

        # Lowercase on the wire, uppercase in storage
        wanted = req.new_status or ""
        if wanted != wanted.lower() or wanted.upper() not in USER_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status: {req.new_status!r}. Valid values are: "
                + ", ".join(s.lower() for s in USER_STATUSES),
            )

        profile.status = wanted.upper()
        _commit(db, "update user status")
        logger.info("User %s status -> %s by %s", user_id, profile.status, actor.id)
        return {"message": "User status updated successfully", "user": profile.to_dict()}
    finally:
        db.close()


@router.get("/{user_id}/settings")
def get_settings(user_id: str, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "view_settings", profile)
        return {
            "id": profile.id,
            "type": profile.type,
            "status": profile.status,
            "isTemporaryPassword": bool(profile.is_temporary_password),
        }
    finally:
        db.close()


@router.put("/{user_id}/settings")
def update_settings(user_id: str, req: SettingsRequest, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "update_settings", profile)

        updates: Dict[str, Any] = {}
        if req.type is not None:
            role = normalize_role(req.type)
            if not role:
                raise HTTPException(status_code=400, detail=f"Invalid user type: {req.type}")
            updates["type"] = role
        if req.status is not None:
            status = req.status.strip().upper()
            if status not in USER_STATUSES:
                raise HTTPException(status_code=400, detail=f"Invalid user status: {req.status}")
            updates["status"] = status
        if req.is_temporary_password is not None:
            if not isinstance(req.is_temporary_password, bool):
                raise HTTPException(status_code=400, detail="isTemporaryPassword must be a boolean")
            updates["is_temporary_password"] = req.is_temporary_password

        for key, value in updates.items():
            setattr(profile, key, value)
        _commit(db, "update user settings")
        return {"message": "User settings updated successfully", "user": profile.to_dict()}
    finally:
        db.close()


@router.delete("/{user_id}")
def soft_delete_user(user_id: str, req: Optional[DeleteRequest] = None, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "delete_user", profile)

        if profile.deleted_at is not None:
            raise HTTPException(status_code=409, detail="User is already deleted")

        profile.deleted_at = _now()
        profile.deleted_by = actor.id
        profile.deletion_reason = req.reason if req else None
        _commit(db, "delete user")
        logger.info("User %s soft-deleted by %s", user_id, actor.id)
        return {"message": "User deleted successfully", "user": profile.to_dict()}
    finally:
        db.close()


@router.post("/{user_id}/restore")
def restore_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "restore_user", profile)

        if profile.deleted_at is None:
            raise HTTPException(status_code=409, detail="User is not soft deleted")

        previous = {"deletedAt": profile.deleted_at.isoformat(), "deletedBy": profile.deleted_by}
        profile.deleted_at = None
        profile.deleted_by = None
        profile.deletion_reason = None
        _commit(db, "restore user")
        logger.info("User %s restored by %s", user_id, actor.id)
        return {
            "message": "User restored successfully",
            "restoredAt": _now().isoformat(),
            "restoredBy": actor.id,
            "previousDeletion": previous,
            "user": profile.to_dict(),
        }
    finally:
        db.close()


@router.delete("/{user_id}/purge")
def purge_user(user_id: str, req: Optional[PurgeRequest] = None, actor: Actor = Depends(get_current_actor)):
    db = _session()
    try:
        profile = _target(db, user_id)
        _authorize(actor, "purge_user", profile)

        if not req or req.confirmed is not True:
            raise HTTPException(
                status_code=400,
                detail='Confirmation required: send {"confirmed": true} to permanently delete this user',
            )
        reason = (req.reason or "").strip()
        if len(reason) < MIN_PURGE_REASON_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"Detailed reason for deletion is required (minimum {MIN_PURGE_REASON_LENGTH} characters)",
            )

        if profile.deleted_at is None:
            raise HTTPException(status_code=409, detail="Only soft-deleted users can be purged")

        files = db.query(storage.FileUpload).filter(storage.FileUpload.user_id == user_id).delete()
        db.delete(profile)
        _commit(db, "purge user")
        logger.info("User %s purged by %s (%d files removed): %s", user_id, actor.id, files, reason)
        return {"message": "User permanently deleted", "id": user_id, "filesRemoved": files, "reason": reason}
    finally:
        db.close()
