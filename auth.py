# auth.py
"""
Request authentication for the API.

Callers send `Authorization: Bearer <Supabase access token>`. The token is
checked with Supabase, and the caller's role comes from their profile row.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from supabase import Client, create_client

import storage

logger = logging.getLogger(__name__)

# ----------------------------
# Env
# ----------------------------
SUPABASE_URL = (os.environ.get("SUPABASE_URL") or "").strip()
SUPABASE_ANON_KEY = (os.environ.get("SUPABASE_ANON_KEY") or "").strip()

# Optional shared key for service-to-service calls (calculator reads)
API_KEY = os.environ.get("API_KEY", "")


@dataclass(frozen=True)
class Actor:
    id: str
    role: Optional[str]
    email: Optional[str] = None


# ----------------------------
# Supabase client
# ----------------------------
def sb() -> Client:
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise HTTPException(status_code=500, detail="Auth not configured (missing SUPABASE_URL / SUPABASE_ANON_KEY).")
    return create_client(SUPABASE_URL, SUPABASE_ANON_KEY)


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _verify_token(token: str) -> Optional[dict]:
    """Ask Supabase who owns this token. None if it is invalid or expired."""
    try:
        resp = sb().auth.get_user(token)
    except HTTPException:
        raise
    except Exception as e:
        logger.warning("Supabase rejected access token: %s", e)
        return None

    # supabase-py may return an object with .user OR a dict
    user = getattr(resp, "user", None)
    if user is None and isinstance(resp, dict):
        user = resp.get("user")
    if user is None:
        return None

    if isinstance(user, dict):
        return {"id": user.get("id"), "email": user.get("email")}
    return {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}


def _role_for(user_id: str) -> Optional[str]:
    if not storage.SessionLocal:
        raise HTTPException(status_code=500, detail="DB not configured (missing DATABASE_URL).")

    db = storage.SessionLocal()
    try:
        profile = db.get(storage.Profile, user_id)
        return profile.type if profile else None
    except SQLAlchemyError:
        logger.exception("Error fetching requester profile (ID: %s)", user_id)
        raise HTTPException(status_code=500, detail="Failed to fetch requester profile")
    finally:
        db.close()


# ----------------------------
# FastAPI dependencies
# ----------------------------
def get_current_actor(authorization: Optional[str] = Header(default=None)) -> Actor:
    token = _bearer(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized: Authentication required")

    user = _verify_token(token)
    if not user or not user.get("id"):
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid or expired token")

    return Actor(id=user["id"], role=_role_for(user["id"]), email=user.get("email"))


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    if API_KEY:
        if not x_api_key or x_api_key != API_KEY:
            raise HTTPException(status_code=401, detail="Unauthorized")
