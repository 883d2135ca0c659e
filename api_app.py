import logging
import os
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

import client_configurations as cc
import storage
import tuning_knobs as knobs
from auth import Actor, get_current_actor, require_api_key
from logging_setup import setup_logging
from policy import can_perform
from pricing_engine import CalculationInput, CalculationInputError, calculate, input_to_dict
from users_api import router as users_router

setup_logging()
logger = logging.getLogger(__name__)


# ----------------------------
# App + config
# ----------------------------
app = FastAPI(title="Delivery Calculator API", version="1.0.0")

ALLOWED_ORIGINS = [
    o.strip()
    for o in os.environ.get("ALLOWED_ORIGINS", "http://localhost:8501").split(",")
    if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

storage.init_db()
app.include_router(users_router)


# ----------------------------
# Helpers
# ----------------------------
def _db_required() -> None:
    if not storage.SessionLocal:
        raise HTTPException(status_code=500, detail="DB not configured (missing DATABASE_URL).")


def _authorize(actor: Actor, action: str) -> None:
    if not can_perform(actor.role, action):
        raise HTTPException(status_code=403, detail="Forbidden: Insufficient permissions")


def _invalid(message: str, errors: List[str]) -> HTTPException:
    return HTTPException(status_code=400, detail={"message": message, "errors": errors})


def _parse_config(payload: Dict[str, Any]) -> cc.ClientDeliveryConfiguration:
    try:
        config = cc.config_from_dict(payload)
    except ValueError as e:
        raise _invalid("Invalid configuration format", [str(e)])

    result = cc.validate_configuration(config)
    if not result["valid"]:
        raise _invalid("Invalid configuration", result["errors"])
    return config


def _stored_configuration(config_id: str) -> Optional[cc.ClientDeliveryConfiguration]:
    if not storage.SessionLocal:
        return None

    db = storage.SessionLocal()
    try:
        rec = db.get(storage.DeliveryConfigurationRecord, config_id)
        return cc.config_from_dict(rec.payload) if rec else None
    finally:
        db.close()


def load_configuration(config_id: Optional[str]) -> cc.ClientDeliveryConfiguration:
    """Stored configuration first, then presets. No id means the default preset."""
    config_id = config_id or knobs.DEFAULT_CONFIGURATION_ID

    config = _stored_configuration(config_id) or cc.get_configuration(config_id)
    if config is None:
        raise HTTPException(status_code=404, detail=f"Configuration not found: {config_id}")
    return config


def _save_configuration(config: cc.ClientDeliveryConfiguration, *, create: bool) -> Dict[str, Any]:
    _db_required()

    db = storage.SessionLocal()
    try:
        rec = db.get(storage.DeliveryConfigurationRecord, config.id)
        if create and rec is not None:
            raise HTTPException(status_code=409, detail=f"Configuration already exists: {config.id}")

        payload = cc.config_to_dict(config)
        if rec is None:
            rec = storage.DeliveryConfigurationRecord(id=config.id)
            db.add(rec)

        rec.client_name = config.client_name
        rec.vendor_name = config.vendor_name
        rec.is_active = config.is_active
        rec.payload = payload
        db.commit()

        logger.info("Saved configuration %s (%s)", config.id, config.client_name)
        return payload
    finally:
        db.close()


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------
# Request models
# ----------------------------
class CalculationInputModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    headcount: float = 0
    food_cost: float = Field(0, alias="foodCost")
    mileage: float = 0
    requires_bridge: bool = Field(False, alias="requiresBridge")
    number_of_stops: int = Field(1, alias="numberOfStops")
    number_of_drives: int = Field(1, alias="numberOfDrives")
    tips: float = 0
    adjustments: float = 0
    mileage_rate: Optional[float] = Field(None, alias="mileageRate")
    delivery_area: Optional[str] = Field(None, alias="deliveryArea")
    bridge_toll: Optional[float] = Field(None, alias="bridgeToll")
    custom_charges: Dict[str, float] = Field(default_factory=dict, alias="customCharges")
    custom_payments: Dict[str, float] = Field(default_factory=dict, alias="customPayments")

    def to_input(self) -> CalculationInput:
        return CalculationInput(**self.model_dump())


class CalculateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input: CalculationInputModel
    config_id: Optional[str] = Field(None, alias="configId")
    bonus_qualified: bool = Field(False, alias="bonusQualified")
    bonus_qualified_percent: float = Field(knobs.DEFAULT_BONUS_QUALIFIED_PERCENT, alias="bonusQualifiedPercent")
    ready_set_fee: Optional[float] = Field(None, alias="readySetFee")
    ready_set_addon_fee: float = Field(0, alias="readySetAddonFee")


class SaveCalculationRequest(CalculateRequest):
    notes: Optional[str] = None


class CloneRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_name: str = Field(alias="newName")


def _run(req: CalculateRequest) -> Dict[str, Any]:
    config = load_configuration(req.config_id)
    try:
        return calculate(
            req.input.to_input(),
            config,
            bonus_qualified=req.bonus_qualified,
            bonus_qualified_percent=req.bonus_qualified_percent,
            ready_set_fee=req.ready_set_fee,
            ready_set_addon_fee=req.ready_set_addon_fee,
        )
    except CalculationInputError as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "errors": e.errors})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ----------------------------
# Routes
# ----------------------------
@app.get("/health")
def health():
    return {"ok": True, "database": bool(storage.SessionLocal)}


@app.post("/api/calculator/calculate", dependencies=[Depends(require_api_key)])
def calculate_route(req: CalculateRequest):
    return _run(req)


@app.get("/api/calculator/configurations", dependencies=[Depends(require_api_key)])
def list_configurations(active_only: bool = Query(False, alias="activeOnly")):
    configs: Dict[str, Dict[str, Any]] = {
        c.id: cc.config_to_dict(c) for c in cc.CLIENT_CONFIGURATIONS.values()
    }

    # Stored rows override presets with the same id
    if storage.SessionLocal:
        db = storage.SessionLocal()
        try:
            for rec in db.query(storage.DeliveryConfigurationRecord).all():
                configs[rec.id] = rec.payload
        finally:
            db.close()

    rows = [c for c in configs.values() if c.get("isActive") or not active_only]
    return {"configurations": rows}


@app.get("/api/calculator/configurations/{config_id}", dependencies=[Depends(require_api_key)])
def get_configuration(config_id: str):
    return cc.config_to_dict(load_configuration(config_id))


@app.post("/api/calculator/configurations", status_code=201)
def create_configuration(payload: Dict[str, Any], actor: Actor = Depends(get_current_actor)):
    _authorize(actor, "manage_configurations")

    config = _parse_config(payload)
    now = _now()
    config = replace(
        config,
        id=config.id or f"custom-{int(now.timestamp() * 1000)}",
        created_at=now,
        updated_at=now,
        created_by=actor.id,
    )
    return _save_configuration(config, create=True)


@app.put("/api/calculator/configurations/{config_id}")
def update_configuration(config_id: str, payload: Dict[str, Any], actor: Actor = Depends(get_current_actor)):
    _authorize(actor, "manage_configurations")

    existing = load_configuration(config_id)
    config = _parse_config({**payload, "id": config_id})
    config = replace(
        config,
        created_at=existing.created_at,
        created_by=existing.created_by,
        updated_at=_now(),
    )
    return _save_configuration(config, create=False)


@app.delete("/api/calculator/configurations/{config_id}")
def delete_configuration(config_id: str, actor: Actor = Depends(get_current_actor)):
    _authorize(actor, "manage_configurations")
    _db_required()

    db = storage.SessionLocal()
    try:
        rec = db.get(storage.DeliveryConfigurationRecord, config_id)
        if not rec:
            if cc.get_configuration(config_id):
                raise HTTPException(status_code=409, detail="Preset configurations cannot be deleted")
            raise HTTPException(status_code=404, detail=f"Configuration not found: {config_id}")
        db.delete(rec)
        db.commit()
    finally:
        db.close()

    logger.info("Deleted configuration %s", config_id)
    return {"ok": True, "id": config_id}


@app.post("/api/calculator/configurations/{config_id}/clone", status_code=201)
def clone_configuration(config_id: str, req: CloneRequest, actor: Actor = Depends(get_current_actor)):
    _authorize(actor, "manage_configurations")

    if not req.new_name.strip():
        raise _invalid("Invalid clone request", ["Client name is required"])

    clone = replace(cc.clone_of(load_configuration(config_id), req.new_name.strip()), created_by=actor.id)
    return _save_configuration(clone, create=True)


@app.get("/api/calculator/configurations/{config_id}/export", dependencies=[Depends(require_api_key)])
def export_configuration(config_id: str):
    body = cc.export_configuration(load_configuration(config_id))
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{config_id}.json"'},
    )


@app.post("/api/calculator/configurations/import", status_code=201)
async def import_configuration(request: Request, actor: Actor = Depends(get_current_actor)):
    _authorize(actor, "manage_configurations")

    raw = (await request.body()).decode("utf-8", errors="replace")
    try:
        data = cc.read_configuration_document(raw)
    except ValueError as e:
        raise _invalid("Invalid configuration format", [str(e)])
    config = _parse_config(data)

    if not config.id:
        config = replace(config, id=f"custom-{int(_now().timestamp() * 1000)}")
    return _save_configuration(replace(config, updated_at=_now()), create=True)


@app.post("/api/calculator/save", status_code=201)
def save_calculation(req: SaveCalculationRequest, actor: Actor = Depends(get_current_actor)):
    """
    Store a calculation in history.
    Server recomputes the result from the inputs (do not trust client totals).
    """
    _authorize(actor, "save_calculation")
    _db_required()

    result = _run(req)

    db = storage.SessionLocal()
    try:
        h = storage.CalculationHistory(
            configuration_id=result["configurationId"],
            user_id=actor.id,
            input_data=input_to_dict(req.input.to_input()),
            customer_charges=result["customerCharges"],
            driver_payments=result["driverPayments"],
            customer_total=result["customerCharges"]["total"],
            driver_total=result["driverPayments"]["total"],
            notes=req.notes,
        )
        db.add(h)
        db.commit()
        saved = h.to_dict()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save calculation history for %s", actor.id)
        raise HTTPException(status_code=500, detail="Failed to save calculation history")
    finally:
        db.close()

    logger.info("Saved calculation %s for user %s", saved["id"], actor.id)
    return {**saved, "result": result}


@app.get("/api/calculator/history")
def calculation_history(
    limit: int = Query(knobs.DEFAULT_HISTORY_LIMIT, ge=1, le=knobs.MAX_HISTORY_LIMIT),
    user_id: Optional[str] = Query(None, alias="userId"),
    config_id: Optional[str] = Query(None, alias="configId"),
    actor: Actor = Depends(get_current_actor),
):
    _authorize(actor, "view_history")
    _db_required()

    # Everyone but admins only sees their own history
    if not can_perform(actor.role, "view_all_history"):
        user_id = actor.id

    db = storage.SessionLocal()
    try:
        q = db.query(storage.CalculationHistory)
        if user_id:
            q = q.filter(storage.CalculationHistory.user_id == user_id)
        if config_id:
            q = q.filter(storage.CalculationHistory.configuration_id == config_id)
        rows = q.order_by(storage.CalculationHistory.created_at.desc()).limit(limit).all()
        return {"history": [h.to_dict() for h in rows]}
    finally:
        db.close()
