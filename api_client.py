# api_client.py
"""
Thin requests client for the calculator API, used by the Streamlit page.

Configuration loads never fail hard: if the API is down or answers with an
error the presets shipped with the package are used instead.
"""
import logging
import os
from typing import Any, Dict, List, Optional

import requests

import client_configurations as cc
from pricing_engine import CalculationInput, input_to_dict

logger = logging.getLogger(__name__)

API_BASE = os.environ.get("API_BASE", "http://localhost:8000").rstrip("/")
API_KEY = os.environ.get("API_KEY", "")
TIMEOUT = 30


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _headers(access_token: Optional[str] = None) -> Dict[str, str]:
    h = {"Content-Type": "application/json"}
    if API_KEY:
        h["X-API-Key"] = API_KEY
    if access_token:
        h["Authorization"] = f"Bearer {access_token}"
    return h


def _get(path: str, **params: Any) -> requests.Response:
    return requests.get(f"{API_BASE}{path}", params=params or None, headers=_headers(), timeout=TIMEOUT)


# ----------------------------
# Configurations
# ----------------------------
def fetch_configurations(active_only: bool = True) -> List[cc.ClientDeliveryConfiguration]:
    fallback = cc.get_active_configurations() if active_only else list(cc.CLIENT_CONFIGURATIONS.values())
    try:
        r = _get("/api/calculator/configurations", activeOnly=str(active_only).lower())
        if r.status_code != 200:
            logger.warning("Configuration list failed (%s); using presets", r.status_code)
            return fallback
        return [cc.config_from_dict(c) for c in r.json().get("configurations", [])]
    except (requests.RequestException, ValueError) as e:
        logger.warning("Configuration list unavailable (%s); using presets", e)
        return fallback


def fetch_configuration(config_id: str) -> cc.ClientDeliveryConfiguration:
    """Configuration by id, falling back to the local preset (or the default)."""
    fallback = cc.get_configuration(config_id) or cc.get_default_configuration()
    try:
        r = _get(f"/api/calculator/configurations/{config_id}")
        if r.status_code != 200:
            logger.warning("Configuration %s failed (%s); using %s", config_id, r.status_code, fallback.id)
            return fallback
        return cc.config_from_dict(r.json())
    except (requests.RequestException, ValueError) as e:
        logger.warning("Configuration %s unavailable (%s); using %s", config_id, e, fallback.id)
        return fallback


# ----------------------------
# Calculations
# ----------------------------
def _calculation_payload(x: CalculationInput, config_id: str, **options: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"input": input_to_dict(x), "configId": config_id}
    keys = {
        "bonus_qualified": "bonusQualified",
        "bonus_qualified_percent": "bonusQualifiedPercent",
        "ready_set_fee": "readySetFee",
        "ready_set_addon_fee": "readySetAddonFee",
        "notes": "notes",
    }
    for name, value in options.items():
        if value is not None:
            payload[keys[name]] = value
    return payload


def _post(path: str, payload: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
    try:
        r = requests.post(f"{API_BASE}{path}", json=payload, headers=_headers(access_token), timeout=TIMEOUT)
    except requests.RequestException as e:
        raise ApiError(f"API unreachable: {e}")

    if r.status_code not in (200, 201):
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        raise ApiError(f"API error {r.status_code}: {detail}", status_code=r.status_code)
    return r.json()


def save_calculation(
    x: CalculationInput,
    config_id: str,
    access_token: str,
    notes: Optional[str] = None,
    **options: Any,
) -> Dict[str, Any]:
    """Store a calculation in history. Raises ApiError on any failure."""
    if not access_token:
        raise ApiError("Sign in to save calculations", status_code=401)
    payload = _calculation_payload(x, config_id, notes=notes, **options)
    saved = _post("/api/calculator/save", payload, access_token)
    logger.info("Saved calculation %s", saved.get("id"))
    return saved
