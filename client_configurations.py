# client_configurations.py
"""
Client delivery configurations: typed model, JSON wire shape, preset
registry and the management helpers used by the configuration API.

Field names on the wire are camelCase and must match the
/api/calculator/configurations contract exactly.
"""
import json
import logging
import math
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pricing_config
import tuning_knobs as knobs

logger = logging.getLogger(__name__)


# ----------------------------
# Model
# ----------------------------
@dataclass(frozen=True)
class PricingTier:
    """One headcount / food-cost bracket. A max of None means unbounded."""

    headcount_min: int
    headcount_max: Optional[int]
    food_cost_min: float
    food_cost_max: Optional[float]
    regular_rate: float
    within_10_miles: float

    def rate(self, within_threshold: bool) -> float:
        return self.within_10_miles if within_threshold else self.regular_rate


@dataclass(frozen=True)
class DailyDriveDiscounts:
    two_drivers: float = 0.0
    three_drivers: float = 0.0
    four_plus_drivers: float = 0.0

    def per_drive(self, number_of_drives: int) -> float:
        if number_of_drives >= 4:
            return self.four_plus_drivers
        if number_of_drives == 3:
            return self.three_drivers
        if number_of_drives == 2:
            return self.two_drivers
        return 0.0


@dataclass(frozen=True)
class DriverPaySettings:
    max_pay_per_drop: float
    base_pay_per_drop: float
    bonus_pay: float
    ready_set_fee: float
    mileage_rate: float = knobs.DEFAULT_DRIVER_MILEAGE_RATE
    mileage_minimum: float = knobs.DEFAULT_DRIVER_MILEAGE_MINIMUM


@dataclass(frozen=True)
class BridgeTollSettings:
    default_toll_amount: float
    auto_apply_for_areas: List[str] = field(default_factory=list)

    def applies_to_area(self, area: Optional[str]) -> bool:
        """Case-insensitive match with surrounding and repeated whitespace ignored."""
        if not area:
            return False
        wanted = _normalize_area(area)
        return any(_normalize_area(a) == wanted for a in self.auto_apply_for_areas)


@dataclass(frozen=True)
class ClientDeliveryConfiguration:
    id: str
    client_name: str
    vendor_name: str
    pricing_tiers: List[PricingTier]
    mileage_rate: float
    distance_threshold: float
    daily_drive_discounts: DailyDriveDiscounts
    driver_pay_settings: DriverPaySettings
    bridge_toll_settings: BridgeTollSettings
    description: str = ""
    is_active: bool = True
    custom_settings: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    notes: Optional[str] = None


def _normalize_area(area: str) -> str:
    return " ".join(area.split()).casefold()


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------
# Wire format
# ----------------------------
def _fail(msg: str) -> None:
    raise ValueError(f"Invalid configuration format: {msg}")


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        _fail(f"'{key}' must be an object")
    return value


def _num(data: Dict[str, Any], key: str, default: Any = None, *, nullable: bool = False) -> Optional[float]:
    value = data.get(key, default)
    if value is None:
        if nullable:
            return None
        _fail(f"'{key}' is required")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        _fail(f"'{key}' must be a number")
    return float(value)


def _int(data: Dict[str, Any], key: str, *, nullable: bool = False) -> Optional[int]:
    value = _num(data, key, nullable=nullable)
    if value is None:
        return None
    if not value.is_integer():
        _fail(f"'{key}' must be a whole number")
    return int(value)


def _dt(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        _fail(f"bad timestamp {value!r}")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def tier_from_dict(data: Dict[str, Any]) -> PricingTier:
    if not isinstance(data, dict):
        _fail("each pricing tier must be an object")
    return PricingTier(
        headcount_min=_int(data, "headcountMin"),
        headcount_max=_int(data, "headcountMax", nullable=True),
        food_cost_min=_num(data, "foodCostMin"),
        food_cost_max=_num(data, "foodCostMax", nullable=True),
        regular_rate=_num(data, "regularRate"),
        within_10_miles=_num(data, "within10Miles"),
    )


def tier_to_dict(tier: PricingTier) -> Dict[str, Any]:
    return {
        "headcountMin": tier.headcount_min,
        "headcountMax": tier.headcount_max,
        "foodCostMin": tier.food_cost_min,
        "foodCostMax": tier.food_cost_max,
        "regularRate": tier.regular_rate,
        "within10Miles": tier.within_10_miles,
    }


def config_from_dict(data: Dict[str, Any]) -> ClientDeliveryConfiguration:
    """Build a configuration from its wire dict. Raises ValueError on a malformed shape."""
    if not isinstance(data, dict):
        _fail("expected a JSON object")

    tiers = data.get("pricingTiers")
    if not isinstance(tiers, list):
        _fail("'pricingTiers' must be a list")

    discounts = _section(data, "dailyDriveDiscounts")
    pay = _section(data, "driverPaySettings")
    toll = _section(data, "bridgeTollSettings")

    areas = toll.get("autoApplyForAreas") or []
    if not isinstance(areas, list) or not all(isinstance(a, str) for a in areas):
        _fail("'autoApplyForAreas' must be a list of strings")

    custom = data.get("customSettings") or {}
    if not isinstance(custom, dict):
        _fail("'customSettings' must be an object")

    return ClientDeliveryConfiguration(
        id=str(data.get("id") or ""),
        client_name=str(data.get("clientName") or ""),
        vendor_name=str(data.get("vendorName") or ""),
        description=str(data.get("description") or ""),
        is_active=bool(data.get("isActive", True)),
        pricing_tiers=[tier_from_dict(t) for t in tiers],
        mileage_rate=_num(data, "mileageRate"),
        distance_threshold=_num(data, "distanceThreshold", knobs.DEFAULT_DISTANCE_THRESHOLD),
        daily_drive_discounts=DailyDriveDiscounts(
            two_drivers=_num(discounts, "twoDrivers", 0),
            three_drivers=_num(discounts, "threeDrivers", 0),
            four_plus_drivers=_num(discounts, "fourPlusDrivers", 0),
        ),
        driver_pay_settings=DriverPaySettings(
            max_pay_per_drop=_num(pay, "maxPayPerDrop"),
            base_pay_per_drop=_num(pay, "basePayPerDrop"),
            bonus_pay=_num(pay, "bonusPay", 0),
            ready_set_fee=_num(pay, "readySetFee", 0),
            mileage_rate=_num(pay, "mileageRate", knobs.DEFAULT_DRIVER_MILEAGE_RATE),
            mileage_minimum=_num(pay, "mileageMinimum", knobs.DEFAULT_DRIVER_MILEAGE_MINIMUM),
        ),
        bridge_toll_settings=BridgeTollSettings(
            default_toll_amount=_num(toll, "defaultTollAmount", 0),
            auto_apply_for_areas=list(areas),
        ),
        custom_settings=dict(custom),
        created_at=_dt(data.get("createdAt")),
        updated_at=_dt(data.get("updatedAt")),
        created_by=data.get("createdBy"),
        notes=data.get("notes"),
    )


def config_to_dict(config: ClientDeliveryConfiguration) -> Dict[str, Any]:
    pay = config.driver_pay_settings
    discounts = config.daily_drive_discounts
    toll = config.bridge_toll_settings
    return {
        "id": config.id,
        "clientName": config.client_name,
        "vendorName": config.vendor_name,
        "description": config.description,
        "isActive": config.is_active,
        "pricingTiers": [tier_to_dict(t) for t in config.pricing_tiers],
        "mileageRate": config.mileage_rate,
        "distanceThreshold": config.distance_threshold,
        "dailyDriveDiscounts": {
            "twoDrivers": discounts.two_drivers,
            "threeDrivers": discounts.three_drivers,
            "fourPlusDrivers": discounts.four_plus_drivers,
        },
        "driverPaySettings": {
            "maxPayPerDrop": pay.max_pay_per_drop,
            "basePayPerDrop": pay.base_pay_per_drop,
            "bonusPay": pay.bonus_pay,
            "readySetFee": pay.ready_set_fee,
            "mileageRate": pay.mileage_rate,
            "mileageMinimum": pay.mileage_minimum,
        },
        "bridgeTollSettings": {
            "defaultTollAmount": toll.default_toll_amount,
            "autoApplyForAreas": list(toll.auto_apply_for_areas),
        },
        "customSettings": dict(config.custom_settings),
        "createdAt": _iso(config.created_at),
        "updatedAt": _iso(config.updated_at),
        "createdBy": config.created_by,
        "notes": config.notes,
    }


# ----------------------------
# Preset registry
# ----------------------------
CLIENT_CONFIGURATIONS: Dict[str, ClientDeliveryConfiguration] = {
    raw["id"]: config_from_dict(raw) for raw in pricing_config.PRESET_CONFIGURATIONS
}


def get_configuration(config_id: str) -> Optional[ClientDeliveryConfiguration]:
    return CLIENT_CONFIGURATIONS.get(config_id)


def get_default_configuration() -> ClientDeliveryConfiguration:
    return CLIENT_CONFIGURATIONS[knobs.DEFAULT_CONFIGURATION_ID]


def get_active_configurations() -> List[ClientDeliveryConfiguration]:
    return [c for c in CLIENT_CONFIGURATIONS.values() if c.is_active]


def get_configuration_options() -> List[Dict[str, str]]:
    """Dropdown entries for the active presets."""
    return [
        {"value": c.id, "label": c.client_name, "description": c.description}
        for c in get_active_configurations()
    ]


# ----------------------------
# Validation
# ----------------------------
def _check_tiers(tiers: List[PricingTier], errors: List[str]) -> None:
    if not tiers:
        errors.append("At least one pricing tier is required")
        return

    for i, t in enumerate(tiers, start=1):
        if t.headcount_min < 0:
            errors.append(f"Tier {i}: Headcount min cannot be negative")
        if t.food_cost_min < 0:
            errors.append(f"Tier {i}: Food cost min cannot be negative")
        if t.regular_rate < 0:
            errors.append(f"Tier {i}: Regular rate cannot be negative")
        if t.within_10_miles < 0:
            errors.append(f"Tier {i}: Within 10 miles rate cannot be negative")
        if t.headcount_max is not None and t.headcount_max < t.headcount_min:
            errors.append(f"Tier {i}: Headcount max is below headcount min")
        if t.food_cost_max is not None and t.food_cost_max < t.food_cost_min:
            errors.append(f"Tier {i}: Food cost max is below food cost min")

    first = tiers[0]
    if first.headcount_min != 0 or first.food_cost_min != 0:
        errors.append("Tier 1: Pricing tiers must start at 0 headcount and $0 food cost")

    for i in range(1, len(tiers)):
        prev, cur = tiers[i - 1], tiers[i]
        n = i + 1
        if prev.headcount_max is None or prev.food_cost_max is None:
            errors.append(f"Tier {i}: Only the last tier may be unbounded")
            continue
        if cur.headcount_min <= prev.headcount_min:
            errors.append(f"Tier {n}: Headcount min must be greater than tier {i}'s")
        elif cur.headcount_min > prev.headcount_max + knobs.HEADCOUNT_STEP:
            errors.append(f"Tier {n}: Gap in headcount coverage after {prev.headcount_max}")
        if cur.food_cost_min <= prev.food_cost_min:
            errors.append(f"Tier {n}: Food cost min must be greater than tier {i}'s")
        elif cur.food_cost_min - (prev.food_cost_max + knobs.FOOD_COST_STEP) > 1e-9:
            errors.append(f"Tier {n}: Gap in food cost coverage after ${prev.food_cost_max:.2f}")

    last = tiers[-1]
    if last.headcount_max is not None or last.food_cost_max is not None:
        errors.append(f"Tier {len(tiers)}: The last tier must have unbounded maximums")


def validate_configuration(config: ClientDeliveryConfiguration) -> Dict[str, Any]:
    """
    Check a configuration before it is saved.
    Returns {"valid": bool, "errors": [...]} with every violation found.
    """
    errors: List[str] = []

    if not config.client_name.strip():
        errors.append("Client name is required")
    if not config.vendor_name.strip():
        errors.append("Vendor name is required")

    _check_tiers(config.pricing_tiers, errors)

    if config.mileage_rate < 0:
        errors.append("Mileage rate cannot be negative")
    if config.distance_threshold <= 0:
        errors.append("Distance threshold must be greater than 0")

    pay = config.driver_pay_settings
    if pay.base_pay_per_drop < 0:
        errors.append("Base pay per drop cannot be negative")
    if pay.max_pay_per_drop < 0:
        errors.append("Max pay per drop cannot be negative")
    if pay.max_pay_per_drop < pay.base_pay_per_drop:
        errors.append("Max pay per drop must be greater than or equal to base pay per drop")
    if pay.bonus_pay < 0:
        errors.append("Bonus pay cannot be negative")
    if pay.ready_set_fee < 0:
        errors.append("Ready Set fee cannot be negative")
    if pay.mileage_rate < 0:
        errors.append("Driver mileage rate cannot be negative")
    if pay.mileage_minimum < 0:
        errors.append("Driver mileage minimum cannot be negative")

    d = config.daily_drive_discounts
    if d.two_drivers < 0 or d.three_drivers < 0 or d.four_plus_drivers < 0:
        errors.append("Daily drive discounts cannot be negative")

    if config.bridge_toll_settings.default_toll_amount < 0:
        errors.append("Default bridge toll cannot be negative")

    return {"valid": not errors, "errors": errors}


# ----------------------------
# Export / import / clone
# ----------------------------
def export_configuration(config: ClientDeliveryConfiguration) -> str:
    return json.dumps(config_to_dict(config), indent=2)


def read_configuration_document(text: str) -> Dict[str, Any]:
    """Decode an exported document. Only checks that it is a JSON object."""
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid configuration format: {e}") from e
    if not isinstance(data, dict):
        _fail("expected a JSON object")
    return data


def import_configuration(text: str) -> ClientDeliveryConfiguration:
    config = config_from_dict(read_configuration_document(text))
    result = validate_configuration(config)
    if not result["valid"]:
        raise ValueError("Invalid configuration: " + ", ".join(result["errors"]))
    return config


def _new_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}"


def clone_of(original: ClientDeliveryConfiguration, new_name: str) -> ClientDeliveryConfiguration:
    now = _now()
    return replace(
        original,
        id=_new_id(f"{original.id}-clone"),
        client_name=new_name,
        pricing_tiers=list(original.pricing_tiers),
        bridge_toll_settings=replace(
            original.bridge_toll_settings,
            auto_apply_for_areas=list(original.bridge_toll_settings.auto_apply_for_areas),
        ),
        custom_settings=dict(original.custom_settings),
        created_at=now,
        updated_at=now,
        notes=f"Cloned from {original.client_name}",
    )


def clone_configuration(config_id: str, new_name: str) -> ClientDeliveryConfiguration:
    original = get_configuration(config_id)
    if original is None:
        raise ValueError(f"Configuration not found: {config_id}")
    return clone_of(original, new_name)


def create_configuration_from_template(template_id: str, overrides: Dict[str, Any]) -> ClientDeliveryConfiguration:
    """Template fields with camelCase `overrides` laid on top."""
    template = get_configuration(template_id)
    if template is None:
        raise ValueError(f"Template not found: {template_id}")

    now = _now()
    merged = {**config_to_dict(template), **overrides}
    merged["id"] = overrides.get("id") or _new_id("custom")
    merged["createdAt"] = _iso(now)
    merged["updatedAt"] = _iso(now)
    logger.info("Created configuration %s from template %s", merged["id"], template_id)
    return config_from_dict(merged)
