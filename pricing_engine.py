# pricing_engine.py
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import tuning_knobs as knobs
from client_configurations import ClientDeliveryConfiguration, PricingTier, tier_to_dict


@dataclass(frozen=True)
class CalculationInput:
    headcount: float
    food_cost: float
    mileage: float
    requires_bridge: bool = False
    number_of_stops: int = 1
    # Drives the same driver makes today; feeds the daily-drive discount.
    number_of_drives: int = 1
    tips: float = 0.0
    adjustments: float = 0.0
    mileage_rate: Optional[float] = None  # overrides the configuration's rate
    delivery_area: Optional[str] = None
    bridge_toll: Optional[float] = None   # overrides the default toll amount
    # Vendor-specific line items: name -> non-negative amount.
    custom_charges: Dict[str, float] = field(default_factory=dict)
    custom_payments: Dict[str, float] = field(default_factory=dict)


class CalculationInputError(ValueError):
    """Calculation input out of domain. `errors` maps field name -> message."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(errors.values()))


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ValueError(msg)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _money(v: float) -> float:
    return round(v, 2)


def validate_calculation_input(x: CalculationInput) -> Dict[str, str]:
    """Per-field error messages; empty when the input is usable."""
    errors: Dict[str, str] = {}

    for name, label in (
        ("headcount", "Headcount"),
        ("food_cost", "Food cost"),
        ("mileage", "Mileage"),
        ("tips", "Tips"),
    ):
        value = getattr(x, name)
        if not _is_number(value):
            errors[name] = f"{label} must be a number"
        elif value < 0:
            errors[name] = f"{label} cannot be negative"

    if not _is_number(x.adjustments):
        errors["adjustments"] = "Adjustments must be a number"

    for name, label in (("number_of_stops", "Number of stops"), ("number_of_drives", "Number of drives")):
        value = getattr(x, name)
        if not isinstance(value, int) or isinstance(value, bool):
            errors[name] = f"{label} must be a whole number"
        elif value < 1:
            errors[name] = f"{label} must be at least 1"

    if x.mileage_rate is not None and (not _is_number(x.mileage_rate) or x.mileage_rate < 0):
        errors["mileage_rate"] = "Mileage rate must be a non-negative number"
    if x.bridge_toll is not None and (not _is_number(x.bridge_toll) or x.bridge_toll < 0):
        errors["bridge_toll"] = "Bridge toll must be a non-negative number"

    for name in ("custom_charges", "custom_payments"):
        items = getattr(x, name)
        bad = [k for k, v in items.items() if not isinstance(k, str) or not _is_number(v) or v < 0]
        if bad:
            errors[name] = f"Line items must be non-negative amounts: {', '.join(map(str, bad))}"

    return errors


def _check_input(x: CalculationInput) -> None:
    errors = validate_calculation_input(x)
    if errors:
        raise CalculationInputError(errors)


# =========================
# Tier selection
# =========================
def _tier_by(value: float, tiers: List[PricingTier], key: str) -> PricingTier:
    # Inclusive minimum: the value belongs to the last tier whose min it reaches.
    ordered = sorted(tiers, key=lambda t: getattr(t, key))
    _require(value >= getattr(ordered[0], key), f"no pricing tier covers {value}")

    chosen = ordered[0]
    for tier in ordered:
        if value >= getattr(tier, key):
            chosen = tier
        else:
            break
    return chosen


def select_tier(
    tiers: List[PricingTier],
    headcount: float,
    food_cost: float,
    within_threshold: bool = False,
) -> PricingTier:
    """
    Pick the tier by the LESSER fee of the headcount bracket and the
    food-cost bracket, compared at the rate that will actually be charged.

    A zero headcount (or food cost) means that axis is unknown and the
    other one decides alone. A zero-rate ("TBD") tier loses to a priced one.
    """
    _require(bool(tiers), "configuration has no pricing tiers")

    by_food = _tier_by(food_cost, tiers, "food_cost_min")
    if headcount == 0:
        return by_food
    by_head = _tier_by(headcount, tiers, "headcount_min")
    if food_cost == 0:
        return by_head

    head_fee = by_head.rate(within_threshold)
    food_fee = by_food.rate(within_threshold)

    if head_fee == 0 and food_fee > 0:
        return by_food
    if food_fee == 0 and head_fee > 0:
        return by_head
    return by_head if head_fee <= food_fee else by_food


# =========================
# Shared pieces
# =========================
def calculate_mileage_charge(mileage: float, config: ClientDeliveryConfiguration, rate: Optional[float] = None) -> float:
    """Customer charge for the miles beyond the distance threshold."""
    _require(_is_number(mileage) and mileage >= 0, "Mileage cannot be negative")
    rate = config.mileage_rate if rate is None else rate
    return max(0.0, mileage - config.distance_threshold) * rate


def bridge_toll_for(x: CalculationInput, config: ClientDeliveryConfiguration) -> float:
    settings = config.bridge_toll_settings
    if not (x.requires_bridge or settings.applies_to_area(x.delivery_area)):
        return 0.0
    return settings.default_toll_amount if x.bridge_toll is None else x.bridge_toll


def daily_drive_discount(number_of_drives: int, config: ClientDeliveryConfiguration) -> float:
    """Total discount: per-drive amount for today's drive count times that count."""
    return config.daily_drive_discounts.per_drive(number_of_drives) * number_of_drives


def _extra_stops(number_of_stops: int) -> int:
    return max(0, number_of_stops - 1)


# =========================
# Customer side
# =========================
def calculate_delivery_cost(x: CalculationInput, config: ClientDeliveryConfiguration) -> Dict[str, Any]:
    _check_input(x)

    within = x.mileage <= config.distance_threshold
    tier = select_tier(config.pricing_tiers, x.headcount, x.food_cost, within)
    delivery_cost = tier.rate(within)

    if delivery_cost == 0 and (x.headcount > 0 or x.food_cost > 0):
        raise ValueError(
            f"Delivery cost for headcount {x.headcount:g} / food cost ${x.food_cost:,.2f} "
            f"is TBD for {config.client_name}; this order needs manual pricing"
        )

    # The within-threshold rate already bundles the first threshold miles.
    long_distance = 0.0 if within else calculate_mileage_charge(x.mileage, config, x.mileage_rate)
    toll = bridge_toll_for(x, config)
    extra_stops = _extra_stops(x.number_of_stops) * knobs.CUSTOMER_EXTRA_STOP_RATE
    discount = daily_drive_discount(x.number_of_drives, config)

    parts = [_money(delivery_cost), _money(long_distance), _money(toll), _money(extra_stops)]
    fee = max(0.0, sum(parts) - _money(discount))

    return {
        "tier": tier_to_dict(tier),
        "withinThreshold": within,
        "deliveryCost": parts[0],
        "longDistanceCharge": parts[1],
        "bridgeToll": parts[2],
        "extraStopsCharge": parts[3],
        "dailyDriveDiscount": _money(discount),
        "deliveryFee": _money(fee),
    }


# =========================
# Driver side
# =========================
def calculate_driver_pay(
    x: CalculationInput,
    config: ClientDeliveryConfiguration,
    *,
    bonus_qualified: bool = False,
    bonus_qualified_percent: float = knobs.DEFAULT_BONUS_QUALIFIED_PERCENT,
    ready_set_fee: Optional[float] = None,
    ready_set_addon_fee: float = 0.0,
) -> Dict[str, Any]:
    """
    Driver compensation for one drop.

    Per-drop earnings (base + mileage + extra-stop bonus) are capped at
    maxPayPerDrop. Bonus, reimbursed toll, tips, adjustments and custom
    payments are added after the cap.
    """
    _check_input(x)
    _require(
        _is_number(bonus_qualified_percent) and 0 <= bonus_qualified_percent <= 100,
        "bonusQualifiedPercent must be between 0 and 100",
    )
    _require(_is_number(ready_set_addon_fee) and ready_set_addon_fee >= 0, "readySetAddonFee cannot be negative")
    _require(
        ready_set_fee is None or (_is_number(ready_set_fee) and ready_set_fee >= 0),
        "readySetFee must be a non-negative number",
    )

    pay = config.driver_pay_settings

    base = pay.base_pay_per_drop
    mileage_pay = max(x.mileage * pay.mileage_rate, pay.mileage_minimum)
    extra_stops = _extra_stops(x.number_of_stops) * knobs.DRIVER_EXTRA_STOP_BONUS

    drop_pay = _money(base) + _money(mileage_pay) + _money(extra_stops)
    capped = min(drop_pay, pay.max_pay_per_drop)

    bonus = pay.bonus_pay * bonus_qualified_percent / 100.0 if bonus_qualified else 0.0
    toll = bridge_toll_for(x, config)
    custom = sum(x.custom_payments.values())
    on_top = _money(bonus) + _money(toll) + _money(x.tips) + _money(x.adjustments) + _money(custom)

    fee = pay.ready_set_fee if ready_set_fee is None else ready_set_fee

    return {
        "basePay": _money(base),
        "mileageRate": pay.mileage_rate,
        "totalMileage": x.mileage,
        "mileagePay": _money(mileage_pay),
        "extraStopsBonus": _money(extra_stops),
        "maxPayPerDrop": pay.max_pay_per_drop,
        "cappedPay": _money(capped),
        "capApplied": drop_pay > pay.max_pay_per_drop,
        "bonusQualified": bool(bonus_qualified),
        "bonusQualifiedPercent": bonus_qualified_percent if bonus_qualified else 0,
        "bonusPay": _money(bonus),
        "bridgeToll": _money(toll),
        "tips": _money(x.tips),
        "adjustments": _money(x.adjustments),
        "customPayments": {k: _money(v) for k, v in x.custom_payments.items()},
        "uncappedTotal": _money(max(0.0, drop_pay + on_top)),
        "total": _money(max(0.0, capped + on_top)),
        "readySetFee": _money(fee),
        "readySetAddonFee": _money(ready_set_addon_fee),
        "readySetTotalFee": _money(fee + ready_set_addon_fee + toll),
    }


# =========================
# Full result
# =========================
def calculate(x: CalculationInput, config: ClientDeliveryConfiguration, **driver_options: Any) -> Dict[str, Any]:
    """Customer charges, driver payments and the margin between them."""
    delivery = calculate_delivery_cost(x, config)
    driver = calculate_driver_pay(x, config, **driver_options)

    custom_charges = {k: _money(v) for k, v in x.custom_charges.items()}
    customer_total = _money(delivery["deliveryFee"] + sum(custom_charges.values()))
    driver_total = driver["total"]

    profit = _money(customer_total - driver_total)
    margin = round(profit / customer_total * 100, 2) if customer_total else 0.0

    return {
        "configurationId": config.id,
        "tier": delivery["tier"],
        "customerCharges": {
            "baseFee": delivery["deliveryCost"],
            "longDistanceCharge": delivery["longDistanceCharge"],
            "bridgeToll": delivery["bridgeToll"],
            "extraStopsCharge": delivery["extraStopsCharge"],
            # Headcount is priced through the tier, never per head.
            "headcountCharge": 0.0,
            "dailyDriveDiscount": delivery["dailyDriveDiscount"],
            "foodCost": _money(x.food_cost),
            "customCharges": custom_charges,
            "total": customer_total,
        },
        "driverPayments": {
            "basePay": driver["basePay"],
            "mileagePay": driver["mileagePay"],
            "bridgeToll": driver["bridgeToll"],
            "extraStopsBonus": driver["extraStopsBonus"],
            "bonusPay": driver["bonusPay"],
            "tips": driver["tips"],
            "adjustments": driver["adjustments"],
            "customPayments": driver["customPayments"],
            "capApplied": driver["capApplied"],
            "total": driver_total,
        },
        "profit": profit,
        "profitMargin": margin,
    }


def input_to_dict(x: CalculationInput) -> Dict[str, Any]:
    """Wire shape used when a calculation is saved to history."""
    return {
        "headcount": x.headcount,
        "foodCost": x.food_cost,
        "mileage": x.mileage,
        "requiresBridge": x.requires_bridge,
        "numberOfStops": x.number_of_stops,
        "numberOfDrives": x.number_of_drives,
        "tips": x.tips,
        "adjustments": x.adjustments,
        "mileageRate": x.mileage_rate,
        "deliveryArea": x.delivery_area,
        "bridgeToll": x.bridge_toll,
        "customCharges": dict(x.custom_charges),
        "customPayments": dict(x.custom_payments),
    }


if __name__ == "__main__":
    from client_configurations import get_default_configuration

    inputs = CalculationInput(headcount=30, food_cost=400, mileage=15, number_of_stops=2)
    result = calculate(inputs, get_default_configuration(), bonus_qualified=True)
    print("CUSTOMER:", result["customerCharges"]["total"])
    print("DRIVER:", result["driverPayments"]["total"])
    print("PROFIT:", result["profit"], f"({result['profitMargin']}%)")
