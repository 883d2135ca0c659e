# tuning_knobs.py
"""
TUNING KNOBS (EDIT THIS FILE)

Flat business rates that are shared by every client configuration.
Per-client rates (tiers, mileage, tolls, discounts, driver pay) live in
pricing_config.py.
"""

# ============================================================
# 1) MULTI-STOP
# ============================================================
CUSTOMER_EXTRA_STOP_RATE = 5.00   # charged per stop beyond the first
DRIVER_EXTRA_STOP_BONUS = 2.50    # paid to the driver per stop beyond the first

# ============================================================
# 2) DRIVER MILEAGE (used when a configuration omits them)
# ============================================================
DEFAULT_DRIVER_MILEAGE_RATE = 0.70   # $/mile, every mile driven
DEFAULT_DRIVER_MILEAGE_MINIMUM = 7.00

# ============================================================
# 3) DEFAULTS
# ============================================================
DEFAULT_CONFIGURATION_ID = "ready-set-food-standard"
DEFAULT_DISTANCE_THRESHOLD = 10.0
DEFAULT_BONUS_QUALIFIED_PERCENT = 100.0

# ============================================================
# 4) TIER VALIDATION
# ============================================================
# Smallest step on each axis. A tier may start at most one step after the
# previous tier's max without leaving a gap.
HEADCOUNT_STEP = 1
FOOD_COST_STEP = 0.01

# ============================================================
# 5) HISTORY
# ============================================================
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 500
