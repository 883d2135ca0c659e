# pricing_config.py
# Preset client configurations, in the same JSON shape the
# /api/calculator/configurations endpoint speaks.

READY_SET_FOOD_TIERS = [
    {"headcountMin": 0,   "headcountMax": 24,   "foodCostMin": 0,    "foodCostMax": 299.99,  "regularRate": 60,  "within10Miles": 30},
    {"headcountMin": 25,  "headcountMax": 49,   "foodCostMin": 300,  "foodCostMax": 599.99,  "regularRate": 70,  "within10Miles": 40},
    {"headcountMin": 50,  "headcountMax": 74,   "foodCostMin": 600,  "foodCostMax": 899.99,  "regularRate": 90,  "within10Miles": 60},
    {"headcountMin": 75,  "headcountMax": 99,   "foodCostMin": 900,  "foodCostMax": 1199.99, "regularRate": 100, "within10Miles": 70},
    {"headcountMin": 100, "headcountMax": 124,  "foodCostMin": 1200, "foodCostMax": 1499.99, "regularRate": 120, "within10Miles": 80},
    {"headcountMin": 125, "headcountMax": 149,  "foodCostMin": 1500, "foodCostMax": 1699.99, "regularRate": 150, "within10Miles": 90},
    {"headcountMin": 150, "headcountMax": 174,  "foodCostMin": 1700, "foodCostMax": 1899.99, "regularRate": 180, "within10Miles": 100},
    {"headcountMin": 175, "headcountMax": 199,  "foodCostMin": 1900, "foodCostMax": 2099.99, "regularRate": 210, "within10Miles": 110},
    {"headcountMin": 200, "headcountMax": 249,  "foodCostMin": 2100, "foodCostMax": 2299.99, "regularRate": 280, "within10Miles": 120},
    {"headcountMin": 250, "headcountMax": 299,  "foodCostMin": 2300, "foodCostMax": 2499.99, "regularRate": 310, "within10Miles": 130},
    {"headcountMin": 300, "headcountMax": None, "foodCostMin": 2500, "foodCostMax": None,    "regularRate": 0,   "within10Miles": 0},  # TBD
]

READY_SET_FOOD_PREMIUM_TIERS = [
    {"headcountMin": 0,   "headcountMax": 24,   "foodCostMin": 0,    "foodCostMax": 299.99,  "regularRate": 70,  "within10Miles": 40},
    {"headcountMin": 25,  "headcountMax": 49,   "foodCostMin": 300,  "foodCostMax": 599.99,  "regularRate": 85,  "within10Miles": 50},
    {"headcountMin": 50,  "headcountMax": 74,   "foodCostMin": 600,  "foodCostMax": 899.99,  "regularRate": 105, "within10Miles": 70},
    {"headcountMin": 75,  "headcountMax": 99,   "foodCostMin": 900,  "foodCostMax": 1199.99, "regularRate": 120, "within10Miles": 85},
    {"headcountMin": 100, "headcountMax": 124,  "foodCostMin": 1200, "foodCostMax": 1499.99, "regularRate": 140, "within10Miles": 95},
    {"headcountMin": 125, "headcountMax": 149,  "foodCostMin": 1500, "foodCostMax": 1699.99, "regularRate": 170, "within10Miles": 105},
    {"headcountMin": 150, "headcountMax": 174,  "foodCostMin": 1700, "foodCostMax": 1899.99, "regularRate": 200, "within10Miles": 115},
    {"headcountMin": 175, "headcountMax": 199,  "foodCostMin": 1900, "foodCostMax": 2099.99, "regularRate": 230, "within10Miles": 125},
    {"headcountMin": 200, "headcountMax": 249,  "foodCostMin": 2100, "foodCostMax": 2299.99, "regularRate": 300, "within10Miles": 140},
    {"headcountMin": 250, "headcountMax": 299,  "foodCostMin": 2300, "foodCostMax": 2499.99, "regularRate": 340, "within10Miles": 150},
    {"headcountMin": 300, "headcountMax": None, "foodCostMin": 2500, "foodCostMax": None,    "regularRate": 0,   "within10Miles": 0},  # TBD
]

KASA_TIERS = [
    {"headcountMin": 0,   "headcountMax": 24,   "foodCostMin": 0,    "foodCostMax": 300,     "regularRate": 60,  "within10Miles": 30},
    {"headcountMin": 25,  "headcountMax": 49,   "foodCostMin": 300,  "foodCostMax": 599.99,  "regularRate": 70,  "within10Miles": 40},
    {"headcountMin": 50,  "headcountMax": 74,   "foodCostMin": 600,  "foodCostMax": 899.99,  "regularRate": 90,  "within10Miles": 60},
    {"headcountMin": 75,  "headcountMax": 99,   "foodCostMin": 900,  "foodCostMax": 1199.99, "regularRate": 100, "within10Miles": 70},
    {"headcountMin": 100, "headcountMax": 124,  "foodCostMin": 1200, "foodCostMax": 1499.99, "regularRate": 120, "within10Miles": 80},
    {"headcountMin": 125, "headcountMax": 149,  "foodCostMin": 1500, "foodCostMax": 1799.99, "regularRate": 140, "within10Miles": 90},
    {"headcountMin": 150, "headcountMax": 174,  "foodCostMin": 1800, "foodCostMax": 2099.99, "regularRate": 160, "within10Miles": 100},
    {"headcountMin": 175, "headcountMax": 199,  "foodCostMin": 2100, "foodCostMax": 2399.99, "regularRate": 180, "within10Miles": 110},
    {"headcountMin": 200, "headcountMax": 249,  "foodCostMin": 2400, "foodCostMax": 2999.99, "regularRate": 200, "within10Miles": 120},
    {"headcountMin": 250, "headcountMax": 299,  "foodCostMin": 3000, "foodCostMax": 3499.99, "regularRate": 220, "within10Miles": 130},
    {"headcountMin": 300, "headcountMax": None, "foodCostMin": 3500, "foodCostMax": None,    "regularRate": 0,   "within10Miles": 0},  # TBD
]

GENERIC_TIERS = [
    {"headcountMin": 0,   "headcountMax": 24,   "foodCostMin": 0,    "foodCostMax": 299.99,  "regularRate": 50,  "within10Miles": 25},
    {"headcountMin": 25,  "headcountMax": 49,   "foodCostMin": 300,  "foodCostMax": 599.99,  "regularRate": 60,  "within10Miles": 35},
    {"headcountMin": 50,  "headcountMax": 74,   "foodCostMin": 600,  "foodCostMax": 899.99,  "regularRate": 75,  "within10Miles": 45},
    {"headcountMin": 75,  "headcountMax": 99,   "foodCostMin": 900,  "foodCostMax": 1199.99, "regularRate": 90,  "within10Miles": 55},
    {"headcountMin": 100, "headcountMax": None, "foodCostMin": 1200, "foodCostMax": None,    "regularRate": 110, "within10Miles": 65},
]

BAY_AREA_TOLL_AREAS = ["San Francisco", "Oakland", "Marin County"]

PRESET_CONFIGURATIONS = [
    {
        "id": "ready-set-food-standard",
        "clientName": "Ready Set Food - Standard",
        "vendorName": "Destino",
        "description": "Standard delivery pricing for Ready Set Food (vendor: Destino) with tiered compensation rules",
        "isActive": True,
        "pricingTiers": READY_SET_FOOD_TIERS,
        "mileageRate": 3.0,
        "distanceThreshold": 10,
        "dailyDriveDiscounts": {"twoDrivers": 5, "threeDrivers": 10, "fourPlusDrivers": 15},
        "driverPaySettings": {"maxPayPerDrop": 40, "basePayPerDrop": 23, "bonusPay": 10, "readySetFee": 70},
        "bridgeTollSettings": {"defaultTollAmount": 8.00, "autoApplyForAreas": BAY_AREA_TOLL_AREAS},
        "createdAt": "2025-01-01T00:00:00+00:00",
        "updatedAt": "2025-01-01T00:00:00+00:00",
        "notes": "Standard Ready Set Food pricing based on official documents",
    },
    {
        "id": "ready-set-food-premium",
        "clientName": "Ready Set Food - Premium",
        "vendorName": "Destino",
        "description": "Premium delivery pricing with enhanced driver compensation",
        "isActive": False,  # enable if this tier is needed
        "pricingTiers": READY_SET_FOOD_PREMIUM_TIERS,
        "mileageRate": 3.5,
        "distanceThreshold": 10,
        "dailyDriveDiscounts": {"twoDrivers": 7, "threeDrivers": 12, "fourPlusDrivers": 18},
        "driverPaySettings": {"maxPayPerDrop": 50, "basePayPerDrop": 28, "bonusPay": 15, "readySetFee": 85},
        "bridgeTollSettings": {"defaultTollAmount": 10.00, "autoApplyForAreas": BAY_AREA_TOLL_AREAS + ["Berkeley"]},
        "createdAt": "2025-01-01T00:00:00+00:00",
        "updatedAt": "2025-01-01T00:00:00+00:00",
        "notes": "Premium service with higher driver compensation and customer charges",
    },
    {
        "id": "kasa",
        "clientName": "Kasa",
        "vendorName": "Kasa",
        "description": "Kasa delivery pricing with within/beyond 10 miles rate structure",
        "isActive": True,
        "pricingTiers": KASA_TIERS,
        "mileageRate": 3.0,
        "distanceThreshold": 10,
        "dailyDriveDiscounts": {"twoDrivers": 5, "threeDrivers": 10, "fourPlusDrivers": 15},
        "driverPaySettings": {"maxPayPerDrop": 98.69, "basePayPerDrop": 63.00, "bonusPay": 10, "readySetFee": 135.00},
        "bridgeTollSettings": {"defaultTollAmount": 8.00, "autoApplyForAreas": BAY_AREA_TOLL_AREAS},
        "createdAt": "2025-01-01T00:00:00+00:00",
        "updatedAt": "2025-01-01T00:00:00+00:00",
        "notes": "Kasa pricing based on the New Kasa Pricing table",
    },
    {
        "id": "generic-template",
        "clientName": "Generic Template",
        "vendorName": "Generic Vendor",
        "description": "Customizable base configuration for new clients",
        "isActive": False,
        "pricingTiers": GENERIC_TIERS,
        "mileageRate": 2.5,
        "distanceThreshold": 10,
        "dailyDriveDiscounts": {"twoDrivers": 5, "threeDrivers": 10, "fourPlusDrivers": 15},
        "driverPaySettings": {"maxPayPerDrop": 35, "basePayPerDrop": 20, "bonusPay": 8, "readySetFee": 60},
        "bridgeTollSettings": {"defaultTollAmount": 7.00, "autoApplyForAreas": []},
        "createdAt": "2025-01-01T00:00:00+00:00",
        "updatedAt": "2025-01-01T00:00:00+00:00",
        "notes": "Base template for creating custom client configurations",
    },
]
