"""
Business-type configuration for the POS platform.

Each tenant picks one of four business types. The type decides which
features, POS flow and UI sections are available to that tenant:

- restaurant: tables, kitchen orders, table-based POS with a required table
- cafe: tables and kitchen orders, takeaway allowed, quick checkout
- retail: product variants, installment plans, pre-orders, direct POS flow
- supermarket: barcode-first checkout, bulk inventory operations

Lookups are pure. Callers always receive deep copies so the shared
mapping cannot be mutated.
"""

import copy

from django.conf import settings

RESTAURANT = "restaurant"
CAFE = "cafe"
RETAIL = "retail"
SUPERMARKET = "supermarket"

FLOW_TABLE_BASED = "table-based"
FLOW_DIRECT = "direct"
FLOW_BARCODE_FIRST = "barcode-first"

FEATURE_TABLES = "tables"
FEATURE_ORDERS = "orders"
FEATURE_KITCHEN = "kitchen"
FEATURE_VARIANTS = "variants"
FEATURE_INSTALLMENTS = "installments"
FEATURE_BARCODE_SCAN = "barcode_scan"
FEATURE_PREORDERS = "preorders"
FEATURE_TRANSFERS = "transfers"

FEATURES = [
    FEATURE_TABLES,
    FEATURE_ORDERS,
    FEATURE_KITCHEN,
    FEATURE_VARIANTS,
    FEATURE_INSTALLMENTS,
    FEATURE_BARCODE_SCAN,
    FEATURE_PREORDERS,
    FEATURE_TRANSFERS,
]

BUSINESS_CONFIG = {
    RESTAURANT: {
        "name": "Restaurant",
        "name_ar": "مطعم",
        "features": {
            FEATURE_TABLES: True,
            FEATURE_ORDERS: True,
            FEATURE_KITCHEN: True,
            FEATURE_VARIANTS: False,
            FEATURE_INSTALLMENTS: False,
            FEATURE_BARCODE_SCAN: True,
            FEATURE_PREORDERS: False,
            FEATURE_TRANSFERS: True,
        },
        "pos": {
            "flow": FLOW_TABLE_BASED,
            "require_table": True,
            "show_categories": True,
            "quick_checkout": False,
            "show_variant_selector": False,
        },
        "inventory": {
            "track_by_branch": True,
            "variants": False,
            "bulk_operations": False,
        },
        "ui": {
            "sidebar": {
                "show_tables": True,
                "show_kitchen": True,
                "show_orders": True,
                "show_installments": False,
                "show_preorders": False,
            },
            "pos": {
                "show_table_selector": True,
                "show_variant_modal": False,
                "show_installment_option": False,
            },
        },
    },
    CAFE: {
        "name": "Cafe",
        "name_ar": "كافيه",
        "features": {
            FEATURE_TABLES: True,
            FEATURE_ORDERS: True,
            FEATURE_KITCHEN: True,
            FEATURE_VARIANTS: False,
            FEATURE_INSTALLMENTS: False,
            FEATURE_BARCODE_SCAN: True,
            FEATURE_PREORDERS: False,
            FEATURE_TRANSFERS: True,
        },
        "pos": {
            "flow": FLOW_TABLE_BASED,
            # Takeaway orders need no table
            "require_table": False,
            "show_categories": True,
            "quick_checkout": True,
            "show_variant_selector": False,
        },
        "inventory": {
            "track_by_branch": True,
            "variants": False,
            "bulk_operations": False,
        },
        "ui": {
            "sidebar": {
                "show_tables": True,
                "show_kitchen": True,
                "show_orders": True,
                "show_installments": False,
                "show_preorders": False,
            },
            "pos": {
                "show_table_selector": True,
                "show_variant_modal": False,
                "show_installment_option": False,
            },
        },
    },
    RETAIL: {
        "name": "Retail",
        "name_ar": "تجزئة",
        "features": {
            FEATURE_TABLES: False,
            FEATURE_ORDERS: False,
            FEATURE_KITCHEN: False,
            FEATURE_VARIANTS: True,
            FEATURE_INSTALLMENTS: True,
            FEATURE_BARCODE_SCAN: True,
            FEATURE_PREORDERS: True,
            FEATURE_TRANSFERS: True,
        },
        "pos": {
            "flow": FLOW_DIRECT,
            "require_table": False,
            "show_categories": True,
            "quick_checkout": False,
            "show_variant_selector": True,
        },
        "inventory": {
            "track_by_branch": True,
            "variants": True,
            "bulk_operations": False,
        },
        "ui": {
            "sidebar": {
                "show_tables": False,
                "show_kitchen": False,
                "show_orders": False,
                "show_installments": True,
                "show_preorders": True,
            },
            "pos": {
                "show_table_selector": False,
                "show_variant_modal": True,
                "show_installment_option": True,
            },
        },
    },
    SUPERMARKET: {
        "name": "Supermarket",
        "name_ar": "سوبرماركت",
        "features": {
            FEATURE_TABLES: False,
            FEATURE_ORDERS: False,
            FEATURE_KITCHEN: False,
            FEATURE_VARIANTS: False,
            FEATURE_INSTALLMENTS: False,
            FEATURE_BARCODE_SCAN: True,
            FEATURE_PREORDERS: False,
            FEATURE_TRANSFERS: True,
        },
        "pos": {
            "flow": FLOW_BARCODE_FIRST,
            "require_table": False,
            "show_categories": False,
            "quick_checkout": True,
            "show_variant_selector": False,
        },
        "inventory": {
            "track_by_branch": True,
            "variants": False,
            "bulk_operations": True,
        },
        "ui": {
            "sidebar": {
                "show_tables": False,
                "show_kitchen": False,
                "show_orders": False,
                "show_installments": False,
                "show_preorders": False,
            },
            "pos": {
                "show_table_selector": False,
                "show_variant_modal": False,
                "show_installment_option": False,
            },
        },
    },
}

BUSINESS_TYPE_CHOICES = [(key, value["name"]) for key, value in BUSINESS_CONFIG.items()]


def default_business_type():
    return getattr(settings, "POS_DEFAULT_BUSINESS_TYPE", RETAIL)


def is_valid_business_type(value):
    """Check whether ``value`` names a known business type."""
    return value in BUSINESS_CONFIG


def get_config(business_type):
    """
    Get the full configuration bundle for a business type.

    Unknown or empty business types fall back to the default type (retail).

    Args:
        business_type: One of restaurant, cafe, retail, supermarket

    Returns:
        dict: A deep copy of the configuration bundle
    """
    config = BUSINESS_CONFIG.get(business_type) or BUSINESS_CONFIG[default_business_type()]
    return copy.deepcopy(config)


def is_feature_enabled(business_type, feature):
    """Check if a feature is enabled for a business type. Unknown features are disabled."""
    config = BUSINESS_CONFIG.get(business_type) or BUSINESS_CONFIG[default_business_type()]
    return bool(config["features"].get(feature, False))


def get_pos_flow(business_type):
    """Return the POS flow: 'table-based', 'direct' or 'barcode-first'."""
    config = BUSINESS_CONFIG.get(business_type) or BUSINESS_CONFIG[default_business_type()]
    return config["pos"]["flow"]


def get_business_types():
    """List the available business types in declaration order."""
    return [
        {"value": key, "label": value["name"], "label_ar": value["name_ar"]}
        for key, value in BUSINESS_CONFIG.items()
    ]
