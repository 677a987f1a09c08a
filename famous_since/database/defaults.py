import os

import bcrypt
from typing import Any, Dict, List

DEFAULT_SIZES = ["S", "M", "L", "XL", "2XL"]
DEFAULT_COLOR = "Black"
HOMEPAGE_SLOTS = 4

default_list: List[Dict[str, Any]] = [
    {
        "object_name": "USER",
        "type": "NOT_NULL",
        "key": "role",
        "value": "ADMIN",
        "data": {
            "name": "Famous Since",
            "email": os.getenv("ADMIN_EMAIL", "admin@famoussince.com"),
            "password": bcrypt.hashpw(
                os.getenv("ADMIN_PASSWORD", "FamousSince").encode('utf-8'), bcrypt.gensalt()
            ).decode('utf-8'),
        },
    },
    {
        "object_name": "SITE_CONFIG",
        "type": "NOT_NULL",
        "key": "key",
        "value": "deploy_site",
        "data": {
            "value": False,
            "description": "Serve the storefront. While off every page shows Coming Soon.",
        },
    },
    {
        "object_name": "PRODUCT_TYPE",
        "type": "NOT_NULL",
        "key": "is_default",
        "value": True,
        "data": {"name": "T-Shirt", "base_price": 28.0, "active": True},
        "children": {
            "object_name": "PRODUCT_SIZE",
            "parent_key": "product_type_id",
            "rows": [
                {"size": size, "size_order": order}
                for order, size in enumerate(DEFAULT_SIZES, start=1)
            ],
        },
    },
] + [
    {
        "object_name": "HOMEPAGE",
        "type": "NOT_NULL",
        "key": "position",
        "value": position,
        "data": {"product_id": None},
    }
    for position in range(HOMEPAGE_SLOTS)
]
