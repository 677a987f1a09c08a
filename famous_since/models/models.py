from flask_login import UserMixin

import json

import bcrypt

from typing import Any, Dict, List, Optional

from famous_since.database import db
from famous_since.utils.helpers import timestamp
from famous_since.utils.logging import get_logger

log = get_logger(__name__)


def conn_db(autocommit: bool = True):
    return db.connection(autocommit=autocommit)


class BaseClass:
    non_update: List[str] = []
    json_fields: List[str] = []
    bool_fields: List[str] = []
    table_name: Optional[str] = None

    def __init__(self, **kwargs: Any) -> None:
        if self.table_name is None:
            raise ValueError("table_name must be set in subclass")
        for key, value in kwargs.items():
            if key in self.json_fields and isinstance(value, str):
                try:
                    value = json.loads(value)
                except json.JSONDecodeError:
                    pass
            elif key in self.bool_fields and value is not None:
                value = bool(value)
            setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {getattr(self, 'id', None)}>"

    @classmethod
    def _prepare(cls, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        if "id" in kwargs:
            raise KeyError("Invalid ID key found")
        if cls.table_name is None:
            raise ValueError("table_name must be set in subclass")
        table_columns = db.get_columns(table_name=cls.table_name)
        excess = [col for col in kwargs if col not in table_columns]
        if excess:
            raise KeyError(f"Unknown arguments: {', '.join(excess)}")
        return {
            key: json.dumps(value) if isinstance(value, (dict, list)) else value
            for key, value in kwargs.items()
        }

    @classmethod
    def new(cls, _cursor: Any = None, **kwargs) -> 'BaseClass':
        """INSERT a row. Pass ``_cursor`` to join a transaction already open."""
        data = cls._prepare(kwargs)
        if _cursor is not None:
            return cls(**db.insert(_cursor, cls.table_name, data))
        with conn_db() as (conn, cursor):
            return cls(**db.insert(cursor, cls.table_name, data))

    @classmethod
    def get(cls, order_by: Optional[str] = None, **kwargs) -> List['BaseClass']:
        query = f"SELECT * FROM {cls.table_name}"
        params: List[Any] = []
        if kwargs:
            clauses = []
            for key, value in kwargs.items():
                if value is None:
                    clauses.append(f"{key} IS NULL")
                else:
                    clauses.append(f"{key} = ?")
                    params.append(value)
            query += f" WHERE {' AND '.join(clauses)}"
        if order_by:
            query += f" ORDER BY {order_by}"
        data = db.execute(query, tuple(params), fetch="all")
        return [cls(**entry) for entry in data]

    @classmethod
    def get_one(cls, **kwargs) -> Optional['BaseClass']:
        found = cls.get(**kwargs)
        return found[0] if found else None

    @classmethod
    def get_by_id(cls, id: Any) -> Optional['BaseClass']:
        try:
            return cls.get_one(id=int(id))
        except (TypeError, ValueError):
            return None

    @classmethod
    def count(cls) -> int:
        row = db.execute(f"SELECT COUNT(*) AS n FROM {cls.table_name}", fetch="one")
        return int(row["n"]) if row else 0

    def _values(self, keys) -> Dict[str, Any]:
        values = {}
        for key in keys:
            value = getattr(self, key)
            values[key] = json.dumps(value) if isinstance(value, (dict, list)) else value
        return values

    def update(self, *keys, _cursor: Any = None) -> bool:
        columns = db.get_columns(self.table_name)
        if not keys:
            keys = tuple(
                k for k in vars(self) if k not in self.non_update and k in columns
            )
        else:
            invalid = [k for k in keys if k in self.non_update or k not in vars(self)]
            if invalid:
                raise KeyError(f"Invalid keys for update: {', '.join(invalid)}")
        update_data = self._values(keys)
        if not update_data:
            log.info(f"Nothing updated to {self.table_name}")
            return True
        if "updated_at" in columns:
            self.updated_at = update_data["updated_at"] = timestamp()
        set_clause = ", ".join(f"{k} = ?" for k in update_data)
        params = tuple(update_data.values()) + (getattr(self, 'id'),)
        query = db.sql(f"UPDATE {self.table_name} SET {set_clause} WHERE id = ?")
        if _cursor is not None:
            _cursor.execute(query, params)
            return True
        with conn_db() as (conn, cursor):
            cursor.execute(query, params)
        return True

    def delete(self, _cursor: Any = None) -> None:
        query = db.sql(f"DELETE FROM {self.table_name} WHERE id = ?")
        if _cursor is not None:
            _cursor.execute(query, (self.id,))
            return
        with conn_db() as (conn, cursor):
            cursor.execute(query, (self.id,))

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in vars(self).items() if not k.startswith("_") and k != "password"}


class User(UserMixin, BaseClass):
    table_name = "user_table"
    non_update = ["id", "created_at", "updated_at"]

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    def check_password(self, input_password):
        return bcrypt.checkpw(input_password.encode('utf-8'), self.password.encode('utf-8'))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


class ProductType(BaseClass):
    table_name = "product_type_table"
    non_update = ["id", "created_at", "updated_at"]
    bool_fields = ["active", "is_default", "is_branded_item"]

    @classmethod
    def default(cls) -> Optional['ProductType']:
        return cls.get_one(is_default=True) or cls.get_one(active=True)

    def get_sizes(self) -> List['ProductSize']:
        return ProductSize.get(product_type_id=self.id, order_by="size_order")

    def get_images(self) -> List['ProductTypeImage']:
        return ProductTypeImage.get(product_type_id=self.id, order_by="id")

    def add_size(self, size: str) -> 'ProductSize':
        """New sizes go to the end of the order."""
        row = db.execute(
            "SELECT MAX(size_order) AS n FROM product_size_table WHERE product_type_id = ?",
            (self.id,),
            fetch="one",
        )
        next_order = (row["n"] or 0) + 1 if row else 1
        return ProductSize.new(product_type_id=self.id, size=size.strip().upper(), size_order=next_order)

    def set_default(self) -> None:
        with conn_db() as (conn, cursor):
            cursor.execute(db.sql("UPDATE product_type_table SET is_default = ?"), (False,))
            cursor.execute(db.sql("UPDATE product_type_table SET is_default = ? WHERE id = ?"), (True, self.id))
        self.is_default = True


class ProductTypeImage(BaseClass):
    table_name = "product_type_image_table"
    non_update = ["id", "product_type_id", "created_at"]
    bool_fields = ["is_default_model"]

    def make_default(self) -> None:
        with conn_db() as (conn, cursor):
            cursor.execute(
                db.sql("UPDATE product_type_image_table SET is_default_model = ? WHERE product_type_id = ?"),
                (False, self.product_type_id),
            )
            cursor.execute(
                db.sql("UPDATE product_type_image_table SET is_default_model = ? WHERE id = ?"),
                (True, self.id),
            )
        self.is_default_model = True


class ProductSize(BaseClass):
    table_name = "product_size_table"
    non_update = ["id", "product_type_id"]


class Product(BaseClass):
    table_name = "product_table"
    non_update = ["id", "created_at", "updated_at"]

    def get_variants(self) -> List['ProductVariant']:
        return ProductVariant.get(product_id=self.id, order_by="id")

    def get_type(self) -> Optional[ProductType]:
        if self.product_type_id is None:
            return None
        return ProductType.get_by_id(self.product_type_id)

    def payment_account(self) -> Optional[str]:
        """Connected account paid for this product, directly or through its type."""
        if self.stripe_account_id:
            return self.stripe_account_id
        product_type = self.get_type()
        return product_type.stripe_account_id if product_type else None

    @classmethod
    def search(cls, term: str) -> List['Product']:
        like = f"%{term.strip().upper()}%"
        rows = db.execute(
            "SELECT * FROM product_table WHERE UPPER(name) LIKE ? OR UPPER(description) LIKE ? ORDER BY created_at DESC",
            (like, like),
        )
        return [cls(**row) for row in rows]


class ProductVariant(BaseClass):
    table_name = "product_variant_table"
    non_update = ["id", "product_id", "created_at", "updated_at"]

    def get_product(self) -> Optional[Product]:
        return Product.get_by_id(self.product_id)


class HomepageDisplay(BaseClass):
    table_name = "homepage_display_table"
    non_update = ["id", "updated_at"]


class ForbiddenWord(BaseClass):
    """A word customers may not print. Stored uppercased."""
    table_name = "exception_table"
    non_update = ["id", "created_at"]

    @classmethod
    def words(cls) -> set[str]:
        return {row["word"].upper() for row in db.execute("SELECT word FROM exception_table")}


class Order(BaseClass):
    table_name = "order_table"
    non_update = ["id", "payment_intent_id", "created_at", "updated_at"]
    json_fields = ["shipping_address", "billing_address"]

    def get_items(self) -> List['OrderItem']:
        return OrderItem.get(order_id=self.id, order_by="id")


class OrderItem(BaseClass):
    table_name = "order_item_table"
    non_update = ["id", "order_id"]
    json_fields = ["customization"]


class SiteConfig(BaseClass):
    table_name = "site_config_table"
    non_update = ["id", "key", "created_at", "updated_at"]
    bool_fields = ["value", "editable"]


class StripeConnectAccount(BaseClass):
    table_name = "stripe_connect_account_table"
    non_update = ["id", "account_id", "created_at", "updated_at"]
    bool_fields = ["onboarding_complete"]

    @classmethod
    def current(cls) -> Optional['StripeConnectAccount']:
        accounts = cls.get(order_by="created_at DESC, id DESC")
        return accounts[0] if accounts else None


class Subscription(BaseClass):
    table_name = "subscription_table"
    non_update = ["id", "stripe_subscription_id", "created_at", "updated_at"]
    bool_fields = ["cancel_at_period_end"]


class WaitlistEntry(BaseClass):
    table_name = "waitlist_table"
    non_update = ["id", "email", "subscribed_at"]


classes = {
    "USER": User,
    "SITE_CONFIG": SiteConfig,
    "PRODUCT_TYPE": ProductType,
    "PRODUCT_SIZE": ProductSize,
    "HOMEPAGE": HomepageDisplay,
}


def set_defaults(default_list):
    try:
        for entry in default_list:
            if entry["type"] not in ["NOT NULL", "NOT_NULL"]:
                continue
            cls_ = classes[entry["object_name"]]
            existing = cls_.get(**{entry["key"]: entry["value"]})
            if existing:
                continue
            log.info(f"Setting default {entry['object_name']} {entry['key']}={entry['value']}")
            object_data = entry["data"].copy()
            object_data[entry["key"]] = entry["value"]
            created = cls_.new(**object_data)
            children = entry.get("children")
            if children:
                child_cls = classes[children["object_name"]]
                for row in children["rows"]:
                    child_cls.new(**{children["parent_key"]: created.id, **row})
    except (KeyError, *db.IntegrityError) as e:
        log.error(f"Failed loading defaults, {e}")
        raise ValueError(f"Failed loading defaults, {e}") from e
    return True
