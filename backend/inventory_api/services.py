from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from inventory_api.models import InventoryLog, Product, derive_status
from inventory_api.schemas import ProductBase, ProductCreate, ProductUpdate
from inventory_api.store import ProductStore

LOGGER = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base class for errors reported back to the client."""

    status_code = 400


class ProductValidationError(InventoryError):
    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__("; ".join(error["message"] for error in errors))
        self.errors = errors


class ProductNotFoundError(InventoryError):
    status_code = 404

    def __init__(self, product_id: int):
        super().__init__("Product not found")
        self.product_id = product_id


class DuplicateProductNameError(InventoryError):
    def __init__(self, name: str):
        super().__init__("Product name must be unique")
        self.name = name


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds, e.g. 2024-05-01T12:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_status(data: ProductBase, strict_status: bool = False) -> str:
    """Status to store: the supplied one, or derived from stock when blank."""
    expected = derive_status(data.stock)
    if not data.status:
        return expected
    if strict_status and data.status != expected:
        raise ProductValidationError([{
            "field": "status",
            "message": f"Status must be '{expected}' when stock is {data.stock}",
        }])
    return data.status


def get_product(store: ProductStore, product_id: int) -> Product:
    product = store.get(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def create_product(store: ProductStore, data: ProductCreate, strict_status: bool = False) -> Product:
    if store.find_by_name(data.name):
        raise DuplicateProductNameError(data.name)

    product = store.add(Product(
        name=data.name,
        unit=data.unit,
        category=data.category,
        brand=data.brand,
        stock=data.stock,
        status=resolve_status(data, strict_status),
        image=data.image,
    ))
    store.commit()
    return product


def update_product(
    store: ProductStore,
    product_id: int,
    data: ProductUpdate,
    actor: str,
    strict_status: bool = False,
) -> Product:
    """
    Replace every field of a product.

    When the stored stock differs from ``data.stock`` one InventoryLog row is
    written first, carrying the stored (pre-update) value, ``actor`` and the
    current time. Log and update are committed together.
    """
    product = get_product(store, product_id)

    if store.find_by_name(data.name, exclude_id=product.id):
        raise DuplicateProductNameError(data.name)

    status = resolve_status(data, strict_status)

    if product.stock != data.stock:
        store.add_log(InventoryLog(
            product_id=product.id,
            old_stock=product.stock,
            new_stock=data.stock,
            changed_by=actor,
            timestamp=utc_timestamp(),
        ))
        LOGGER.info(
            "Stock of product %s changed %s -> %s by %s",
            product.id,
            product.stock,
            data.stock,
            actor,
        )

    product.name = data.name
    product.unit = data.unit
    product.category = data.category
    product.brand = data.brand
    product.stock = data.stock
    product.status = status
    product.image = data.image
    try:
        store.commit()
    except Exception:
        store.rollback()
        raise
    return product


def product_history(store: ProductStore, product_id: int) -> List[InventoryLog]:
    """Stock changes for a product, newest first. Unknown ids yield an empty list."""
    return store.history(product_id)


def list_products(store: ProductStore, category: Optional[str] = None) -> List[Product]:
    return store.list_products(category)


def search_products(store: ProductStore, name: Optional[str] = None) -> List[Product]:
    return store.search(name)
