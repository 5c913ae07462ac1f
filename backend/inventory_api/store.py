"""Storage capability handed to the import/update routines.

Routines never reach for a global session; they receive a store object and
call only the methods below. ``SqlProductStore`` is the SQLAlchemy-backed
implementation used by the API and the CLI.
"""
from __future__ import annotations

from typing import List, Optional, Protocol

from sqlalchemy import func
from sqlalchemy.orm import Session

from inventory_api.models import InventoryLog, Product


class ProductStore(Protocol):
    def get(self, product_id: int) -> Optional[Product]: ...

    def find_by_name(self, name: str, exclude_id: Optional[int] = None) -> Optional[Product]: ...

    def list_products(self, category: Optional[str] = None) -> List[Product]: ...

    def search(self, name: Optional[str]) -> List[Product]: ...

    def categories(self) -> List[str]: ...

    def add(self, product: Product) -> Product: ...

    def add_log(self, log: InventoryLog) -> InventoryLog: ...

    def history(self, product_id: int) -> List[InventoryLog]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class SqlProductStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def find_by_name(self, name: str, exclude_id: Optional[int] = None) -> Optional[Product]:
        """Exact name match, ignoring case."""
        query = self.db.query(Product).filter(func.lower(Product.name) == func.lower(name))
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.first()

    def list_products(self, category: Optional[str] = None) -> List[Product]:
        query = self.db.query(Product)
        if category:
            query = query.filter(Product.category == category)
        return query.order_by(Product.id.asc()).all()

    def search(self, name: Optional[str]) -> List[Product]:
        if not name:
            return self.list_products()
        # Match the query literally, not as a LIKE pattern. Both sides go through
        # the database lower() so they fold the same way.
        escaped = name.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        search_term = f"%{escaped}%"
        return (
            self.db.query(Product)
            .filter(func.lower(Product.name).like(func.lower(search_term), escape="\\"))
            .order_by(Product.id.asc())
            .all()
        )

    def categories(self) -> List[str]:
        rows = (
            self.db.query(Product.category)
            .filter(Product.category.isnot(None), Product.category != "")
            .distinct()
            .order_by(Product.category.asc())
            .all()
        )
        return [row[0] for row in rows]

    def add(self, product: Product) -> Product:
        self.db.add(product)
        # Flush so the id is assigned and later lookups in this transaction see the row.
        self.db.flush()
        return product

    def add_log(self, log: InventoryLog) -> InventoryLog:
        self.db.add(log)
        self.db.flush()
        return log

    def history(self, product_id: int) -> List[InventoryLog]:
        return (
            self.db.query(InventoryLog)
            .filter(InventoryLog.product_id == product_id)
            .order_by(InventoryLog.timestamp.desc(), InventoryLog.id.desc())
            .all()
        )

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
