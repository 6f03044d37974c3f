from __future__ import annotations

import json
from typing import Any, List, Optional

from farmbid.domain.models import Product, ProductCategory

from ..connection import iso_utcnow
from .base import LIKE_ESCAPE, BaseRepository, contains_pattern


class ProductRepository(BaseRepository):
    def create(self, product: Product) -> int:
        now_iso = iso_utcnow()
        product_id = self._execute_insert(
            """
            INSERT INTO products (
                seller_id, name, description, category, price, quantity, unit,
                images, location_city, location_state, is_organic, is_available,
                views, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                product.seller_id,
                product.name,
                product.description,
                product.category.value,
                product.price,
                product.quantity,
                product.unit.value,
                json.dumps(product.images),
                product.location.city,
                product.location.state,
                int(product.is_organic),
                int(product.is_available and product.quantity > 0),
                product.views,
                now_iso,
                now_iso,
            ),
        )
        self._commit()
        return product_id

    def get(self, product_id: int) -> Optional[Product]:
        row = self._fetch_one_as_dict("SELECT * FROM products WHERE id = ?", (product_id,))
        return Product.from_dict(row) if row else None

    def increment_views(self, product_id: int) -> None:
        self._execute("UPDATE products SET views = views + 1 WHERE id = ?", (product_id,))
        self._commit()

    def search(
        self,
        *,
        category: ProductCategory | None = None,
        search: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        available_only: bool = True,
        limit: int = 20,
    ) -> List[Product]:
        where = ["1=1"]
        params: List[Any] = []
        if category is not None:
            where.append("category = ?")
            params.append(category.value)
        if search:
            needle = contains_pattern(search)
            where.append(
                "(" + " OR ".join(
                    f"LOWER({column}) LIKE ? ESCAPE '{LIKE_ESCAPE}'"
                    for column in ("name", "description", "category")
                ) + ")"
            )
            params.extend([needle] * 3)
        if min_price is not None:
            where.append("price >= ?")
            params.append(min_price)
        if max_price is not None:
            where.append("price <= ?")
            params.append(max_price)
        if available_only:
            where.append("is_available = 1")
        params.append(limit)
        rows = self._fetch_all_as_dicts(
            f"""
            SELECT * FROM products
            WHERE {' AND '.join(where)}
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            tuple(params),
        )
        return [Product.from_dict(row) for row in rows]

    def purchase(self, product_id: int, quantity: int) -> bool:
        """Atomically take ``quantity`` from stock.

        Returns False (and changes nothing) when the product is unavailable
        or holds less than ``quantity``.
        """
        cur = self._execute(
            """
            UPDATE products
            SET quantity = quantity - ?,
                is_available = CASE WHEN quantity - ? > 0 THEN 1 ELSE 0 END,
                updated_at = ?
            WHERE id = ? AND is_available = 1 AND quantity >= ?
            """,
            (quantity, quantity, iso_utcnow(), product_id, quantity),
        )
        self._commit()
        return cur.rowcount > 0

    def set_quantity(self, product_id: int, quantity: int) -> bool:
        cur = self._execute(
            """
            UPDATE products SET quantity = ?, is_available = ?, updated_at = ?
            WHERE id = ?
            """,
            (quantity, int(quantity > 0), iso_utcnow(), product_id),
        )
        self._commit()
        return cur.rowcount > 0

    def delete(self, product_id: int) -> bool:
        cur = self._execute("DELETE FROM products WHERE id = ?", (product_id,))
        self._commit()
        return cur.rowcount > 0

    def count_available(self) -> int:
        return int(
            self._fetch_scalar("SELECT COUNT(*) FROM products WHERE is_available = 1") or 0
        )
