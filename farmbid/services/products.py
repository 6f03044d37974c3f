"""Fixed-price product listings and purchases."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from farmbid.domain.errors import (
    FarmBidError,
    InsufficientStock,
    NotOwnerError,
    ProductNotFound,
    UserNotFound,
    ValidationError,
)
from farmbid.domain.models import Location, Product, ProductCategory, User
from farmbid.infrastructure.db.config import MAX_LIST_LIMIT
from farmbid.infrastructure.db.repositories import ProductRepository, UserRepository
from farmbid.infrastructure.observability import log_context, record_purchase
from farmbid.services.base import BaseService, ConnectionFactory
from farmbid.services.dto import (
    ProductCreateDTO,
    ProductViewDTO,
    PurchaseResultDTO,
    parse_model,
)
from farmbid.services.notifications import (
    NotificationSink,
    SqliteNotificationSink,
    build_purchase_notification,
    emit,
)


class ProductService(BaseService):
    """Product catalogue with a stock level that is never oversold."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        notifier: NotificationSink | None = None,
    ) -> None:
        super().__init__(connection_factory)
        self._notifier = (
            notifier if notifier is not None else SqliteNotificationSink(connection_factory)
        )

    def create_product(
        self, seller_id: int, data: ProductCreateDTO | Mapping[str, Any]
    ) -> ProductViewDTO:
        dto = parse_model(ProductCreateDTO, data)

        def _create(conn) -> Product:
            if UserRepository(conn).get(seller_id) is None:
                raise UserNotFound(seller_id)
            product = Product(
                seller_id=seller_id,
                name=dto.name,
                description=dto.description,
                category=dto.category,
                price=dto.price,
                quantity=dto.quantity,
                unit=dto.unit,
                images=list(dto.images),
                location=Location(city=dto.location_city, state=dto.location_state),
                is_organic=dto.is_organic,
                is_available=dto.quantity > 0,
            )
            return replace(product, id=ProductRepository(conn).create(product))

        product = self._with_connection(_create)
        self._logger.info("Seller %s listed product %s", seller_id, product.id)
        return ProductViewDTO.from_domain(product)

    def get_product(self, product_id: int) -> ProductViewDTO:
        def _get(conn) -> Product | None:
            repo = ProductRepository(conn)
            repo.increment_views(product_id)
            return repo.get(product_id)

        product = self._with_connection(_get)
        if product is None:
            raise ProductNotFound(product_id)
        return ProductViewDTO.from_domain(product)

    def list_products(
        self,
        *,
        category: ProductCategory | None = None,
        search: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        available_only: bool = True,
        limit: int = 20,
    ) -> list[ProductViewDTO]:
        limit = min(max(limit, 1), MAX_LIST_LIMIT)
        products = self._with_connection(
            lambda conn: ProductRepository(conn).search(
                category=category,
                search=search,
                min_price=min_price,
                max_price=max_price,
                available_only=available_only,
                limit=limit,
            )
        )
        return [ProductViewDTO.from_domain(product) for product in products]

    def purchase(self, product_id: int, buyer_id: int, quantity: int) -> PurchaseResultDTO:
        """Take ``quantity`` units out of stock for ``buyer_id``.

        Raises:
            ValidationError: quantity below 1.
            ProductNotFound: unknown product.
            NotAvailable: the listing is unavailable.
            InsufficientStock: fewer units in stock than requested; stock is
                left unchanged.
        """
        if quantity < 1:
            raise ValidationError.for_field("quantity", "Quantity must be at least 1")

        def _purchase(conn) -> tuple[Product, Product, User, User | None]:
            users = UserRepository(conn)
            products = ProductRepository(conn)
            buyer_row = users.get(buyer_id)
            if buyer_row is None:
                raise UserNotFound(buyer_id)
            product = products.get(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            product.check_purchase(quantity)
            if not products.purchase(product_id, quantity):
                # Stock moved between the read and the conditional update.
                latest = products.get(product_id)
                if latest is None:
                    raise ProductNotFound(product_id)
                latest.check_purchase(quantity)
                raise InsufficientStock(quantity, latest.quantity, latest.unit.value)
            after = products.get(product_id) or product
            seller_row = users.get(product.seller_id)
            seller = User.from_dict(seller_row) if seller_row else None
            return product, after, User.from_dict(buyer_row), seller

        with log_context(product_id=product_id, buyer_id=buyer_id):
            try:
                product, after, buyer, seller = self._with_connection(_purchase)
            except FarmBidError as exc:
                record_purchase(exc.code)
                self._logger.warning("Purchase of %d rejected: %s", quantity, exc.message)
                raise
            record_purchase("accepted")
            self._logger.info("Purchased %d %s", quantity, product.unit.value)
            emit(self._notifier, build_purchase_notification(product, buyer, quantity))

        return PurchaseResultDTO(
            product_id=product_id,
            quantity=quantity,
            unit=product.unit.value,
            total_price=product.total_price(quantity),
            remaining_quantity=after.quantity,
            is_available=after.is_available,
            seller_name=seller.name if seller else None,
            seller_phone=seller.phone if seller else None,
        )

    def _load_owned(self, repo: ProductRepository, product_id: int, caller_id: int) -> Product:
        product = repo.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if product.seller_id != caller_id:
            raise NotOwnerError("product", product_id)
        return product

    def update_quantity(self, product_id: int, caller_id: int, quantity: int) -> ProductViewDTO:
        if quantity < 0:
            raise ValidationError.for_field("quantity", "Quantity must be a non-negative integer")

        def _update(conn) -> Product:
            repo = ProductRepository(conn)
            self._load_owned(repo, product_id, caller_id)
            repo.set_quantity(product_id, quantity)
            updated = repo.get(product_id)
            if updated is None:
                raise ProductNotFound(product_id)
            return updated

        return ProductViewDTO.from_domain(self._with_connection(_update))

    def delete_product(self, product_id: int, caller_id: int) -> None:
        def _delete(conn) -> None:
            repo = ProductRepository(conn)
            self._load_owned(repo, product_id, caller_id)
            repo.delete(product_id)

        self._with_connection(_delete)
        self._logger.info("Deleted product %s", product_id)
