"""FastAPI application exposing the FarmBid marketplace.

Run with ``uvicorn farmbid.app.api:app``.
"""

from __future__ import annotations

import time
from typing import Annotated, Any

from fastapi import FastAPI, File, Form, Query, Request, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from farmbid import __version__
from farmbid.app.dependencies import (
    AuctionServiceDep,
    BiddingServiceDep,
    CurrentUserDep,
    NotificationServiceDep,
    ProductServiceDep,
    SettlementServiceDep,
    StatsServiceDep,
    UserServiceDep,
)
from farmbid.domain.errors import FarmBidError
from farmbid.domain.lifecycle import AuctionQuery, SortField, SortOrder, StatusFilter
from farmbid.domain.models import LivestockType, ProductCategory
from farmbid.infrastructure.db import get_list_limit, get_path_config
from farmbid.infrastructure.db.config import MAX_LIST_LIMIT
from farmbid.infrastructure.observability import (
    format_prometheus,
    get_logger,
    record_api_request,
)
from farmbid.infrastructure.persistence import ImageUpload
from farmbid.services.dto import (
    AuctionDetailDTO,
    AuctionUpdateDTO,
    AuctionViewDTO,
    BidCreateDTO,
    BidDTO,
    BidReceiptDTO,
    NotificationDTO,
    PlatformStatsDTO,
    ProductCreateDTO,
    ProductViewDTO,
    PurchaseRequestDTO,
    PurchaseResultDTO,
    QuantityUpdateDTO,
    RegisteredUserDTO,
    SettlementResultDTO,
    UserCreateDTO,
    UserDTO,
)

logger = get_logger(__name__)

app = FastAPI(title="FarmBid API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(
    "/uploads",
    StaticFiles(directory=get_path_config()["uploads_dir"], check_dir=False),
    name="uploads",
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    record_api_request(
        endpoint, request.method, response.status_code, time.perf_counter() - start
    )
    return response


@app.exception_handler(FarmBidError)
async def farmbid_error_handler(request: Request, exc: FarmBidError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "code": "validation_error",
            "message": errors[0]["message"] if errors else "Invalid input",
            "errors": errors,
        },
    )


@app.get("/")
def root() -> dict[str, Any]:
    """API root endpoint with welcome message and links."""
    return {
        "name": "FarmBid API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "auctions": "/auctions",
            "products": "/products",
            "notifications": "/notifications",
            "stats": "/stats",
            "metrics": "/metrics",
        },
    }


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@app.post("/users", response_model=RegisteredUserDTO, status_code=status.HTTP_201_CREATED)
def register_user(payload: UserCreateDTO, users: UserServiceDep) -> RegisteredUserDTO:
    return users.register(payload)


@app.get("/me", response_model=UserDTO)
def whoami(user: CurrentUserDep) -> UserDTO:
    return UserDTO.from_domain(user)


# ---------------------------------------------------------------------------
# Auctions
# ---------------------------------------------------------------------------


@app.get("/auctions", response_model=list[AuctionViewDTO])
def list_auctions(
    auctions: AuctionServiceDep,
    livestock_type: LivestockType | None = None,
    search: str | None = None,
    min_price: Annotated[float | None, Query(ge=0)] = None,
    max_price: Annotated[float | None, Query(ge=0)] = None,
    status_filter: Annotated[StatusFilter, Query(alias="status")] = StatusFilter.ALL,
    sort_by: SortField = SortField.END_DATE,
    order: SortOrder = SortOrder.ASC,
    limit: Annotated[int | None, Query(ge=1, le=MAX_LIST_LIMIT)] = None,
) -> list[AuctionViewDTO]:
    query = AuctionQuery(
        livestock_type=livestock_type,
        search=search,
        min_price=min_price,
        max_price=max_price,
        status=status_filter,
        sort_by=sort_by,
        order=order,
        limit=limit or get_list_limit(),
    )
    return auctions.list_auctions(query)


@app.post(
    "/auctions", response_model=AuctionDetailDTO, status_code=status.HTTP_201_CREATED
)
def create_auction(
    user: CurrentUserDep,
    auctions: AuctionServiceDep,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    livestock_type: Annotated[str | None, Form()] = None,
    breed: Annotated[str | None, Form()] = None,
    age: Annotated[str | None, Form()] = None,
    weight: Annotated[str | None, Form()] = None,
    health_status: Annotated[str | None, Form()] = None,
    starting_bid: Annotated[str | None, Form()] = None,
    min_bid_increment: Annotated[str | None, Form()] = None,
    start_date: Annotated[str | None, Form()] = None,
    end_date: Annotated[str | None, Form()] = None,
    location_city: Annotated[str | None, Form()] = None,
    location_state: Annotated[str | None, Form()] = None,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> AuctionDetailDTO:
    """Create an auction from a multipart form with 1-5 image files."""
    form = {
        "title": title,
        "description": description,
        "livestock_type": livestock_type,
        "breed": breed,
        "age": age,
        "weight": weight,
        "health_status": health_status,
        "starting_bid": starting_bid,
        "min_bid_increment": min_bid_increment,
        "start_date": start_date,
        "end_date": end_date,
        "location_city": location_city,
        "location_state": location_state,
    }
    data = {key: value for key, value in form.items() if value not in (None, "")}
    uploads = [
        ImageUpload(
            filename=upload.filename or "upload",
            content=upload.file.read(),
            content_type=upload.content_type,
        )
        for upload in images or []
    ]
    return auctions.create_auction(user.id, data, uploads)


@app.get("/auctions/{auction_id}", response_model=AuctionDetailDTO)
def get_auction(auction_id: int, auctions: AuctionServiceDep) -> AuctionDetailDTO:
    return auctions.get_auction(auction_id)


@app.patch("/auctions/{auction_id}", response_model=AuctionDetailDTO)
def update_auction(
    auction_id: int,
    payload: AuctionUpdateDTO,
    user: CurrentUserDep,
    auctions: AuctionServiceDep,
) -> AuctionDetailDTO:
    return auctions.update_auction(auction_id, user.id, payload)


@app.delete("/auctions/{auction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_auction(
    auction_id: int, user: CurrentUserDep, auctions: AuctionServiceDep
) -> Response:
    auctions.delete_auction(auction_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post(
    "/auctions/{auction_id}/bids",
    response_model=BidReceiptDTO,
    status_code=status.HTTP_201_CREATED,
)
def place_bid(
    auction_id: int,
    payload: BidCreateDTO,
    user: CurrentUserDep,
    bidding: BiddingServiceDep,
) -> BidReceiptDTO:
    return bidding.place_bid(auction_id, user.id, payload.amount, payload.mobile_number)


@app.get("/auctions/{auction_id}/bids", response_model=list[BidDTO])
def list_bids(auction_id: int, bidding: BiddingServiceDep) -> list[BidDTO]:
    return bidding.list_bids(auction_id)


@app.get("/me/auctions", response_model=list[AuctionViewDTO])
def my_auctions(user: CurrentUserDep, auctions: AuctionServiceDep) -> list[AuctionViewDTO]:
    return auctions.list_seller_auctions(user.id)


@app.get("/me/bids", response_model=list[AuctionViewDTO])
def my_bids(user: CurrentUserDep, bidding: BiddingServiceDep) -> list[AuctionViewDTO]:
    return bidding.list_bidder_auctions(user.id)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


@app.get("/products", response_model=list[ProductViewDTO])
def list_products(
    products: ProductServiceDep,
    category: ProductCategory | None = None,
    search: str | None = None,
    min_price: Annotated[float | None, Query(ge=0)] = None,
    max_price: Annotated[float | None, Query(ge=0)] = None,
    available_only: bool = True,
    limit: Annotated[int | None, Query(ge=1, le=MAX_LIST_LIMIT)] = None,
) -> list[ProductViewDTO]:
    return products.list_products(
        category=category,
        search=search,
        min_price=min_price,
        max_price=max_price,
        available_only=available_only,
        limit=limit or get_list_limit(),
    )


@app.post("/products", response_model=ProductViewDTO, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreateDTO, user: CurrentUserDep, products: ProductServiceDep
) -> ProductViewDTO:
    return products.create_product(user.id, payload)


@app.get("/products/{product_id}", response_model=ProductViewDTO)
def get_product(product_id: int, products: ProductServiceDep) -> ProductViewDTO:
    return products.get_product(product_id)


@app.post("/products/{product_id}/purchase", response_model=PurchaseResultDTO)
def purchase_product(
    product_id: int,
    payload: PurchaseRequestDTO,
    user: CurrentUserDep,
    products: ProductServiceDep,
) -> PurchaseResultDTO:
    return products.purchase(product_id, user.id, payload.quantity)


@app.patch("/products/{product_id}/quantity", response_model=ProductViewDTO)
def update_product_quantity(
    product_id: int,
    payload: QuantityUpdateDTO,
    user: CurrentUserDep,
    products: ProductServiceDep,
) -> ProductViewDTO:
    return products.update_quantity(product_id, user.id, payload.quantity)


@app.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int, user: CurrentUserDep, products: ProductServiceDep
) -> Response:
    products.delete_product(product_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Notifications, stats and operations
# ---------------------------------------------------------------------------


@app.get("/notifications", response_model=list[NotificationDTO])
def list_notifications(
    user: CurrentUserDep,
    notifications: NotificationServiceDep,
    unread_only: bool = False,
) -> list[NotificationDTO]:
    return notifications.list_notifications(user.id, unread_only=unread_only)


@app.post(
    "/notifications/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT
)
def mark_notification_read(
    notification_id: int,
    user: CurrentUserDep,
    notifications: NotificationServiceDep,
) -> Response:
    notifications.mark_read(notification_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/stats", response_model=PlatformStatsDTO)
def platform_stats(stats: StatsServiceDep) -> PlatformStatsDTO:
    return stats.platform_stats()


@app.get("/metrics", response_class=PlainTextResponse)
def metrics() -> str:
    """Prometheus text exposition of in-process counters and histograms."""
    return format_prometheus()


@app.post("/admin/settle", response_model=list[SettlementResultDTO])
def settle_auctions(
    user: CurrentUserDep, settlement: SettlementServiceDep
) -> list[SettlementResultDTO]:
    """Run the settlement sweep; refused unless ``settlement.http_enabled`` is set."""
    logger.info("Settlement sweep requested by user %s", user.id)
    return settlement.settle_ended()
