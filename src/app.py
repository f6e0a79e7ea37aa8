"""HTTP entry point for the storefront.

Every request runs inside the storefront domain context, so command
handlers reached from the routers see ``current_domain`` and their log
lines carry the request method and path.

Run locally with::

    uvicorn app:app --app-dir src --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from storefront.api import (
    cart_router,
    coupon_router,
    order_router,
    payment_router,
    product_router,
    register_storefront_exception_handlers,
    shipping_fee_router,
)
from storefront.domain import storefront
from storefront.utils.logging import get_logger, request_context

logger = get_logger(__name__)

ROUTERS = (
    product_router,
    shipping_fee_router,
    cart_router,
    order_router,
    payment_router,
    coupon_router,
)


def create_app() -> FastAPI:
    storefront.init()

    api = FastAPI(
        title="Storefront API",
        description="Carts, checkout, orders, payments and coupons",
    )
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @api.middleware("http")
    async def storefront_context(request: Request, call_next):
        with request_context(method=request.method, path=request.url.path):
            with storefront.domain_context():
                return await call_next(request)

    for router in ROUTERS:
        api.include_router(router)
    register_storefront_exception_handlers(api)

    @api.get("/health")
    async def health() -> dict:
        return {"status": "ok", "domain": storefront.name}

    logger.info("storefront_api_ready", routes=len(api.routes))
    return api


app = create_app()
