import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grocerycart.config import settings
from grocerycart.database import create_db_and_tables
from grocerycart.errors import GroceryCartError
from grocerycart.routes import cart, health, orders, products

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Grocerycart API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.client_url,
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GroceryCartError)
async def grocerycart_error_handler(request: Request, exc: GroceryCartError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(products.router, prefix="/products", tags=["Products"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "order_endpoints": [
            "/orders/cod", "/orders/online", "/orders/stripe-webhook",
            "/orders/{order_id}/cancel", "/orders/seller/{order_id}/status",
            "/orders/seller/expire-pending",
            "/orders/user", "/orders/seller", "/orders/track/{order_id}"
        ],
        "cart": [
            "/cart", "/cart/add", "/cart/update/{product_id}",
            "/cart/remove/{product_id}", "/cart/clear"
        ],
        "products": ["/products/stock"]
    }
