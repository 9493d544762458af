# backend/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from services.errors import NotFoundError, OutOfStockError, StorageError, StoreError, ValidationError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Routers
from routes.auth import router as auth_router
from routes.logs import router as logs_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.products import router as products_router
from routes.stats import router as stats_router
from routes.shop import router as shop_router
from routes.inventory import router as inventory_router
from routes.qr import router as qr_router
from routes.reviews import router as reviews_router

init_db()

app = FastAPI(title="Gamer Bazaar API", version="1.0.0")

# CORS: the storefront origin plus the local dev server
origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL.rstrip("/"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain errors -> HTTP
_STATUS_BY_ERROR = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (OutOfStockError, 409),
    (StorageError, 500),
]

@app.exception_handler(StoreError)
def store_error_handler(request: Request, exc: StoreError):
    status_code = 500
    for error_cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            status_code = code
            break
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})

app.include_router(auth_router)
app.include_router(logs_router)
app.include_router(shop_router)
app.include_router(products_router)
app.include_router(inventory_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(qr_router)
app.include_router(reviews_router)
app.include_router(stats_router)

@app.get("/")
def read_root():
    return {"message": "Gamer Bazaar API is running"}
