# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session
from dotenv import load_dotenv

load_dotenv()

from config import settings
from database import SessionLocal, init_db
from models.users import User, ROLE_ADMIN
from utils.hashing import get_password_hash
from services.errors import ShopError, StoreUnavailable
from services.events import CartChanged, CartEvents

# Routers
from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.logs import router as logs_router
from routes.cakes import router as cakes_router
from routes.categories import router as categories_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.shop import router as shop_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("bakery")

# Schema bootstrap
init_db()


def ensure_admin_user(db: Session):
    """Create the bootstrap admin from ADMIN_EMAIL / ADMIN_PASSWORD if it is missing."""
    email = (settings.ADMIN_EMAIL or "").strip().lower()
    if not email or not settings.ADMIN_PASSWORD:
        return None
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing
    admin = User(
        email=email,
        password_hash=get_password_hash(settings.ADMIN_PASSWORD),
        role=ROLE_ADMIN,
        full_name="Administrator",
        address="-",
        phone_number="-",
        gender="other",
    )
    db.add(admin)
    db.commit()
    logger.info("Bootstrap admin %s created", email)
    return admin


def log_cart_change(event: CartChanged):
    logger.debug("Cart of user %s %s, %s item(s)", event.user_id, event.action, event.item_count)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        ensure_admin_user(db)
    finally:
        db.close()
    yield


app = FastAPI(title="Bakery Storefront API", version="1.0.0", lifespan=lifespan)

# Cart change subscription point, handed to every CartManager
app.state.cart_events = CartEvents()
app.state.cart_events.subscribe(log_cart_change)

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Domain errors -> HTTP
@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "retryable": exc.retryable},
        headers=headers,
    )


# Connection-level failures that escaped a service are still transient
@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def store_error_handler(request: Request, exc: Exception):
    logger.warning("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    err = StoreUnavailable()
    return JSONResponse(status_code=err.status_code, content={"detail": err.detail, "retryable": True})


# Router registration
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(logs_router)
app.include_router(cakes_router)
app.include_router(categories_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(shop_router)


@app.get("/")
def read_root():
    return {"message": "Bakery Storefront API is running"}
