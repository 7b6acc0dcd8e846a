import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Path, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config, crud, schemas
from .db import SessionLocal, engine
from .errors import AuthenticationRequired, CatalogError, Forbidden, ValidationFailed
from .seed import init_db
from .sessions import DatabaseSessionStore, InMemorySessionStore, SessionData, SessionStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=config.get_settings().log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # Create tables if not existing and make sure the default admin exists
    init_db(engine)
    logger.info("Default admin: %s", config.get_settings().default_admin_email)
    yield


app = FastAPI(title="Product Catalog API", lifespan=lifespan)

# Largest id the integer primary keys can hold
MAX_ID = 2**63 - 1

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_session_store(settings: config.Settings) -> SessionStore:
    if settings.session_backend == "database":
        return DatabaseSessionStore(SessionLocal, settings.session_ttl_seconds)
    return InMemorySessionStore(settings.session_ttl_seconds)


session_store = build_session_store(config.settings)


# Dependency to get DB session per request

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_store() -> SessionStore:
    return session_store


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(config.get_settings().session_cookie_name)


def require_auth(request: Request, store: SessionStore = Depends(get_session_store)) -> SessionData:
    token = session_token(request)
    session = store.get(token) if token else None
    if session is None:
        raise AuthenticationRequired()
    return session


def require_admin(session: SessionData = Depends(require_auth)) -> SessionData:
    # Uses the flag captured at login; a revoked admin keeps access until the session expires
    if not session.is_admin:
        raise Forbidden()
    return session


def start_session(response: Response, store: SessionStore, user) -> None:
    settings = config.get_settings()
    store.expire()
    token = store.create(user.id, user.email, user.is_admin)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(config.get_settings().session_cookie_name, httponly=True, samesite="lax")


# -------------------- Error handling --------------------

def describe_validation_errors(errors) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    msg = first.get("msg", "Invalid value")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    response = JSONResponse(status_code=exc.status_code, content={"error": exc.message})
    if getattr(exc, "clear_session", False):
        clear_session_cookie(response)
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": describe_validation_errors(exc.errors())})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# -------------------- Health --------------------

@app.get("/api/health")
async def health():
    return {"status": "OK", "message": "Product Catalog API is running"}


# -------------------- Products --------------------

def parse_rating(rating: Optional[str]) -> Optional[int]:
    if not rating:
        return None
    try:
        return int(rating)
    except ValueError:
        raise ValidationFailed("rating must be an integer")


def parse_featured(featured: Optional[str]) -> Optional[bool]:
    if not featured:
        return None
    return featured.strip().lower() in ("true", "1")


@app.get("/api/products", response_model=List[schemas.ProductRead])
def list_products(
    search: Optional[str] = None,
    license: Optional[str] = None,
    rating: Optional[str] = None,
    category: Optional[str] = None,
    featured: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return crud.list_products(
        db,
        search=search,
        license=license or None,
        rating=parse_rating(rating),
        category=category or None,
        featured=parse_featured(featured),
    )


@app.get("/api/products/{product_id}", response_model=schemas.ProductRead)
def get_product(product_id: int = Path(..., ge=1, le=MAX_ID), db: Session = Depends(get_db)):
    return crud.view_product(db, product_id)


@app.post("/api/products", response_model=schemas.ProductRead, status_code=201)
def create_product(
    product: schemas.ProductCreate,
    db: Session = Depends(get_db),
    admin: SessionData = Depends(require_admin),
):
    return crud.create_product(db, product)


@app.put("/api/products/{product_id}", response_model=schemas.ProductRead)
def update_product(
    payload: schemas.ProductUpdate,
    product_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    admin: SessionData = Depends(require_admin),
):
    return crud.update_product(db, product_id, payload)


@app.delete("/api/products/{product_id}", response_model=schemas.Message)
def delete_product(
    product_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    admin: SessionData = Depends(require_admin),
):
    crud.delete_product(db, product_id)
    return {"message": "Product deleted successfully"}


@app.get("/api/categories", response_model=List[schemas.CategoryRead])
def list_categories(db: Session = Depends(get_db)):
    return crud.list_categories(db)


# -------------------- Auth --------------------

@app.post("/api/auth/register", response_model=schemas.AuthResponse, status_code=201)
def register(
    payload: schemas.RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    user = crud.create_user(db, payload)
    start_session(response, store, user)
    return {"user": user, "message": "Registration successful"}


@app.post("/api/auth/login", response_model=schemas.AuthResponse)
def login(
    payload: schemas.LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    user = crud.authenticate(db, payload.email, payload.password)
    start_session(response, store, user)
    return {"user": user, "message": "Login successful"}


@app.post("/api/auth/logout", response_model=schemas.Message)
def logout(request: Request, response: Response, store: SessionStore = Depends(get_session_store)):
    token = session_token(request)
    if token:
        store.delete(token)
    clear_session_cookie(response)
    return {"message": "Logout successful"}


@app.get("/api/auth/me", response_model=schemas.CurrentUser)
def current_user(
    request: Request,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    token = session_token(request)
    session = store.get(token) if token else None
    if session is None:
        raise AuthenticationRequired("Not authenticated")
    # Fresh row so permission changes show up on the next call
    user = crud.get_user(db, session.user_id)
    if not user:
        store.delete(token)
        raise AuthenticationRequired("User not found", clear_session=True)
    return {"user": user}


# -------------------- Cart --------------------

@app.get("/api/cart", response_model=List[schemas.CartItemRead])
def get_cart(db: Session = Depends(get_db), session: SessionData = Depends(require_auth)):
    return crud.list_cart(db, session.user_id)


@app.get("/api/cart/summary", response_model=schemas.CartSummary)
def get_cart_summary(db: Session = Depends(get_db), session: SessionData = Depends(require_auth)):
    return crud.cart_summary(db, session.user_id)


@app.post("/api/cart/add", response_model=schemas.CartAddResult, status_code=201)
def add_to_cart(
    item: schemas.CartAdd,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    session: SessionData = Depends(require_auth),
):
    try:
        cart_item, created = crud.add_to_cart(db, session.user_id, item)
    except AuthenticationRequired:
        store.delete(session_token(request))
        raise
    if created:
        message = "Item added to cart successfully"
    else:
        response.status_code = 200
        message = "Cart updated successfully"
    return {"message": message, "cart_item_id": cart_item.id, "quantity": cart_item.quantity}


@app.put("/api/cart/{item_id}", response_model=schemas.CartItemResult)
def update_cart_item(
    payload: schemas.CartUpdate,
    item_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_auth),
):
    cart_item = crud.update_cart_item(db, session.user_id, item_id, payload.quantity)
    return {"message": "Cart item updated successfully", "quantity": cart_item.quantity}


@app.delete("/api/cart/{item_id}", response_model=schemas.Message)
def remove_cart_item(
    item_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    session: SessionData = Depends(require_auth),
):
    crud.remove_cart_item(db, session.user_id, item_id)
    return {"message": "Item removed from cart successfully"}


@app.delete("/api/cart", response_model=schemas.Message)
def clear_cart(db: Session = Depends(get_db), session: SessionData = Depends(require_auth)):
    crud.clear_cart(db, session.user_id)
    return {"message": "Cart cleared successfully"}


# -------------------- Admin --------------------

@app.get("/api/admin/users", response_model=List[schemas.UserRead])
def admin_users(db: Session = Depends(get_db), admin: SessionData = Depends(require_admin)):
    return crud.list_users(db)


@app.get("/api/admin/stats", response_model=schemas.AdminStats)
def admin_stats(db: Session = Depends(get_db), admin: SessionData = Depends(require_admin)):
    return crud.admin_stats(db)
