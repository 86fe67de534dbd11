from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from passlib.context import CryptContext

from auth import (
    TokenService,
    get_current_admin,
    get_current_user,
    get_password_context,
    get_token_service,
    hash_password,
    make_password_context,
    verify_password,
)
from config import Settings, configure_logging, load_settings
from database import Database, DuplicateError, NotFoundError, get_db
from schemas import (
    CartAddRequest,
    CartLine,
    CartResponse,
    CartView,
    Category,
    Health,
    Identity,
    LoginRequest,
    Message,
    Order,
    OrderCreate,
    Product,
    ProductCreate,
    ProductUpdate,
    RegisterRequest,
    Review,
    ReviewCreate,
    Role,
    TokenResponse,
    UserPublic,
    UserSummary,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")

INVALID_CREDENTIALS = "Invalid credentials"


# ----------------------------------------------------------------------------
# Product Endpoints
# ----------------------------------------------------------------------------

@router.get("/productos", response_model=List[Product])
def list_products(db: Database = Depends(get_db)):
    return db.list_products()


@router.get("/productos/{product_id}", response_model=Product)
def get_product(product_id: str, db: Database = Depends(get_db)):
    try:
        return db.get_product(product_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")


@router.post("/productos", response_model=Product, status_code=201)
def create_product(body: ProductCreate, admin: Identity = Depends(get_current_admin), db: Database = Depends(get_db)):
    try:
        product = db.add_product(body.model_dump())
    except DuplicateError:
        raise HTTPException(status_code=409, detail="Product id already exists")
    logger.info("product_created", product_id=product.id, admin_id=admin.id)
    return product


@router.put("/productos/{product_id}", response_model=Product)
def update_product(
    product_id: str,
    body: ProductUpdate,
    admin: Identity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    try:
        product = db.update_product(product_id, body.model_dump(exclude_unset=True))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info("product_updated", product_id=product_id, admin_id=admin.id)
    return product


@router.delete("/productos/{product_id}", response_model=Message)
def delete_product(product_id: str, admin: Identity = Depends(get_current_admin), db: Database = Depends(get_db)):
    removed = db.delete_product(product_id)
    logger.info("product_deleted", product_id=product_id, admin_id=admin.id, existed=removed)
    return Message(message="Product deleted")


# ----------------------------------------------------------------------------
# Reviews
# ----------------------------------------------------------------------------

@router.post("/productos/{product_id}/reviews", response_model=Review, status_code=201)
def add_review(
    product_id: str,
    body: ReviewCreate,
    current: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return db.add_review(product_id, current.id, body.rating, body.comment)


@router.get("/productos/{product_id}/reviews", response_model=List[Review])
def list_reviews(product_id: str, db: Database = Depends(get_db)):
    return db.list_reviews(product_id)


# ----------------------------------------------------------------------------
# Auth Endpoints
# ----------------------------------------------------------------------------

def _token_response(user, tokens: TokenService) -> TokenResponse:
    identity = Identity(id=user.id, email=user.email, role=user.role)
    return TokenResponse(
        access_token=tokens.issue(identity),
        user=UserSummary(id=user.id, name=user.name, email=user.email, role=user.role),
    )


@router.post("/auth/register", response_model=TokenResponse, status_code=201)
def register(
    body: RegisterRequest,
    db: Database = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    pwd_context: CryptContext = Depends(get_password_context),
):
    email = body.email.lower()
    if db.find_user_by_email(email):
        raise HTTPException(status_code=409, detail="Email already registered")
    password_hash = hash_password(pwd_context, body.password)
    try:
        user = db.add_user(email=email, password_hash=password_hash, name=body.name, address=body.address or "")
    except DuplicateError:
        # lost a race with a concurrent registration for the same email
        raise HTTPException(status_code=409, detail="Email already registered")
    logger.info("user_registered", user_id=user.id)
    return _token_response(user, tokens)


@router.post("/auth/login", response_model=TokenResponse)
def login(
    body: Optional[LoginRequest] = None,
    db: Database = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    pwd_context: CryptContext = Depends(get_password_context),
):
    body = body or LoginRequest()
    user = db.find_user_by_email(body.email.lower()) if body.email else None
    hashed = user.password_hash if user and body.password else None
    # same response whether a field is missing, the email is unknown or the password is wrong
    if not verify_password(pwd_context, body.password or "", hashed):
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)
    return _token_response(user, tokens)


@router.get("/auth/profile", response_model=UserPublic)
def profile(current: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    try:
        user = db.get_user(current.id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    return UserPublic(**user.model_dump(exclude={"password_hash"}))


# ----------------------------------------------------------------------------
# Cart
# ----------------------------------------------------------------------------

@router.post("/carrito/add", response_model=CartResponse)
def add_to_cart(body: CartAddRequest, current: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    cart = db.add_to_cart(current.id, body.product_id, body.quantity)
    return CartResponse(message="Added to cart", cart=cart)


@router.get("/carrito", response_model=CartView)
def view_cart(current: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    products = {p.id: p for p in db.list_products()}
    items = [
        CartLine(product_id=i.product_id, quantity=i.quantity, product=products.get(i.product_id))
        for i in db.get_cart(current.id)
    ]
    return CartView(items=items)


@router.delete("/carrito/{product_id}", response_model=CartResponse)
def remove_from_cart(product_id: str, current: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    try:
        cart = db.remove_from_cart(current.id, product_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Cart not found")
    return CartResponse(message="Item removed", cart=cart)


# ----------------------------------------------------------------------------
# Orders
# ----------------------------------------------------------------------------

@router.post("/pedidos", response_model=Order, status_code=201)
def create_order(body: OrderCreate, current: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    lines = None
    if body.items is not None:
        lines = [{"product_id": i.product_id, "quantity": i.quantity} for i in body.items]
    try:
        order = db.create_order(
            current.id,
            lines,
            address=body.address or "",
            payment_method=body.payment_method or "cash",
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="Order has no items")
    logger.info("order_created", order_id=order.id, user_id=current.id, total=order.total)
    return order


@router.get("/pedidos", response_model=List[Order])
def list_orders(current: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    if current.role is Role.ADMIN:
        return db.list_orders()
    return db.list_orders(user_id=current.id)


# ----------------------------------------------------------------------------
# Categories & Health
# ----------------------------------------------------------------------------

@router.get("/categorias", response_model=List[Category])
def list_categories(db: Database = Depends(get_db)):
    return db.list_categories()


@router.get("/health", response_model=Health)
def health():
    return Health(status="ok", time=datetime.now(timezone.utc))


# ----------------------------------------------------------------------------
# Seed Data and App Factory
# ----------------------------------------------------------------------------

def seed_data(db: Database, settings: Settings, pwd_context: CryptContext) -> None:
    db.seed_catalog()
    if db.find_user_by_email(settings.admin_email.lower()) is None:
        db.add_user(
            email=settings.admin_email.lower(),
            password_hash=hash_password(pwd_context, settings.seed_admin_password),
            name="Admin",
            role=Role.ADMIN,
        )
        logger.info("admin_seeded", email=settings.admin_email)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # drop "input" and "ctx" so submitted values (passwords included) are never echoed back
    errors = [{k: v for k, v in e.items() if k in ("type", "loc", "msg")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(errors)})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings)

    for name in settings.demo_defaults_in_use():
        logger.warning("demo_default_in_use", setting=name, hint=f"set {name} before deploying")

    app = FastAPI(title="Innova Store API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.state.settings = settings
    app.state.db = Database()
    app.state.pwd_context = make_password_context(settings.bcrypt_rounds)
    app.state.tokens = TokenService.from_settings(settings)
    seed_data(app.state.db, settings, app.state.pwd_context)

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    logger.info("server_starting", host=app.state.settings.host, port=app.state.settings.port)
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
