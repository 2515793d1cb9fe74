import logging
from typing import Dict, List, Optional, Union

from fastapi import APIRouter, Depends, FastAPI, File, Header, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from pymongo.database import Database
from pymongo.errors import PyMongoError

import auth
import cart
import catalog
import orders
import payments
import uploads
from config import Settings, configure_logging
from database import ensure_indexes, get_database, seed_counters, serialize_doc
from errors import PersistenceError, StorefrontError
from schemas import Address, OrderStatus, PaymentDetails

logger = logging.getLogger(__name__)


class AppContext:
    """Process-wide collaborators, built once in create_app."""

    def __init__(self, settings: Settings, db: Database, gateway, upload_dir: str):
        self.settings = settings
        self.db = db
        self.gateway = gateway
        self.upload_dir = upload_dir


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def get_current_user_id(
    ctx: AppContext = Depends(get_ctx),
    auth_token: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> str:
    token = auth_token
    if not token and authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer":
            token = value.strip()
    return auth.authenticate(ctx.settings, token)


# --------------------- Models ---------------------

class SignupRequest(BaseModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    image: str
    category: str
    new_price: float = Field(..., ge=0)
    old_price: float = Field(..., ge=0)
    available: bool = True


class ProductRemove(BaseModel):
    id: int
    name: Optional[str] = None


class CartRequest(BaseModel):
    itemId: Union[int, str]

    @field_validator("itemId")
    @classmethod
    def plain_key(cls, v):
        v = str(v).strip()
        # becomes part of a dotted update path
        if not v or not v.replace("-", "").replace("_", "").isalnum():
            raise ValueError("itemId must be alphanumeric")
        return v


class PaymentOrderRequest(BaseModel):
    amount: float = Field(..., gt=0)
    currency: str = "INR"
    receipt: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class OrderItemRequest(BaseModel):
    productId: int = Field(..., validation_alias=AliasChoices("productId", "id"))
    quantity: int = Field(1, ge=1)


class OrderCreate(BaseModel):
    address: Address
    products: List[OrderItemRequest] = Field(..., min_length=1)
    totalAmount: float = Field(..., ge=0)
    paymentDetails: Optional[PaymentDetails] = None


class StatusUpdate(BaseModel):
    status: OrderStatus


# --------------------- Routes ---------------------

router = APIRouter()
orders_router = APIRouter(prefix="/orders")


@router.get("/")
def root():
    return {"message": "Storefront API is running"}


@router.get("/test")
def test_database(ctx: AppContext = Depends(get_ctx)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": ctx.settings.database_name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = ctx.db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# Identity
@router.post("/signup")
def signup(req: SignupRequest, ctx: AppContext = Depends(get_ctx)):
    token = auth.signup(ctx.db, ctx.settings, req.username, req.email, req.password)
    return {"success": True, "token": token}


@router.post("/login")
def login(req: LoginRequest, ctx: AppContext = Depends(get_ctx)):
    token = auth.login(ctx.db, ctx.settings, req.email, req.password)
    return {"success": True, "token": token}


# Catalog
@router.get("/allproducts")
def all_products(ctx: AppContext = Depends(get_ctx)) -> List[dict]:
    return [serialize_doc(p) for p in catalog.list_all(ctx.db)]


@router.get("/newcollections")
def new_collections(ctx: AppContext = Depends(get_ctx)) -> List[dict]:
    return [serialize_doc(p) for p in catalog.list_newest(ctx.db)]


@router.get("/popularproducts")
def popular_products(ctx: AppContext = Depends(get_ctx)) -> List[dict]:
    return [serialize_doc(p) for p in catalog.list_popular(ctx.db)]


@router.post("/addproduct")
def add_product(body: ProductCreate, ctx: AppContext = Depends(get_ctx)):
    product = catalog.add_product(ctx.db, **body.model_dump())
    return {"success": True, "id": product.id, "name": product.name}


@router.post("/removeproduct")
def remove_product(body: ProductRemove, ctx: AppContext = Depends(get_ctx)):
    name = catalog.remove_product(ctx.db, body.id)
    return {"success": True, "name": name or body.name}


# Uploads
@router.post("/upload")
def upload_image(request: Request, product: Optional[UploadFile] = File(None),
                 ctx: AppContext = Depends(get_ctx)):
    filename = uploads.store_upload(ctx.upload_dir, product)
    base = ctx.settings.public_base_url or str(request.base_url)
    return {"success": True, "image_url": f"{base.rstrip('/')}/images/{filename}"}


# Cart
@router.post("/addtocart")
def add_to_cart(body: CartRequest, user_id: str = Depends(get_current_user_id),
                ctx: AppContext = Depends(get_ctx)):
    cart.add_to_cart(ctx.db, user_id, body.itemId)
    return {"success": True, "message": "Added"}


@router.post("/removefromcart")
def remove_from_cart(body: CartRequest, user_id: str = Depends(get_current_user_id),
                     ctx: AppContext = Depends(get_ctx)):
    cart.remove_from_cart(ctx.db, user_id, body.itemId)
    return {"success": True, "message": "Removed"}


@router.post("/getcart")
def get_cart(user_id: str = Depends(get_current_user_id),
             ctx: AppContext = Depends(get_ctx)) -> Dict[str, int]:
    return cart.get_cart(ctx.db, user_id)


# Payments
@router.post("/create_order")
def create_payment_order(req: PaymentOrderRequest, ctx: AppContext = Depends(get_ctx)):
    return ctx.gateway.create_order(req.amount, req.currency, req.receipt)


@router.post("/verify_payment")
def verify_payment(req: VerifyPaymentRequest, ctx: AppContext = Depends(get_ctx)):
    verified = payments.verify_payment(ctx.settings.razorpay_secret, req.razorpay_order_id,
                                       req.razorpay_payment_id, req.razorpay_signature)
    if not verified:
        logger.warning("Signature mismatch for gateway order %s", req.razorpay_order_id)
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid signature"})
    updated = orders.mark_paid(ctx.db, req.razorpay_order_id)
    logger.info("Payment verified for gateway order %s (%d orders completed)", req.razorpay_order_id, updated)
    return {"success": True, "message": "Payment verified successfully"}


# Orders
@orders_router.post("/create_order")
def create_order(body: OrderCreate, user_id: str = Depends(get_current_user_id),
                 ctx: AppContext = Depends(get_ctx)):
    order = orders.create_order(
        ctx.db,
        ctx.settings.razorpay_secret,
        user_id,
        body.address,
        [(item.productId, item.quantity) for item in body.products],
        body.totalAmount,
        body.paymentDetails,
    )
    return {"success": True, "order": order.model_dump(mode="json")}


@orders_router.get("/all")
def all_orders(ctx: AppContext = Depends(get_ctx)) -> List[dict]:
    return [serialize_doc(o) for o in orders.list_orders(ctx.db)]


@orders_router.get("/mine")
def my_orders(user_id: str = Depends(get_current_user_id),
              ctx: AppContext = Depends(get_ctx)) -> List[dict]:
    return [serialize_doc(o) for o in orders.orders_for_user(ctx.db, user_id)]


@orders_router.put("/{order_id}/status")
def update_order_status(order_id: str, body: StatusUpdate, ctx: AppContext = Depends(get_ctx)):
    return serialize_doc(orders.update_order_status(ctx.db, order_id, body.status))


# --------------------- Errors ---------------------

def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "errors": exc.message})


def persistence_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    err = PersistenceError("Database unavailable")
    return JSONResponse(status_code=err.status_code, content={"success": False, "errors": err.message})


def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
    return JSONResponse(status_code=422, content={"success": False, "errors": errors})


# --------------------- App ---------------------

def prepare_database(db: Database, strict: bool) -> None:
    if strict:
        db.client.admin.command("ping")
    # counters first: a failed index build must not leave them at zero
    for step in (seed_counters, ensure_indexes):
        try:
            step(db)
        except PyMongoError:
            if strict:
                raise
            logger.exception("Database setup step %s failed; continuing", step.__name__)


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None,
               gateway=None) -> FastAPI:
    settings = settings or Settings.from_env()
    if db is None:
        db = get_database(settings.database_url, settings.database_name)
    if gateway is None:
        gateway = payments.RazorpayGateway(settings.razorpay_key, settings.razorpay_secret,
                                           settings.razorpay_api_url, settings.gateway_timeout)
    upload_dir = uploads.ensure_upload_dir(settings.upload_dir)
    prepare_database(db, settings.database_strict)

    app = FastAPI(title="Storefront API", version="1.0.0")
    app.state.ctx = AppContext(settings, db, gateway, upload_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(PyMongoError, persistence_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(router)
    app.include_router(orders_router)
    app.mount("/images", StaticFiles(directory=upload_dir), name="images")
    logger.info("Storefront API ready (database=%s, uploads=%s)", settings.database_name, upload_dir)
    return app


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
