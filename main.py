import logging
import os
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from pydantic import EmailStr, ValidationError

from cart import CartError, CustomerInfo, materialize_order, parse_cart
from config import Settings, configure_logging
from database import DocumentStore, MongoStore, StoreError
from notifications import Notifier, build_notifier
from schemas import Contactmessage, PaymentMethod, Review
from uploads import StorageUnavailable, UploadError, UploadStore

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_uploads(request: Request) -> UploadStore:
    return request.app.state.uploads


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# ===================== Public Endpoints =====================
@router.get("/", response_class=PlainTextResponse)
def root():
    return "Server is working!"


@router.get("/test")
def test_database(store: DocumentStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    response = {"backend": "✅ Running"}
    response.update(store.describe())
    response["database_url"] = "✅ Set" if settings.database_url else "❌ Not Set"
    response["mail"] = "✅ Configured" if settings.mail_configured else "❌ Not Configured"
    response["upload_dir"] = settings.upload_dir
    return response


# ===================== Orders =====================
@router.post("/checkout")
def checkout(
    background_tasks: BackgroundTasks,
    name: str = Form(..., min_length=1),
    contact: str = Form(..., min_length=1),
    address: str = Form(..., min_length=1),
    payment_method: PaymentMethod = Form(..., alias="paymentMethod"),
    payment_reference: Optional[str] = Form(None, alias="paymentReference"),
    email: Optional[EmailStr] = Form(None),
    city: Optional[str] = Form(None),
    cart: Optional[str] = Form(None),
    screenshot: Optional[UploadFile] = File(None),
    store: DocumentStore = Depends(get_store),
    uploads: UploadStore = Depends(get_uploads),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        items = parse_cart(cart)
    except CartError as e:
        logger.warning("Checkout from %s rejected: %s", contact, e)
        raise HTTPException(status_code=400, detail=str(e))

    try:
        customer = CustomerInfo(
            name=name,
            contact=contact,
            email=email,
            address=address,
            city=city,
            payment_method=payment_method,
            payment_reference=payment_reference,
        )
    except ValidationError as e:
        logger.warning("Checkout from %s rejected: blank customer fields", contact)
        raise HTTPException(status_code=400, detail=jsonable_encoder(e.errors(include_url=False)))

    try:
        stored = uploads.save(screenshot)
    except UploadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageUnavailable:
        raise HTTPException(status_code=500, detail="Failed to save order")

    orders = materialize_order(customer, items, stored)
    try:
        ids = store.create_documents("order", orders)
    except StoreError:
        logger.exception("Error saving order %s", orders[0].order_number)
        uploads.remove(stored)
        raise HTTPException(status_code=500, detail="Failed to save order")

    for order, order_id in zip(orders, ids):
        doc = order.model_dump()
        doc["_id"] = order_id
        background_tasks.add_task(notifier.dispatch_order, doc)
        logger.info("Saved order %s (%d items, total %s)", order.order_number, len(order.items), order.total)

    first = orders[0]
    return {"message": "Order saved successfully", "_id": ids[0], "order_number": first.order_number, "total": first.total}


@router.get("/orders")
def list_orders(store: DocumentStore = Depends(get_store)):
    try:
        return store.get_recent_documents("order")
    except StoreError:
        logger.exception("Error fetching orders")
        raise HTTPException(status_code=500, detail="Failed to fetch orders")


@router.delete("/orders/{order_id}")
def delete_order(order_id: str, store: DocumentStore = Depends(get_store)):
    try:
        ok = store.delete_document("order", order_id)
    except StoreError:
        logger.exception("Error deleting order %s", order_id)
        raise HTTPException(status_code=500, detail="Failed to delete order")
    if not ok:
        raise HTTPException(404, "Order not found")
    logger.info("Deleted order %s", order_id)
    return {"deleted": True}


# ===================== Contact =====================
@router.post("/contact")
def submit_contact(
    payload: Contactmessage,
    background_tasks: BackgroundTasks,
    store: DocumentStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        message_id = store.create_document("contactmessage", payload)
    except StoreError:
        logger.exception("Error saving contact message from %s", payload.name)
        raise HTTPException(status_code=500, detail="Failed to send message.")
    background_tasks.add_task(notifier.dispatch_contact, payload.model_dump())
    return {"message": "Message received! Our team will contact you soon.", "_id": message_id}


# ===================== Reviews =====================
@router.post("/reviews")
def create_review(payload: Review, store: DocumentStore = Depends(get_store)):
    try:
        review_id = store.create_document("review", payload)
    except StoreError:
        logger.exception("Error saving review from %s", payload.name)
        raise HTTPException(status_code=500, detail="Failed to save review")
    return {"message": "Review submitted", "_id": review_id}


@router.get("/reviews")
def list_reviews(store: DocumentStore = Depends(get_store)):
    try:
        return store.get_recent_documents("review")
    except StoreError:
        logger.exception("Error fetching reviews")
        raise HTTPException(status_code=500, detail="Failed to fetch reviews")


# ===================== Static Pages =====================
def _static_page(settings: Settings, filename: str) -> FileResponse:
    path = os.path.join(settings.static_dir, filename)
    if not os.path.isfile(path):
        raise HTTPException(404, "Page not found")
    return FileResponse(path)


@router.get("/admin.html")
def admin_page(settings: Settings = Depends(get_settings)):
    return _static_page(settings, "admin.html")


@router.get("/terms")
def terms_page(settings: Settings = Depends(get_settings)):
    return _static_page(settings, "terms.html")


@router.get("/uploads/{filename}")
def uploaded_file(filename: str, uploads: UploadStore = Depends(get_uploads)):
    if not uploads.exists(filename):
        raise HTTPException(404, "File not found")
    return FileResponse(uploads.path_for(filename))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    notifier: Optional[Notifier] = None,
    uploads: Optional[UploadStore] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="Storefront Order Intake API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store or MongoStore(settings.database_url, settings.database_name, settings.database_timeout_ms)
    app.state.notifier = notifier or build_notifier(settings)
    app.state.uploads = uploads or UploadStore(settings.upload_dir)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
