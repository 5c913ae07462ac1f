from fastapi import FastAPI, Depends, HTTPException, UploadFile, File, Query, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
from typing import Optional, List
import logging
import os
import shutil
import tempfile

from inventory_api import __version__
from inventory_api.database import get_db, settings, init_db
from inventory_api.importers import import_csv, export_csv
from inventory_api.schemas import (
    ProductCreate, ProductUpdate, ProductResponse, InventoryLogResponse, ImportSummary
)
from inventory_api import services
from inventory_api.services import InventoryError, ProductValidationError
from inventory_api.store import SqlProductStore

LOGGER = logging.getLogger(__name__)

init_db()

app = FastAPI(title="Inventory API", version=__version__)

# Configure CORS origins:
# - Defaults cover the common local dev servers.
# - CORS_ALLOW_ORIGINS can override the list (comma separated).
# - CORS_EXTRA_ORIGINS appends values without losing the defaults.
DEFAULT_CORS_ORIGINS: List[str] = [
    "http://localhost:3000",
    "http://localhost:5173",
]


def _split_origins(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part and part.strip()]


def _dedupe(origins: List[str]) -> List[str]:
    seen = set()
    deduped: List[str] = []
    for origin in origins:
        if origin and origin not in seen:
            deduped.append(origin)
            seen.add(origin)
    return deduped


def _get_cors_allow_origins() -> List[str]:
    configured = _split_origins(os.getenv("CORS_ALLOW_ORIGINS", ""))
    extras = _split_origins(os.getenv("CORS_EXTRA_ORIGINS", ""))

    origins = configured or list(DEFAULT_CORS_ORIGINS)
    if extras:
        origins.extend(extras)

    return _dedupe(origins)


app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_allow_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _format_validation_errors(errors) -> List[dict]:
    formatted = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field = ".".join(location) or "body"
        if error.get("type") == "missing":
            message = f"{field.capitalize()} is required"
        else:
            message = str(error.get("msg", "Invalid value")).replace("Value error, ", "", 1)
        formatted.append({"field": field, "message": message})
    return formatted


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"errors": _format_validation_errors(exc.errors())})


@app.exception_handler(ProductValidationError)
async def product_validation_handler(request: Request, exc: ProductValidationError):
    return JSONResponse(status_code=400, content={"errors": exc.errors})


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def get_store(db: Session = Depends(get_db)) -> SqlProductStore:
    return SqlProductStore(db)


def resolve_actor(x_changed_by: Optional[str] = Header(None)) -> str:
    """Actor recorded on stock logs: the X-Changed-By header or the configured default."""
    if x_changed_by and x_changed_by.strip():
        return x_changed_by.strip()
    return settings.default_actor


@app.get("/")
def root():
    return {"message": "Inventory API"}


@app.get("/api/categories", response_model=List[str])
def get_categories(store: SqlProductStore = Depends(get_store)):
    """Distinct product categories, sorted"""
    return store.categories()


@app.get("/api/products", response_model=List[ProductResponse])
def get_products(
    category: Optional[str] = Query(None),
    store: SqlProductStore = Depends(get_store),
):
    """List products, optionally restricted to one category"""
    return services.list_products(store, category)


@app.get("/api/products/search", response_model=List[ProductResponse])
def search_products(
    name: Optional[str] = Query(None),
    store: SqlProductStore = Depends(get_store),
):
    """Case-insensitive substring search on product name"""
    return services.search_products(store, name)


@app.post("/api/products/import", response_model=ImportSummary)
def import_products(
    file: Optional[UploadFile] = File(None),
    store: SqlProductStore = Depends(get_store),
):
    """Import products from a CSV file; existing names are reported, never overwritten"""
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    os.makedirs(settings.upload_dir, exist_ok=True)
    fd, file_path = tempfile.mkstemp(suffix=".csv", dir=settings.upload_dir)
    try:
        with os.fdopen(fd, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)

        return import_csv(store, file_path, atomic=settings.import_atomic)
    finally:
        if os.path.exists(file_path):
            os.remove(file_path)


@app.get("/api/products/export")
def export_products(store: SqlProductStore = Depends(get_store)):
    """Download every product as CSV"""
    content = export_csv(services.list_products(store))
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="products.csv"'},
    )


@app.post("/api/products", response_model=ProductResponse, status_code=201)
def create_product(product: ProductCreate, store: SqlProductStore = Depends(get_store)):
    """Create a single product"""
    return services.create_product(store, product, strict_status=settings.strict_status)


@app.get("/api/products/{id}", response_model=ProductResponse)
def get_product(id: int, store: SqlProductStore = Depends(get_store)):
    """Get a single product by ID"""
    return services.get_product(store, id)


@app.put("/api/products/{id}", response_model=ProductResponse)
def update_product(
    id: int,
    product: ProductUpdate,
    actor: str = Depends(resolve_actor),
    store: SqlProductStore = Depends(get_store),
):
    """Replace a product; stock changes are written to its history"""
    return services.update_product(
        store,
        id,
        product,
        actor=actor,
        strict_status=settings.strict_status,
    )


@app.get("/api/products/{id}/history", response_model=List[InventoryLogResponse])
def get_product_history(id: int, store: SqlProductStore = Depends(get_store)):
    """Stock change log for a product, newest first"""
    return services.product_history(store, id)
