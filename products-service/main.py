import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import (
    DEFAULT_PAGE_SIZE,
    LOG_LEVEL,
    LOG_SINK,
    PORT,
    REQUEST_TIMEOUT_SECONDS,
    SERVICE_NAME,
)
from database import SessionLocal, engine, init_db
from errors import OperationTimeout, ProductServiceError
from schemas import (
    ErrorResponse,
    ProductCreate,
    ProductPageResponse,
    ProductResponse,
    ProductUpdate,
)
from services import ProductService

# Config logging JSON (niveaux INFO, WARNING, ERROR)
logger.remove()
logger.add(
    sink=LOG_SINK,
    format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message} | {extra}",
    level=LOG_LEVEL,
    serialize=True,
    rotation="1 day",
)

# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "endpoint"]
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total HTTP errors",
    ["service", "endpoint", "error_type"]
)

HTTP_ERROR_TYPES = {
    404: "not_found",
    405: "method_not_allowed",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(engine)
    logger.info(f"{SERVICE_NAME} schema ready")
    yield


app = FastAPI(title="Products Service", lifespan=lifespan)


def get_product_service() -> ProductService:
    return ProductService(SessionLocal)


def _endpoint(request: Request) -> str:
    # Chemin de la route (/products/{product_id}) plutôt que l'URL concrète
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


async def call_service(func, *args):
    """Exécute un appel (bloquant) du service sous la deadline de la requête."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args), timeout=REQUEST_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError as exc:
        raise OperationTimeout(
            f"Request exceeded its {REQUEST_TIMEOUT_SECONDS}s deadline"
        ) from exc


def error_response(status_code: int, error_type: str, message: str, fields=None) -> JSONResponse:
    body = ErrorResponse(
        status=status_code, error_type=error_type, message=message, invalid_fields=fields
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


# Middleware pour logger les requests avec correlation ID
@app.middleware("http")
async def log_requests(request: Request, call_next):
    # Generate or propagate correlation ID (trace-id)
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    start_time = time.time()

    # Bind trace_id to logger context
    with logger.contextualize(trace_id=trace_id, service=SERVICE_NAME):
        logger.info(f"Request: {request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception as exc:
            # Erreur non prévue : réponse 500 produite ici pour garder trace-id et métriques
            response = internal_error_response(request, exc)

        latency = time.time() - start_time
        endpoint = _endpoint(request)

        REQUEST_COUNT.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=endpoint
        ).observe(latency)

        logger.info(f"Response status: {response.status_code} ({latency:.3f}s)")

        # Add trace_id to response headers for tracing
        response.headers["X-Trace-ID"] = trace_id
        return response


# Traduction des erreurs en réponses HTTP, enregistrée au niveau de l'application
@app.exception_handler(ProductServiceError)
async def product_service_error_handler(request: Request, exc: ProductServiceError):
    ERROR_COUNT.labels(
        service=SERVICE_NAME, endpoint=_endpoint(request), error_type=exc.error_type
    ).inc()
    if exc.status_code >= 500:
        logger.opt(exception=exc).error(f"{exc.error_type}: {exc.message}")
        message = "Request timed out" if isinstance(exc, OperationTimeout) else "Internal server error"
        return error_response(exc.status_code, exc.error_type, message)

    logger.warning(f"{exc.error_type}: {exc.message}")
    return error_response(
        exc.status_code, exc.error_type, exc.message, getattr(exc, "fields", None) or None
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if error.get("type") == "json_invalid":
            # loc contient la position dans le corps, pas un nom de champ
            field = "body"
        else:
            field = ".".join(loc[1:]) or (loc[0] if loc else "request")
        if field not in fields:
            fields.append(field)
    logger.warning(f"Invalid request on {request.url.path}: {fields}")
    ERROR_COUNT.labels(
        service=SERVICE_NAME, endpoint=_endpoint(request), error_type="validation_error"
    ).inc()
    return error_response(
        status.HTTP_400_BAD_REQUEST, "validation_error", "Invalid request", fields
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error_type = HTTP_ERROR_TYPES.get(exc.status_code, "http_error")
    ERROR_COUNT.labels(
        service=SERVICE_NAME, endpoint=_endpoint(request), error_type=error_type
    ).inc()
    return error_response(exc.status_code, error_type, str(exc.detail))


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    ERROR_COUNT.labels(
        service=SERVICE_NAME, endpoint=_endpoint(request), error_type="internal_error"
    ).inc()
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error"
    )


@app.get("/metrics")
async def metrics():
    """Endpoint /metrics compatible Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


# must be before {product_id} route
@app.get("/products/categories", response_model=List[str])
async def list_categories(service: ProductService = Depends(get_product_service)):
    logger.info("Fetching distinct categories")
    return await call_service(service.list_distinct_categories)


@app.get("/products", response_model=ProductPageResponse)
async def list_products(
    category: str = Query(...),
    page: int = Query(0),
    size: int = Query(DEFAULT_PAGE_SIZE),
    service: ProductService = Depends(get_product_service),
):
    logger.info(f"Listing products of category {category!r} (page={page}, size={size})")
    result = await call_service(service.list_by_category, category, page, size)
    return ProductPageResponse(
        items=[ProductResponse.model_validate(p) for p in result.items],
        total_pages=result.total_pages,
        total_elements=result.total_elements,
        page=result.page,
        size=result.size,
    )


@app.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, service: ProductService = Depends(get_product_service)):
    logger.info(f"Fetching product {product_id}")
    product = await call_service(service.get_by_id, product_id)
    return ProductResponse.model_validate(product)


@app.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(product: ProductCreate, service: ProductService = Depends(get_product_service)):
    logger.info(f"Creating product: {product.name}")
    created = await call_service(service.create, product.category, product.name)
    return ProductResponse.model_validate(created)


@app.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product: ProductUpdate,
    service: ProductService = Depends(get_product_service),
):
    logger.info(f"Updating product {product_id}")
    updated = await call_service(service.update, product_id, product.category, product.name)
    return ProductResponse.model_validate(updated)


@app.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: int, service: ProductService = Depends(get_product_service)):
    logger.info(f"Deleting product {product_id}")
    await call_service(service.delete_by_id, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


if __name__ == "__main__":
    logger.info(f"Starting Products Service on port {PORT}")
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
