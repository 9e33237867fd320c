"""Storefront FastAPI application.

Web server that processes storefront commands synchronously via HTTP.
Every request runs inside the storefront domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from storefront.domain import storefront
from storefront.errors import ConflictError, InsufficientStockError, NotFoundError
from storefront.utils.logging import add_context, clear_context, get_logger

storefront.init()

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Grocery delivery storefront: catalogue, checkout, orders and delivery zones",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context for API requests."""
    if request.url.path.startswith("/api"):
        add_context(method=request.method, path=request.url.path)
        try:
            with storefront.domain_context():
                response = await call_next(request)
        finally:
            clear_context()
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
def error_body(exc: Exception) -> dict:
    messages = getattr(exc, "messages", None) or str(exc)
    if not isinstance(messages, dict):
        messages = {"_entity": [str(messages)]}
    return {"error": type(exc).__name__, "messages": messages}


def _responder(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.info(
            "Request rejected",
            path=request.url.path,
            status_code=status_code,
            error=type(exc).__name__,
        )
        return JSONResponse(status_code=status_code, content=error_body(exc))

    return handler


def register_error_handlers(application: FastAPI) -> None:
    """Map the storefront error taxonomy to HTTP status codes."""
    application.add_exception_handler(ValidationError, _responder(400))
    application.add_exception_handler(InsufficientStockError, _responder(400))
    application.add_exception_handler(ObjectNotFoundError, _responder(404))
    application.add_exception_handler(NotFoundError, _responder(404))
    application.add_exception_handler(InvalidOperationError, _responder(409))
    application.add_exception_handler(ConflictError, _responder(409))


register_error_handlers(app)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api import admin_router, order_router, product_router, zone_router  # noqa: E402

app.include_router(order_router)
app.include_router(product_router)
app.include_router(zone_router)
app.include_router(admin_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "storefront": {"name": storefront.name},
            },
        }
    )
