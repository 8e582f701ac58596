"""FastAPI server for the TigerSwipe card deck"""

from __future__ import annotations

from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tigerswipe.api.routes.cards import router as cards_router
from tigerswipe.api.routes.health import router as health_router
from tigerswipe.config import ALLOWED_ORIGINS, APP_VERSION
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter, log_event
from tigerswipe.utils.redaction import redact

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="TigerSwipe API", version=APP_VERSION)

logger = get_logger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Validation error handler that does not echo validation internals back.
    """
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-TigerSwipe-App"],
)

app.include_router(health_router)
app.include_router(cards_router)

log_event("api.startup", service="tigerswipe", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "TigerSwipe API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "cards": "/api/cards",
            "apply": "/api/cards/{card_id}/apply",
        },
    }


def main() -> None:
    """Run the API with uvicorn (console entry point)."""
    import uvicorn

    from tigerswipe.config import API_HOST, API_PORT

    uvicorn.run("tigerswipe.api.app:app", host=API_HOST, port=API_PORT)
