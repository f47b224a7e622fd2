from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from routes.events_route import router as events_router
from routes.prompt_route import router as prompt_router
from services.broker.prompt_broker import PromptBroker

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager that releases the prompt broker on shutdown:
      - any prompt still waiting for input is failed
      - every observer stream is closed so its connection can end
    """
    try:
        yield
    finally:
        broker = getattr(app.state, "broker", None)
        if broker is not None:
            broker.shutdown()


async def invalid_payload_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies the way prompt clients expect."""
    return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)


def create_app(broker: Optional[PromptBroker] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    The broker is attached to `app.state` immediately so the app can be
    driven in-process without running the lifespan.
    """
    app = FastAPI(title="User Prompt Server", lifespan=lifespan)
    app.state.broker = broker if broker is not None else PromptBroker()
    app.add_exception_handler(RequestValidationError, invalid_payload_handler)

    @app.get("/", include_in_schema=False)
    async def serve_index():
        return RedirectResponse("/vibeframe")

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting the prompt and observer state.
        """
        current = request.app.state.broker
        return {
            "ok": True,
            "prompt_active": current.active_request is not None,
            "observers": len(current.registry),
        }

    # Register application routers
    app.include_router(prompt_router)
    app.include_router(events_router)

    return app


app = create_app()
