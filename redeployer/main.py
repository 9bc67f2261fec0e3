"""HTTP entry point for the redeployer webhook receiver."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uvicorn
from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from redeployer import __version__
from redeployer.rollout.trigger import RolloutTrigger
from redeployer.utils.config_loader import load_settings
from redeployer.utils.logging import configure_logging, get_logger
from redeployer.webhook.handler import WebhookHandler

if TYPE_CHECKING:
    from starlette.requests import Request

    from redeployer.models.config import Settings
    from redeployer.webhook.handler import VerifiedWebhookHook

# Configure logging on module load
configure_logging()
logger = get_logger("main")

SIGNATURE_HEADER = "x-hub-signature-256"
DELIVERY_HEADER = "x-github-delivery"
WEBHOOK_PATHS = ("/", "/github")


def create_app(
    settings: Settings | None = None,
    on_verified: VerifiedWebhookHook | None = None,
) -> Starlette:
    """Build the Starlette application.

    Args:
        settings: Process configuration. Loaded from the environment if omitted.
        on_verified: Hook for verified deliveries. Defaults to a RolloutTrigger
            when the rollout trigger is enabled.

    Returns:
        The ASGI application.
    """
    if settings is None:
        settings = load_settings()

    if on_verified is None and settings.enable_rollout_trigger:
        on_verified = RolloutTrigger(settings)

    handler = WebhookHandler(settings, on_verified)

    async def webhook_route(request: Request) -> Response:
        """Handle a webhook delivery on any of the webhook paths."""
        body = await request.body()
        delivery_id = request.headers.get(DELIVERY_HEADER)

        logger.debug(
            "Received webhook",
            extra={
                "path": request.url.path,
                "delivery_id": delivery_id,
                "headers": dict(request.headers),
                "body_bytes": len(body),
            },
        )

        delivery = await handler.handle(body, request.headers.get(SIGNATURE_HEADER), delivery_id)

        logger.info(
            "Request completed",
            extra={
                "path": request.url.path,
                "delivery_id": delivery_id,
                "status_code": delivery.status_code,
                "state": delivery.state.value,
                "duration_seconds": delivery.duration_seconds,
            },
        )
        # The body stays empty so failures are indistinguishable to the sender
        return Response(status_code=delivery.status_code)

    async def health_route(request: Request) -> JSONResponse:
        """Handle health check requests."""
        del request  # unused but required by Starlette routing
        return JSONResponse({"status": "healthy", "version": __version__})

    routes = [Route(path, webhook_route, methods=["POST"]) for path in WEBHOOK_PATHS]
    routes.append(Route("/health", health_route, methods=["GET"]))

    app = Starlette(routes=routes)
    app.state.settings = settings
    return app


def main() -> None:
    """Load configuration and serve the application with uvicorn."""
    settings = load_settings()
    configure_logging(settings.log_level)

    logger.info(
        "Starting redeployer",
        extra={"version": __version__, "host": settings.host, "port": settings.port},
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
