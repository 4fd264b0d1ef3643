import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Environment is loaded by Pydantic Settings (see campusride.core.settings).
from campusride.api import register_routes
from campusride.core.dependencies import get_chat_relay, get_connection_registry
from campusride.core.exceptions import register_exception_handlers
from campusride.core.logging import setup_logging
from campusride.core.settings import settings

# Initialize logging early so all modules inherit the handlers/level
setup_logging(settings.resolved_log_level)

app = FastAPI(title="Campus Ride API", debug=settings.debug)
register_exception_handlers(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)

logger = logging.getLogger(__name__)
logger.info("Campus Ride API initialized (chat relay at %s)", settings.ws_path)


@app.on_event("startup")
def _build_realtime_services() -> None:
    """Build the relay once at boot so threadpool dependencies share one registry."""
    relay = get_chat_relay()
    logger.info(
        "Chat relay ready (scope=%s, require_auth=%s)",
        relay.policy.broadcast_scope,
        relay.policy.require_auth,
    )


@app.on_event("shutdown")
async def _close_realtime_connections() -> None:
    """Close open chat sockets so clients reconnect to the next process."""
    registry = get_connection_registry()
    if len(registry):
        logger.info("Closing %d realtime connection(s)", len(registry))
    await registry.close_all()
