"""
HTTP surface of the relay.

Endpoints:
1. OPTIONS /rastreamento - CORS preflight for the frontend
2. POST /rastreamento - Relay tracking codes to Correios
3. GET /health - Liveness and token status
"""

import uuid
from typing import Optional
import orjson
from aiohttp import web
from loguru import logger
from pydantic import ValidationError

from correios_relay import __version__
from correios_relay.config import RelayConfig
from correios_relay.errors import (
    DecodeError,
    EncodeError,
    RelayError,
    SERVER_ERROR_MESSAGE,
)
from correios_relay.models import TrackingRequest
from correios_relay.tracking import CorreiosAPI, TokenManager


TRACKING_PATH = "/rastreamento"

CONFIG_KEY = web.AppKey("config", RelayConfig)
CARRIER_KEY = web.AppKey("carrier", CorreiosAPI)
TOKEN_MANAGER_KEY = web.AppKey("token_manager", TokenManager)


def cors_headers(origin: str) -> dict[str, str]:
    """Static CORS headers for the configured frontend origin."""
    return {
        "access-control-allow-origin": origin,
        "access-control-allow-methods": "POST, OPTIONS",
        "access-control-allow-headers": "Authorization, Accept, Content-Type",
    }


def _response_headers(request: web.Request) -> dict[str, str]:
    headers = cors_headers(request.app[CONFIG_KEY].frontend_origin)
    headers["vary"] = "Origin"
    return headers


def _error_response(request: web.Request, status: int, message: str) -> web.Response:
    return web.Response(
        text=message,
        status=status,
        content_type="text/plain",
        headers=_response_headers(request),
    )


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Log every relay error with its cause and map it to a client response."""
    with logger.contextualize(request_id=uuid.uuid4().hex[:8]):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except RelayError as e:
            logger.error(f"{request.method} {request.path} failed with {type(e).__name__}: {e}")
            return _error_response(request, e.status, e.client_message)
        except Exception as e:
            logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
            return _error_response(request, 500, SERVER_ERROR_MESSAGE)


async def handle_preflight(request: web.Request) -> web.Response:
    """Answer the CORS preflight with no body."""
    return web.Response(
        status=200,
        headers=cors_headers(request.app[CONFIG_KEY].frontend_origin),
    )


async def handle_tracking_request(request: web.Request) -> web.Response:
    """
    Relay tracking codes to Correios and return the decoded objects.

    Request body: {"objetos": ["AA123456789BR", ...]}
    """
    raw = await request.read()
    if not raw.strip():
        raise DecodeError("empty request body")

    try:
        tracking_request = TrackingRequest.model_validate(orjson.loads(raw))
    except orjson.JSONDecodeError as e:
        raise DecodeError("could not decode json", cause=e) from e
    except ValidationError as e:
        raise DecodeError("invalid tracking request", cause=e) from e

    codes = tracking_request.objetos
    logger.info(f"Relaying {len(codes)} tracking code(s)")

    credential = await request.app[TOKEN_MANAGER_KEY].ensure_valid_token()
    objects = await request.app[CARRIER_KEY].track(codes, credential)

    try:
        body = orjson.dumps(objects)
    except TypeError as e:
        raise EncodeError("could not encode json", cause=e) from e

    return web.Response(
        body=body,
        status=200,
        content_type="application/json",
        headers=_response_headers(request),
    )


async def handle_health(request: web.Request) -> web.Response:
    """Report version and whether a valid token is cached."""
    return web.json_response(
        {
            "status": "ok",
            "version": __version__,
            "token_valid": request.app[TOKEN_MANAGER_KEY].is_valid(),
        },
        dumps=lambda obj: orjson.dumps(obj).decode(),
    )


async def _close_carrier(app: web.Application):
    await app[CARRIER_KEY].close()


def create_app(
    config: RelayConfig,
    carrier: Optional[CorreiosAPI] = None,
    token_manager: Optional[TokenManager] = None,
) -> web.Application:
    """
    Create and configure the relay application.

    Args:
        config: Relay configuration
        carrier: Correios client (created from config if omitted)
        token_manager: Credential cache (created around the carrier if omitted)
    """
    carrier = carrier or CorreiosAPI(config)
    token_manager = token_manager or TokenManager(carrier)

    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app[CARRIER_KEY] = carrier
    app[TOKEN_MANAGER_KEY] = token_manager

    app.router.add_route("OPTIONS", TRACKING_PATH, handle_preflight)
    app.router.add_post(TRACKING_PATH, handle_tracking_request)
    app.router.add_get("/health", handle_health)

    app.on_cleanup.append(_close_carrier)

    return app
