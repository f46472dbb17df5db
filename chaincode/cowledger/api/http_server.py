"""
HTTP server implementation for the Cow Ledger.

This module exposes the ledger over a small JSON REST API:
- POST /v1/invoke               Run any transaction by name
- GET  /v1/records/{type}/{key} Raw record at a key
- GET  /v1/records/{type}       Every listable record of a type
- GET  /v1/health               Liveness and dispatcher statistics

Invariants:
    - Every endpoint goes through Ledger.invoke(); no handler is called directly
    - Failure responses carry the LedgerError code and details
    - Store failures surface as 500 via the error middleware

How to change safely:
    - Keep STATUS_BY_CODE in sync with the codes in errors.py
    - Version the API if breaking changes are needed
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from ..apply import LISTING_FUNCTIONS, Ledger, Response
from ..config import HttpConfig
from ..errors import LedgerError
from ..schema.keys import KeyType
from ..store.base import StoreError

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "NOT_FOUND": 404,
    "CORRUPT_RECORD": 422,
}


def create_http_app(
    ledger: Ledger,
    config: HttpConfig | None = None,
) -> web.Application:
    """Create an HTTP application for the ledger.

    Args:
        ledger: Ledger dispatcher
        config: HTTP server configuration

    Returns:
        aiohttp Application instance
    """
    config = config or HttpConfig()
    app = web.Application()

    app.router.add_post("/v1/invoke", lambda r: handle_invoke(r, ledger))
    app.router.add_get("/v1/records/{type}/{key}", lambda r: handle_get_record(r, ledger))
    app.router.add_get("/v1/records/{type}", lambda r: handle_list_records(r, ledger))
    app.router.add_get("/v1/health", lambda r: handle_health(r, ledger))

    @web.middleware
    async def cors_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
        if request.method == "OPTIONS":
            response = web.Response()
        else:
            try:
                response = await handler(request)
            except web.HTTPException as e:
                response = e

        origin = request.headers.get("Origin", "*")
        if "*" in config.cors_origins or origin in config.cors_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"

        return response

    app.middlewares.append(cors_middleware)

    @web.middleware
    async def error_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as e:
            logger.error(f"HTTP handler error: {e}", exc_info=True)
            return web.json_response(
                {"error": str(e), "error_code": "INTERNAL"},
                status=500,
            )

    app.middlewares.insert(0, error_middleware)

    return app


def bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(
        text=json.dumps({"error": message}),
        content_type="application/json",
    )


def respond(response: Response) -> web.Response:
    """Serialize a ledger Response with the status matching its error code."""
    if response.success:
        status = 200
    else:
        status = STATUS_BY_CODE.get(response.error_code or "", 400)
    return web.json_response(response.to_dict(), status=status)


async def handle_invoke(request: web.Request, ledger: Ledger) -> web.Response:
    """Handle POST /v1/invoke - Run a transaction."""
    try:
        body = await request.json()
    except ValueError:
        # JSONDecodeError and UnicodeDecodeError
        raise bad_request("Invalid JSON body")

    if not isinstance(body, dict):
        raise bad_request("Request body must be a JSON object")

    function = body.get("function")
    args = body.get("args", [])
    if not isinstance(function, str) or not function:
        raise bad_request("function is required")
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        raise bad_request("args must be a list of strings")

    return respond(ledger.invoke(function, args))


async def handle_get_record(request: web.Request, ledger: Ledger) -> web.Response:
    """Handle GET /v1/records/{type}/{key} - Point lookup."""
    type_token = request.match_info["type"]
    key = request.match_info["key"]

    return respond(ledger.invoke("query", [type_token, key]))


async def handle_list_records(request: web.Request, ledger: Ledger) -> web.Response:
    """Handle GET /v1/records/{type} - List a record type."""
    try:
        key_type = KeyType.from_token(request.match_info["type"])
    except LedgerError as e:
        return respond(Response.failure(e))

    return respond(ledger.invoke(LISTING_FUNCTIONS[key_type], []))


async def handle_health(request: web.Request, ledger: Ledger) -> web.Response:
    """Handle GET /v1/health - Health check."""
    result: dict[str, Any] = {"healthy": True, "stats": ledger.stats}
    try:
        ledger.store.get(KeyType.COW.make_key("0"))
    except StoreError as e:
        result["healthy"] = False
        result["error"] = str(e)

    status = 200 if result["healthy"] else 503
    return web.json_response(result, status=status)


async def run_http_server(
    ledger: Ledger,
    config: HttpConfig | None = None,
) -> None:
    """Run the HTTP server until cancelled.

    Args:
        ledger: Ledger dispatcher
        config: HTTP server configuration
    """
    config = config or HttpConfig()
    app = create_http_app(ledger, config)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, config.host, config.port)
    await site.start()

    logger.info(f"HTTP server running on http://{config.host}:{config.port}")

    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        await runner.cleanup()
