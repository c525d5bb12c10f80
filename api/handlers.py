"""FastAPI route handlers."""

import json
from json import JSONDecodeError
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core.protocols import RequestLogger
from core.request_types import InboundRequest, Method, NormalizedResult, Rejection

# Statuses that must not carry a response body
BODILESS_STATUSES = (204, 304)


async def _parse_json_body(
    request: Request,
    max_body_size: int,
    logger: RequestLogger,
) -> dict[str, Any] | JSONResponse:
    """Parse request body as a JSON object, return it or an error response."""
    raw_body = await request.body()
    if len(raw_body) > max_body_size:
        return JSONResponse({"status": 413, "error": "Request body too large"}, status_code=413)

    if not raw_body.strip():
        return {}

    text_body = raw_body.decode("utf-8", errors="replace")
    try:
        body = json.loads(text_body)
    except (JSONDecodeError, ValueError) as e:
        logger.log_incoming(request.method, request.url.path, dict(request.headers), text_body)
        return JSONResponse({"status": 400, "error": f"Invalid JSON: {e}"}, status_code=400)

    if not isinstance(body, dict):
        logger.log_incoming(request.method, request.url.path, dict(request.headers), body)
        return JSONResponse(
            {"status": 400, "error": "Request body must be a JSON object"},
            status_code=400,
        )
    return body


def emit(result: NormalizedResult | Rejection) -> Response:
    """Write the status code and JSON payload back to the caller."""
    if result.status_code < 200 or result.status_code in BODILESS_STATUSES:
        return Response(status_code=result.status_code)
    return JSONResponse(content=result.payload, status_code=result.status_code)


async def handle_proxy(
    request: Request,
    method: Method,
    max_body_size: int,
    logger: RequestLogger,
) -> Response:
    """Handle the single proxy route for GET and POST."""
    body: dict[str, Any] = {}
    if method == "POST":
        parsed = await _parse_json_body(request, max_body_size, logger)
        if isinstance(parsed, JSONResponse):
            return parsed
        body = parsed

    headers = dict(request.headers)
    logger.log_incoming(request.method, request.url.path, headers, body)
    inbound = InboundRequest(
        method=method,
        query_url=request.query_params.get("url"),
        headers=headers,
        body=body,
    )

    prepared = request.app.state.forwarding_service.prepare(inbound)
    if isinstance(prepared, Rejection):
        return emit(prepared)

    result = await request.app.state.upstream_client.dispatch(prepared)
    return emit(result)
