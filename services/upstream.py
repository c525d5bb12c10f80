"""HTTP dispatch to the allowlisted upstream origin."""

import errno
import json
import math
from typing import Any

import httpx

from core.protocols import RequestLogger
from core.request_types import NormalizedResult, OutboundEnvelope

BAD_GATEWAY = 502
INTERNAL_SERVER_ERROR = 500


class UpstreamClient:
    """Issue exactly one outbound call per envelope and normalize the outcome."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        logger: RequestLogger,
        allowed_origins: tuple[str, ...],
    ) -> None:
        self._client = client
        self._logger = logger
        self._allowed_origins = tuple(allowed_origins)

    async def dispatch(self, envelope: OutboundEnvelope) -> NormalizedResult:
        """Forward the envelope; any HTTP status counts as a response."""
        try:
            response = await self._client.request(
                envelope.method,
                envelope.url,
                headers=envelope.headers,
                json=self._outbound_body(envelope),
            )
        except httpx.HTTPStatusError as e:
            return self._failure(envelope, e, e.response)
        except httpx.TimeoutException as e:
            return self._failure(envelope, e, None, timed_out=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._failure(envelope, e, None)
        except Exception as e:  # e.g. UnicodeEncodeError while encoding headers
            return self._failure(envelope, e, None)

        self._logger.log_response(envelope.method, envelope.url, response.status_code)
        return NormalizedResult(
            ok=True,
            status_code=response.status_code,
            payload=_response_payload(response),
        )

    def _outbound_body(self, envelope: OutboundEnvelope) -> dict[str, Any] | None:
        """POST always carries JSON; GET only when fields remain after stripping."""
        if envelope.method == "POST" or envelope.body:
            return envelope.body
        return None

    def _failure(
        self,
        envelope: OutboundEnvelope,
        error: Exception,
        response: httpx.Response | None,
        *,
        timed_out: bool = False,
    ) -> NormalizedResult:
        if response is not None:
            status_code = response.status_code
            error_payload = _response_payload(response)
        else:
            if timed_out or _is_connection_refused(error):
                status_code = BAD_GATEWAY
            else:
                status_code = INTERNAL_SERVER_ERROR
            error_payload = {
                "message": str(error) or type(error).__name__,
                "code": _error_code(error),
                "origin": envelope.target.origin,
            }

        self._logger.log_error(envelope.target.origin, status_code, str(error) or type(error).__name__)
        return NormalizedResult(
            ok=False,
            status_code=status_code,
            payload={
                "status": status_code,
                "error": error_payload,
                "debug": {
                    "proxiedUrl": envelope.url,
                    "allowedDomains": list(self._allowed_origins),
                },
            },
        )


def _response_payload(response: httpx.Response) -> Any:
    """Parsed JSON body when the upstream sent JSON, else the raw text."""
    if not response.content:
        return None
    try:
        return json.loads(
            response.content,
            parse_constant=_reject_constant,
            parse_float=_finite_float,
        )
    except ValueError:
        return response.text


def _reject_constant(name: str) -> Any:
    """NaN and Infinity cannot be re-serialized as strict JSON."""
    raise ValueError(f"non-standard JSON constant: {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"out of range float: {text}")
    return value


def _cause_chain(error: BaseException):
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _is_connection_refused(error: BaseException) -> bool:
    for exc in _cause_chain(error):
        if isinstance(exc, ConnectionRefusedError):
            return True
        if isinstance(exc, OSError) and exc.errno == errno.ECONNREFUSED:
            return True
        if "connection refused" in str(exc).lower():
            return True
    return False


def _error_code(error: BaseException) -> str:
    """errno name (e.g. ECONNREFUSED) when known, else the exception type."""
    for exc in _cause_chain(error):
        if isinstance(exc, OSError) and exc.errno in errno.errorcode:
            return errno.errorcode[exc.errno]
    if _is_connection_refused(error):
        return "ECONNREFUSED"
    return type(error).__name__
