"""Request translation - resolves the target URL and the outbound body."""

import re
from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit

from core.request_types import (
    InboundRequest,
    Method,
    OutboundEnvelope,
    Rejection,
    TargetDescriptor,
)

URL_FIELD = "url"
QUERY_STRING_FIELD = "queryString"
RESERVED_FIELDS = (URL_FIELD, QUERY_STRING_FIELD)

DEFAULT_PORTS = {"http": 80, "https": 443}

_REPEATED_SLASHES = re.compile(r"/{2,}")


def parse_target(raw: str) -> TargetDescriptor | None:
    """Decode and parse a raw target indicator, or None if it is not an absolute URL."""
    text = unquote(raw).strip()
    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError:
        return None

    hostname = parts.hostname
    if not parts.scheme or not hostname or any(c.isspace() for c in parts.netloc):
        return None

    host = f"[{hostname}]" if ":" in hostname else hostname
    origin = f"{parts.scheme}://{host}"
    if port is not None and port != DEFAULT_PORTS.get(parts.scheme):
        origin += f":{port}"

    return TargetDescriptor(
        scheme=parts.scheme,
        netloc=parts.netloc,
        hostname=hostname,
        origin=origin,
        path=parts.path,
        query=parts.query,
        fragment=parts.fragment,
    )


def encode_query_string(value: Any) -> str:
    """Render a ``queryString`` body field as a URL query component."""
    if isinstance(value, Mapping):
        return urlencode(value, doseq=True)
    text = value if isinstance(value, str) else str(value)
    return urlencode(parse_qsl(text.lstrip("?"), keep_blank_values=True))


def collapse_slashes(path: str) -> str:
    """Collapse repeated slashes and drop trailing ones, keeping the root."""
    return _REPEATED_SLASHES.sub("/", path).rstrip("/") or "/"


class RequestTranslator:
    """Turn an inbound request into an outbound envelope or a rejection."""

    def __init__(
        self,
        allowed_origins: tuple[str, ...],
        collapse_slash_markers: tuple[str, ...] = (),
    ) -> None:
        self.allowed_origins = tuple(allowed_origins)
        self.collapse_slash_markers = tuple(collapse_slash_markers)

    def resolve(self, inbound: InboundRequest) -> OutboundEnvelope | Rejection:
        """Resolve target, body and method for a single inbound request.

        Steps run in a fixed order: pick the raw target, parse it,
        canonicalize the path for known hosts, apply ``queryString``
        replacement (which forces GET), then check the allowlist.
        """
        raw = self._raw_target(inbound)
        if raw is None:
            return Rejection(
                kind="MissingTarget",
                status_code=400,
                payload={"status": 400, "error": "Missing URL parameter"},
            )

        target = parse_target(raw)
        if target is None:
            return Rejection(
                kind="MalformedTarget",
                status_code=400,
                payload={"status": 400, "error": "Invalid URL format"},
            )

        if self._needs_slash_collapse(target.hostname):
            target = replace(target, path=collapse_slashes(target.path))

        method: Method = inbound.method
        query_string = inbound.body.get(QUERY_STRING_FIELD)
        if query_string is not None:
            # Replaces the existing query outright; keys are not merged
            target = replace(target, query=encode_query_string(query_string))
            method = "GET"

        if target.origin not in self.allowed_origins:
            return Rejection(
                kind="ForbiddenOrigin",
                status_code=403,
                payload={
                    "status": 403,
                    "error": "Access to this domain is not allowed",
                    "allowedDomains": list(self.allowed_origins),
                    "requestedOrigin": target.origin,
                    "debug": {
                        "proxiedUrl": target.url,
                        "allowedDomains": list(self.allowed_origins),
                    },
                },
            )

        body = {k: v for k, v in inbound.body.items() if k not in RESERVED_FIELDS}
        return OutboundEnvelope(
            method=method,
            url=target.url,
            headers=dict(inbound.headers),
            body=body,
            target=target,
        )

    def _raw_target(self, inbound: InboundRequest) -> str | None:
        """Body ``url`` wins over the query parameter when non-empty."""
        body_url = inbound.body.get(URL_FIELD)
        if isinstance(body_url, str) and body_url.strip():
            return body_url
        if inbound.query_url and inbound.query_url.strip():
            return inbound.query_url
        return None

    def _needs_slash_collapse(self, hostname: str) -> bool:
        return any(marker in hostname for marker in self.collapse_slash_markers)
