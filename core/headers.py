"""Header construction for upstream requests."""

from typing import Any

from core.request_types import TargetDescriptor

# Describe the inbound transport framing, never forwarded verbatim
DROPPED_HEADERS = ("content-length", "accept-encoding")


class HeaderRewriter:
    """Derive outbound headers from inbound headers and the target."""

    def rewrite(self, headers: dict[str, Any], target: TargetDescriptor) -> dict[str, str | bytes]:
        """Copy inbound headers, point host/origin/referer at the target.

        Overwritten headers keep their original position; any that were
        absent are appended in host, origin, referer order.
        """
        hostname = target.hostname
        overrides = {
            "host": f"[{hostname}]" if ":" in hostname else hostname,
            "origin": target.origin,
            "referer": f"{target.origin}/",
        }
        upstream: dict[str, str | bytes] = {}
        seen: set[str] = set()
        for key, value in headers.items():
            key_lower = key.lower()
            if key_lower in DROPPED_HEADERS:
                continue
            if key_lower in overrides:
                if key_lower not in seen:
                    upstream[key_lower] = overrides[key_lower]
                    seen.add(key_lower)
                continue
            upstream[key] = _header_value(value)

        for key, value in overrides.items():
            if key not in seen:
                upstream[key] = value
        return upstream


def _header_value(value: Any) -> str | bytes:
    """Non-ASCII values go out as the bytes they arrived as."""
    if isinstance(value, bytes):
        return value
    text = str(value)
    if text.isascii():
        return text
    # Inbound values were decoded as latin-1
    try:
        return text.encode("latin-1")
    except UnicodeEncodeError:
        return text.encode("utf-8")
