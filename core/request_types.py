"""Shared request data types."""

from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import urlunsplit

Method = Literal["GET", "POST"]
RejectionKind = Literal["MissingTarget", "MalformedTarget", "ForbiddenOrigin"]


@dataclass(frozen=True)
class InboundRequest:
    """Parsed inbound request handed to the pipeline."""

    method: Method
    query_url: str | None
    headers: dict[str, str]
    body: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TargetDescriptor:
    """Absolute target URL split into the parts the pipeline needs."""

    scheme: str
    netloc: str
    hostname: str
    origin: str
    path: str
    query: str = ""
    fragment: str = ""

    @property
    def url(self) -> str:
        return urlunsplit((self.scheme, self.netloc, self.path, self.query, self.fragment))


@dataclass(frozen=True)
class OutboundEnvelope:
    """Everything needed to issue the single outbound call."""

    method: Method
    url: str
    headers: dict[str, str | bytes]
    body: dict[str, Any]
    target: TargetDescriptor


@dataclass(frozen=True)
class Rejection:
    """A request refused before any outbound call."""

    kind: RejectionKind
    status_code: int
    payload: dict[str, Any]


@dataclass(frozen=True)
class NormalizedResult:
    """Outcome of a dispatch: Success when ok, Failure otherwise."""

    ok: bool
    status_code: int
    payload: Any
