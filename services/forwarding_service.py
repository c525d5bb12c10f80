"""Forwarding orchestration for proxy requests."""

from dataclasses import replace

from core.config import Config
from core.headers import HeaderRewriter
from core.protocols import RequestLogger
from core.request_types import InboundRequest, OutboundEnvelope, Rejection
from core.translator import RequestTranslator


class ForwardingService:
    """Prepare inbound requests for forwarding to an allowlisted origin."""

    def __init__(
        self,
        config: Config,
        logger: RequestLogger,
        translator: RequestTranslator | None = None,
        header_rewriter: HeaderRewriter | None = None,
    ) -> None:
        self._logger = logger
        self._translator = translator or RequestTranslator(
            config.forwarding.allowed_origins,
            config.forwarding.collapse_slash_markers,
        )
        self._headers = header_rewriter or HeaderRewriter()

    def prepare(self, inbound: InboundRequest) -> OutboundEnvelope | Rejection:
        """Translate the request and rewrite its headers for the target."""
        resolved = self._translator.resolve(inbound)
        if isinstance(resolved, Rejection):
            self._logger.log_rejection(
                resolved.kind,
                resolved.status_code,
                str(resolved.payload.get("requestedOrigin", resolved.payload["error"])),
            )
            return resolved

        envelope = replace(
            resolved,
            headers=self._headers.rewrite(resolved.headers, resolved.target),
        )
        self._logger.log_forward(envelope.method, envelope.url, envelope.headers, envelope.body)
        return envelope
