import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import Config, ForwardingSettings
from tests.fakes import RecordingLogger, UpstreamRecorder


@pytest.fixture
def config() -> Config:
    return Config(
        forwarding=ForwardingSettings(
            allowed_origins=("https://v-archive.net", "https://hard-archive.com"),
            timeout=5.0,
        )
    )


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def make_client(config, logger):
    """Build a TestClient whose upstream calls go through ``reply``."""
    clients: list[TestClient] = []

    def _make(reply) -> tuple[TestClient, UpstreamRecorder]:
        recorder = UpstreamRecorder(reply)
        app = create_app(config, logger, transport=httpx.MockTransport(recorder))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client, recorder

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
