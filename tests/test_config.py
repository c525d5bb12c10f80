import json

import pytest
from pydantic import ValidationError

from core.config import Config, ForwardingSettings, load_config
from core.exceptions import ConfigurationError


def test_missing_file_writes_defaults(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = load_config(path)
    assert path.exists()
    assert config.forwarding.allowed_origins == ("https://v-archive.net", "https://hard-archive.com")
    assert json.loads(path.read_text())["proxy"]["port"] == 8080


def test_loads_custom_allowlist(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"forwarding": {"allowed_origins": ["http://localhost:9000"], "timeout": 12}}))
    config = load_config(path)
    assert config.forwarding.allowed_origins == ("http://localhost:9000",)
    assert config.forwarding.timeout == 12


def test_corrupted_file_raises_and_is_left_alone(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{broken")
    with pytest.raises(ConfigurationError):
        load_config(path)
    assert path.read_text() == "{broken"


@pytest.mark.parametrize(
    "origin",
    ["https://v-archive.net/", "https://v-archive.net/api", "v-archive.net", "https://v-archive.net?x=1"],
)
def test_origin_with_path_or_without_scheme_is_invalid(origin):
    with pytest.raises(ValidationError):
        ForwardingSettings(allowed_origins=(origin,))


def test_forwarding_settings_are_immutable():
    settings = Config().forwarding
    with pytest.raises(ValidationError):
        settings.allowed_origins = ("https://evil.example",)
