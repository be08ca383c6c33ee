import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from quickbooks_mcp.config import Settings


def _make_response(status_code: int = 200, payload=None, text: str | None = None):
    response = MagicMock()
    response.status_code = status_code
    if text is None:
        text = json.dumps(payload) if payload is not None else ""
    response.text = text
    response.json.side_effect = lambda: json.loads(text)
    return response


@pytest.fixture
def make_response():
    """Factory for stand-ins of httpx.Response."""
    return _make_response


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        client_id="client-123",
        client_secret="secret-456",
        realm_id="9130",
        config_dir=tmp_path / "config",
    )
