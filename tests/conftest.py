import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from config import Settings  # noqa: E402
from gateway_client import GatewayClient  # noqa: E402


SAMPLE_REPLY = """Analysis: Your symptoms are consistent with a viral infection.

Possible Conditions: Common Cold, Influenza, Sinusitis

Diet Recommendations: Drink warm fluids and eat light soups.
Activity Recommendations: Rest as much as possible.
Lifestyle Tips: Sleep at least 8 hours.
Precautions: Wash your hands often.
"""


def make_gateway_response(status_code=200, content=None, body=None, text=""):
    """Build a fake ``requests.Response`` for the chat-completions call."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if body is None and content is not None:
        body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    response.json.return_value = body
    return response


@pytest.fixture
def settings():
    return Settings(gateway_api_key="test-key")


@pytest.fixture
def http_session():
    session = MagicMock()
    session.post.return_value = make_gateway_response(content=SAMPLE_REPLY)
    return session


@pytest.fixture
def gateway_client(settings, http_session):
    return GatewayClient(
        api_key=settings.gateway_api_key,
        url=settings.gateway_url,
        model=settings.model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        session=http_session,
    )
