from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from voice_relay.handlers.admin import is_authorized
from voice_relay.main import create_app
from voice_relay.runtime import RelayRuntime


@pytest.fixture
def runtime(settings):
    prompt_store = MagicMock()
    prompt_store.reload = AsyncMock(return_value=True)
    return RelayRuntime(
        settings=settings,
        prompt_store=prompt_store,
        tool_client=MagicMock(),
        synthesizer=MagicMock(),
        answers=MagicMock(),
    )


@pytest.fixture
def client(runtime):
    return TestClient(create_app(runtime))


def test_refresh_prompts_authorized(client, runtime):
    """Test that a matching bearer token reloads prompts"""
    response = client.post("/refresh-prompts", headers={"Authorization": "Bearer s3cret"})

    assert response.status_code == 200
    assert response.text == "ok"
    runtime.prompt_store.reload.assert_awaited_once()


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "s3cret"}])
def test_refresh_prompts_unauthorized(client, runtime, headers):
    response = client.post("/refresh-prompts", headers=headers)

    assert response.status_code == 401
    assert response.text == "unauthorized"
    runtime.prompt_store.reload.assert_not_awaited()


@pytest.mark.parametrize(
    "method,path",
    [("get", "/"), ("get", "/health"), ("get", "/refresh-prompts"), ("post", "/anything"), ("get", "/twilio-stream")],
)
def test_other_paths_return_not_found(client, method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 404
    assert response.text == "not found"


def test_no_secret_rejects_everything():
    assert is_authorized("Bearer ", "") is False
    assert is_authorized("Bearer anything", "") is False
    assert is_authorized("Bearer s3cret", "s3cret") is True


@pytest.mark.asyncio
async def test_websocket_endpoint_runs_media_relay(runtime):
    """Test that the telephony endpoint hands the socket to a MediaRelay"""
    app = create_app(runtime)
    route = next(route for route in app.routes if route.path == "/twilio-stream")
    mock_websocket = MagicMock()

    with patch("voice_relay.main.MediaRelay") as mock_relay:
        mock_relay.return_value.run = AsyncMock()
        await route.endpoint(mock_websocket)

    mock_relay.assert_called_once_with(mock_websocket, runtime)
    mock_relay.return_value.run.assert_awaited_once()
