import logging

import pytest

from voice_relay.bot.session_controller import CallSessionController
from voice_relay.config.settings import Settings
from voice_relay.models.session import CallSession
from voice_relay.services.prompt_store import PromptStore


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeEngine:
    """Records every event sent to the engine."""

    def __init__(self):
        self.events = []
        self.fail = False

    async def send_event(self, event):
        if self.fail:
            return False
        self.events.append(event)
        return True

    def types(self):
        return [event["type"] for event in self.events]

    def of_type(self, event_type):
        return [event for event in self.events if event["type"] == event_type]

    def created_for_last_request(self):
        """The response.created event the engine sends when it starts the last requested response."""
        request = self.of_type("response.create")[-1]
        return {
            "type": "response.created",
            "response": {"id": "resp_1", "metadata": request["response"]["metadata"]},
        }


class FakeSink:
    """Collects audio frames played to the caller."""

    def __init__(self):
        self.frames = []
        self.is_open = True

    async def send_audio_frame(self, frame):
        self.frames.append(frame)
        return True


class FakeSynthesizer:
    def __init__(self, audio=b"\xff" * 400, error=None):
        self.audio = audio
        self.error = error
        self.texts = []

    async def synthesize(self, text):
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return self.audio


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="sk-test",
        elevenlabs_api_key="xi-test",
        elevenlabs_voice_id="voice-1",
        router_endpoint="https://tools.test/route",
        item_search_endpoint="https://tools.test/items",
        pickup_endpoint="https://tools.test/pickup",
        prompt_refresh_secret="s3cret",
        frame_pacing=0,
    )


@pytest.fixture
def make_controller(engine, sink, synthesizer):
    """Factory for a controller wired to the fake engine, sink and synthesizer."""

    def _make(dispatcher=None, **kwargs):
        kwargs.setdefault("frame_pacing", 0)
        return CallSessionController(
            CallSession(),
            engine,
            sink,
            kwargs.pop("synthesizer", synthesizer),
            dispatcher,
            kwargs.pop("prompts", PromptStore()),
            **kwargs,
        )

    return _make


async def activate(controller, call_id="CA123", stream_id="MZ123"):
    """Bring a controller to the active phase."""
    await controller.on_engine_open()
    await controller.on_telephony_start(call_id, stream_id)
    return controller


@pytest.fixture(name="activate")
def activate_fixture():
    return activate
