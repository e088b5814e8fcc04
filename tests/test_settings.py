import pytest

from voice_relay.config.settings import ConfigurationError, load_settings

REQUIRED = {
    "OPENAI_API_KEY": "sk-test",
    "ELEVENLABS_API_KEY": "xi-test",
    "ELEVENLABS_VOICE_ID": "voice-1",
}


def test_defaults():
    settings = load_settings(dict(REQUIRED))

    assert settings.openai_api_key == "sk-test"
    assert settings.realtime_model == "gpt-4o-realtime-preview"
    assert settings.elevenlabs_model_id == "eleven_turbo_v2_5"
    assert settings.greeting_mode == "audio"
    assert settings.barge_in_policy == "drop"
    assert settings.tool_timeout == 15.0
    assert settings.tts_timeout == 20.0
    assert settings.frame_pacing == 0.02
    assert settings.port == 8080
    assert settings.router_endpoint is None
    assert settings.supabase_configured is False


@pytest.mark.parametrize("missing", sorted(REQUIRED))
def test_missing_required_credential_is_fatal(missing):
    env = dict(REQUIRED)
    env[missing] = " "

    with pytest.raises(ConfigurationError, match=missing):
        load_settings(env)


def test_overrides():
    env = dict(
        REQUIRED,
        ROUTER_ENDPOINT="https://tools.test/route",
        SUPABASE_URL="https://db.test",
        SUPABASE_KEY="key",
        GREETING_MODE="Engine",
        BARGE_IN_POLICY="queue",
        TOOL_TIMEOUT_S="5",
        PORT="9000",
        LOG_LEVEL="debug",
    )
    settings = load_settings(env)

    assert settings.router_endpoint == "https://tools.test/route"
    assert settings.supabase_configured is True
    assert settings.greeting_mode == "engine"
    assert settings.barge_in_policy == "queue"
    assert settings.tool_timeout == 5.0
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name,value",
    [("GREETING_MODE", "silent"), ("BARGE_IN_POLICY", "interrupt"), ("TOOL_TIMEOUT_S", "soon"), ("PORT", "http")],
)
def test_invalid_values(name, value):
    with pytest.raises(ConfigurationError, match=name):
        load_settings(dict(REQUIRED, **{name: value}))


def test_log_file_setting():
    assert load_settings(dict(REQUIRED)).log_file == "logs/voice_relay.log"
    assert load_settings(dict(REQUIRED, LOG_FILE="/var/log/relay.log")).log_file == "/var/log/relay.log"
    # Set but empty means console only
    assert load_settings(dict(REQUIRED, LOG_FILE="")).log_file is None
