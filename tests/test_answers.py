from unittest.mock import MagicMock

import pytest

from voice_relay.services.answers import AnswerTemplates, render_template

FALLBACK = "I don't have an answer configured for that yet."


def supabase_client(rows):
    client = MagicMock()
    query = client.table.return_value.select.return_value
    query.eq.return_value.eq.return_value.limit.return_value.execute.return_value.data = rows
    return client


def test_render_substitutes_placeholders():
    assert render_template("Hi {{name}}!", {"name": "Rivky"}) == "Hi Rivky!"


def test_render_leaves_absent_placeholders():
    assert render_template("Hi {{name}}, pickup is {{day}}.", {"name": "Rivky"}) == "Hi Rivky, pickup is {{day}}."


def test_render_none_becomes_empty():
    assert render_template("Order {{order}} ready", {"order": None}) == "Order  ready"


def test_render_repeated_placeholder():
    assert render_template("{{x}} and {{x}}", {"x": 1}) == "1 and 1"


@pytest.mark.asyncio
async def test_speak_answer_renders_active_template():
    client = supabase_client([{"spoken_template": "Hi {{name}}!"}])
    answers = AnswerTemplates(client)

    assert await answers.speak_answer("greeting_named", {"name": "Rivky"}) == "Hi Rivky!"
    client.table.assert_called_once_with("answer_templates")
    query = client.table.return_value.select.return_value
    query.eq.assert_called_once_with("key", "greeting_named")
    query.eq.return_value.eq.assert_called_once_with("is_active", True)


@pytest.mark.asyncio
async def test_speak_answer_missing_template():
    answers = AnswerTemplates(supabase_client([]))

    assert await answers.speak_answer("unknown_key") == FALLBACK


@pytest.mark.asyncio
async def test_speak_answer_storage_error():
    client = MagicMock()
    client.table.side_effect = RuntimeError("storage down")

    assert await AnswerTemplates(client).speak_answer("tool_error") == FALLBACK


@pytest.mark.asyncio
async def test_speak_answer_without_storage():
    assert await AnswerTemplates().speak_answer("tool_error") == FALLBACK
