"""Unit tests for the chat model adapter."""

from types import SimpleNamespace

import pytest

from plan_coach.config import CoachSettings
from plan_coach.llm import CoachLLM, LLMUnavailableError, extract_text


@pytest.mark.unit
def test_extract_text_variants():
    assert extract_text("plain") == "plain"
    assert extract_text(None) == ""
    assert extract_text([{"type": "image_url"}, {"type": "text", "text": "first"}, {"type": "text", "text": "second"}]) == "first"
    assert extract_text([SimpleNamespace(type="text", text="obj")]) == "obj"
    assert extract_text([]) == ""


@pytest.mark.unit
def test_missing_key_leaves_client_unset():
    llm = CoachLLM(settings=CoachSettings(openai_api_key=None))
    assert llm.client is None
    with pytest.raises(LLMUnavailableError):
        llm.complete("system", [])


@pytest.mark.unit
def test_complete_sends_system_prompt_first(coach_settings, mock_openai_client):
    mock_openai_client.queue_response("hello there")
    llm = CoachLLM(settings=coach_settings, client=mock_openai_client)

    text = llm.complete("You are a coach.", [{"role": "user", "content": "hi"}])

    assert text == "hello there"
    call = mock_openai_client.calls[0]
    assert call["model"] == "mock-model"
    assert call["temperature"] == coach_settings.temperature
    assert call["max_tokens"] == coach_settings.max_tokens
    assert call["messages"] == [
        {"role": "system", "content": "You are a coach."},
        {"role": "user", "content": "hi"},
    ]


@pytest.mark.unit
def test_complete_handles_list_content(coach_settings, mock_openai_client):
    mock_openai_client.queue_response([{"type": "text", "text": '{"message": "hi"}'}])
    llm = CoachLLM(settings=coach_settings, client=mock_openai_client)
    assert llm.complete("sys", []) == '{"message": "hi"}'
