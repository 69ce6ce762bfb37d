"""AI fallback provider chain."""
import httpx
import pytest

from botruntime.clients import ai_gateway
from botruntime.models import BotEvent
from botruntime.services import ai_fallback


class _Settings:
    ai_gateway_url = "https://gateway.example/v1/chat/completions"
    ai_gateway_api_key = "gw-key"
    ai_model = "test-model"
    gemini_api_base = "https://gemini.example/v1beta"
    gemini_api_key = "gm-key"
    gemini_model = "gemini-test"
    ai_timeout_seconds = 5
    ai_history_limit = 10


@pytest.fixture
def providers(monkeypatch):
    calls = {"gateway": [], "gemini": []}
    results = {"gateway": ("gateway says hi", None), "gemini": ("gemini says hi", None)}

    def fake_gateway(url, api_key, model, messages, *, timeout=30):
        calls["gateway"].append(messages)
        return results["gateway"]

    def fake_gemini(api_base, api_key, model, messages, *, timeout=30):
        calls["gemini"].append(messages)
        return results["gemini"]

    monkeypatch.setattr(ai_fallback, "get_settings", lambda: _Settings())
    monkeypatch.setattr(ai_fallback, "chat_complete", fake_gateway)
    monkeypatch.setattr(ai_fallback, "gemini_generate", fake_gemini)
    return calls, results


@pytest.mark.timeout(10)
def test_gateway_reply_is_used(test_db_session, project, providers):
    calls, _results = providers
    test_db_session.add(BotEvent(project_id=project.id, event_type="message", event_data={"text": "earlier question"}))
    test_db_session.commit()

    text = ai_fallback.generate_ai_reply(test_db_session, project, "hello", extra_prompt="Be brief")

    assert text == "gateway says hi"
    system, user = calls["gateway"][0]
    assert "Booking Bot" in system["content"]
    assert "earlier question" in system["content"]
    assert "Be brief" in system["content"]
    assert user == {"role": "user", "content": "hello"}
    assert calls["gemini"] == []


@pytest.mark.timeout(10)
def test_gemini_used_when_gateway_fails(test_db_session, project, providers):
    calls, results = providers
    results["gateway"] = (None, "http_429")

    assert ai_fallback.generate_ai_reply(test_db_session, project, "hello") == "gemini says hi"
    assert len(calls["gemini"]) == 1


@pytest.mark.timeout(10)
def test_both_providers_down_gives_apology(test_db_session, project, providers):
    _calls, results = providers
    results["gateway"] = (None, "timeout")
    results["gemini"] = (None, "missing_api_key")

    assert ai_fallback.generate_ai_reply(test_db_session, project, "hello") == ai_fallback.MSG_AI_UNAVAILABLE


@pytest.fixture
def gateway_http(monkeypatch):
    replies = []
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(ai_gateway.httpx, "post", fake_post)
    monkeypatch.setattr(ai_gateway.time, "sleep", lambda _s: None)
    return ai_gateway, replies, calls


def test_gateway_retries_rate_limit_then_succeeds(gateway_http):
    ai_gateway, replies, calls = gateway_http
    replies.extend([
        httpx.Response(429, json={"error": "slow down"}),
        httpx.Response(200, json={"choices": [{"message": {"content": "hi there"}}]}),
    ])

    text, err = ai_gateway.chat_complete("https://gw/v1", "k", "m", [{"role": "user", "content": "hi"}])

    assert (text, err) == ("hi there", None)
    assert len(calls) == 2
    assert calls[0]["headers"]["Authorization"] == "Bearer k"


def test_gateway_persistent_rate_limit_is_named(gateway_http):
    ai_gateway, replies, _calls = gateway_http
    replies.extend([httpx.Response(429), httpx.Response(429)])

    assert ai_gateway.chat_complete("https://gw/v1", "k", "m", []) == (None, "rate_limited")


def test_gemini_payload_and_parsing(gateway_http):
    ai_gateway, replies, calls = gateway_http
    replies.append(httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "gm"}]}}]}))

    text, err = ai_gateway.gemini_generate(
        "https://gemini.example/v1beta/",
        "key1",
        "gemini-test",
        [{"role": "system", "content": "SYS"}, {"role": "user", "content": "USER"}],
    )

    assert (text, err) == ("gm", None)
    assert calls[0]["url"] == "https://gemini.example/v1beta/models/gemini-test:generateContent?key=key1"
    assert calls[0]["json"] == {"contents": [{"parts": [{"text": "SYS\n\nUSER"}]}]}


def test_transport_error_after_retry(gateway_http):
    ai_gateway, replies, _calls = gateway_http
    replies.extend([httpx.ConnectTimeout("timed out"), httpx.ConnectTimeout("timed out")])

    assert ai_gateway.chat_complete("https://gw/v1", "k", "m", []) == (None, "timeout")


@pytest.mark.timeout(10)
def test_current_message_is_not_repeated_in_history(test_db_session, project, providers):
    calls, _results = providers
    test_db_session.add_all([
        BotEvent(project_id=project.id, event_type="message", event_data={"text": "earlier question"}),
        BotEvent(project_id=project.id, event_type="message", event_data={"text": "what time is it"}),
    ])
    test_db_session.commit()

    ai_fallback.generate_ai_reply(test_db_session, project, "what time is it")

    system, user = calls["gateway"][0]
    assert "earlier question" in system["content"]
    assert "what time is it" not in system["content"]
    assert user["content"] == "what time is it"
