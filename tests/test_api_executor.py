"""External API integration calls from flow steps and intents."""
import httpx
import pytest

from botruntime.models import ApiIntegration, ConversationFlow
from botruntime.services import api_executor
from botruntime.services.dispatch import dispatch_text


def _integration(**kw):
    data = {"id": 1, "name": "orders", "endpoint_base_url": "https://api.example.com", "auth_type": "none"}
    data.update(kw)
    return ApiIntegration(**data)


@pytest.fixture
def http_calls(monkeypatch):
    calls = []
    responses = []

    def fake_request(method, url, *, headers=None, auth=None, json=None, timeout=None):
        calls.append({"method": method, "url": url, "headers": headers, "auth": auth, "json": json})
        resp = responses.pop(0) if responses else httpx.Response(200, json={})
        if isinstance(resp, Exception):
            raise resp
        return resp

    monkeypatch.setattr(api_executor.httpx, "request", fake_request)
    return calls, responses


def test_auth_variants():
    headers, basic = api_executor.build_auth(_integration(auth_type="api_key", credentials={"api_key": "k1"}))
    assert headers["X-API-Key"] == "k1" and basic is None

    headers, _ = api_executor.build_auth(
        _integration(auth_type="api_key", credentials={"api_key": "k2", "header_name": "X-Token"})
    )
    assert headers["X-Token"] == "k2"

    headers, _ = api_executor.build_auth(_integration(auth_type="bearer", credentials={"token": "t"}))
    assert headers["Authorization"] == "Bearer t"

    headers, basic = api_executor.build_auth(
        _integration(auth_type="basic", credentials={"username": "u", "password": "p"})
    )
    assert basic == ("u", "p")
    assert "Authorization" not in headers


def test_basic_auth_reaches_the_wire(http_calls):
    calls, _responses = http_calls
    api_executor.execute_integration_call(
        _integration(auth_type="basic", credentials={"username": "u", "password": "p"}), {"path": "/x"}
    )
    assert calls[0]["auth"] == ("u", "p")
    assert "Authorization" not in calls[0]["headers"]


def test_url_and_mapping():
    assert api_executor.build_url("https://a.io", "/v1/items", {"q": "tea", "page": 2}) == "https://a.io/v1/items?q=tea&page=2"
    data = {"order": {"status": "shipped", "items": [{"name": "Tea"}]}, "id": 9}
    mapped = api_executor.apply_mapping(data, {"status": "order.status", "first": "order.items.0.name", "nope": "order.x.y"})
    assert mapped == {"status": "shipped", "first": "Tea", "nope": None}


def test_mapped_result_and_request_shape(http_calls):
    calls, responses = http_calls
    responses.append(httpx.Response(200, json={"order": {"status": "shipped"}}))
    integration = _integration(
        auth_type="bearer",
        credentials={"token": "secret"},
        mapping_config={"response_mapping": {"status": "order.status"}},
    )

    data, err = api_executor.execute_integration_call(
        integration, {"method": "post", "path": "/orders", "query": {"id": "7"}, "body": {"a": 1}}
    )

    assert err is None
    assert data == {"status": "shipped"}
    assert calls[0]["method"] == "POST"
    assert calls[0]["url"] == "https://api.example.com/orders?id=7"
    assert calls[0]["json"] == {"a": 1}
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.parametrize("failure", [
    httpx.Response(500, json={"error": "boom"}),
    httpx.Response(404, text="missing"),
    httpx.ConnectTimeout("timed out"),
])
def test_failures_are_soft(failure, http_calls):
    _calls, responses = http_calls
    responses.append(failure)

    data, err = api_executor.execute_integration_call(_integration(), {"path": "/x"})

    assert data is None
    assert err


@pytest.mark.timeout(10)
def test_api_call_step_relays_result(test_db_session, project, http_calls, ai_prompts):
    _calls, responses = http_calls
    db = test_db_session
    integration = ApiIntegration(
        project_id=project.id,
        name="orders",
        endpoint_base_url="https://api.example.com",
        mapping_config={"response_mapping": {"status": "order.status"}},
    )
    db.add(integration)
    db.commit()
    db.add(ConversationFlow(
        project_id=project.id,
        name="track",
        trigger_type="command",
        trigger_value="/track",
        flow_definition={"steps": [
            {"id": "ask_order", "type": "message", "content": "Order number?"},
            {"id": "lookup", "type": "api_call", "config": {"integration_id": integration.id, "path": "/orders/{{ask_order}}"}},
        ]},
    ))
    db.commit()
    responses.append(httpx.Response(200, json={"order": {"status": "shipped"}}))

    dispatch_text(db, project, "777", "/track")
    result = dispatch_text(db, project, "777", "A-17")

    assert '"status": "shipped"' in result.reply.text
    assert _calls[0]["url"] == "https://api.example.com/orders/A-17"


@pytest.mark.timeout(10)
def test_api_call_step_failure_message(test_db_session, project, http_calls, ai_prompts):
    _calls, responses = http_calls
    db = test_db_session
    db.add(ApiIntegration(project_id=project.id, name="weather", endpoint_base_url="https://w.example.com"))
    db.add(ConversationFlow(
        project_id=project.id,
        name="weather",
        trigger_type="keyword",
        trigger_value="weather",
        flow_definition={"steps": [{"id": "call", "type": "api_call", "integration": "weather", "path": "/now"}]},
    ))
    db.commit()
    responses.append(httpx.ConnectError("refused"))

    result = dispatch_text(db, project, "777", "weather please")

    assert result.reply.text == api_executor.MSG_API_FAILED
