"""Shared fixtures: SQLite session, a live bot project, recorded outbound calls."""
import pytest
from sqlalchemy.orm import sessionmaker

from botruntime.database import Base, get_test_engine
from botruntime.models import BotProject
from botruntime.services.projects import set_project_bot_token

BOT_TOKEN = "123456789:TEST-bot-token"


@pytest.fixture
def test_db_session():
    engine = get_test_engine()
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def project(test_db_session):
    p = BotProject(
        name="Booking Bot",
        description="Books tables at a restaurant",
        context="Open 10:00-22:00",
        is_active=True,
        bot_status="active",
    )
    test_db_session.add(p)
    test_db_session.commit()
    test_db_session.refresh(p)
    return set_project_bot_token(test_db_session, p, BOT_TOKEN)


@pytest.fixture
def telegram_calls(monkeypatch):
    calls = {"send": [], "callback": [], "pre_checkout": []}

    def fake_send(token, chat_id, text, *, reply_markup=None, parse_mode=None):
        calls["send"].append({
            "token": token,
            "chat_id": chat_id,
            "text": text,
            "reply_markup": reply_markup,
            "parse_mode": parse_mode,
        })
        return True, None

    def fake_answer_callback(token, callback_query_id, text=None):
        calls["callback"].append(callback_query_id)
        return True, None

    def fake_answer_pre_checkout(token, pre_checkout_query_id, ok=True, error_message=None):
        calls["pre_checkout"].append({"id": pre_checkout_query_id, "ok": ok})
        return True, None

    monkeypatch.setattr("botruntime.services.telegram_events.telegram_send_message", fake_send)
    monkeypatch.setattr("botruntime.services.telegram_events.telegram_answer_callback_query", fake_answer_callback)
    monkeypatch.setattr(
        "botruntime.services.telegram_events.telegram_answer_pre_checkout_query", fake_answer_pre_checkout
    )
    return calls


@pytest.fixture
def ai_prompts(monkeypatch):
    prompts = []

    def fake_generate(db, project, user_text, *, extra_prompt=None):
        prompts.append({"text": user_text, "extra_prompt": extra_prompt})
        return f"AI: {user_text}"

    monkeypatch.setattr("botruntime.services.dispatch.generate_ai_reply", fake_generate)
    return prompts


def make_update(text, *, update_id=1, user_id=777, chat_id=555, username="alice"):
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id * 10,
            "chat": {"id": chat_id, "type": "private"},
            "from": {"id": user_id, "username": username, "first_name": "Alice"},
            "text": text,
        },
    }
