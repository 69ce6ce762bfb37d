"""Matching rules and evaluation order of intents, commands and flow triggers."""
import pytest

from botruntime.models import BotCommand, BotIntent, ConversationFlow
from botruntime.services import config_store
from botruntime.services.dispatch import (
    command_token,
    match_command,
    match_flow_trigger,
    match_intent,
)


def _intent(name, phrases, **kw):
    return BotIntent(intent_name=name, training_phrases=phrases, **kw)


def _flow(name, trigger_type, trigger_value, **kw):
    return ConversationFlow(name=name, trigger_type=trigger_type, trigger_value=trigger_value, **kw)


def test_intent_matches_case_insensitive_substring():
    intents = [_intent("hours", ["opening hours", "when are you open"])]
    assert match_intent(intents, "Hi! What are your OPENING HOURS today?").intent_name == "hours"
    assert match_intent(intents, "book a table") is None


def test_first_matching_intent_wins_without_ranking():
    intents = [_intent("generic", ["table"]), _intent("specific", ["book a table"])]
    assert match_intent(intents, "I want to book a table").intent_name == "generic"


def test_intent_phrases_may_be_delimited_string():
    intents = [_intent("price", "price, cost;how much")]
    assert match_intent(intents, "How much is it?").intent_name == "price"


def test_command_is_normalized_to_leading_slash():
    commands = [BotCommand(command="newcommand", response_content="ok")]
    assert match_command(commands, "/newcommand").command == "newcommand"
    assert match_command(commands, "newcommand") is None
    assert config_store.normalize_command("newcommand") == "/newcommand"
    assert config_store.normalize_command("/newcommand") == "/newcommand"


def test_command_uses_first_token_only():
    commands = [BotCommand(command="/help", response_content="ok")]
    assert match_command(commands, "/help me please") is not None
    assert match_command(commands, "/helpme") is None
    assert command_token("/help@booking_bot now") == "/help"


def test_flow_trigger_kinds():
    by_command = _flow("book", "command", "/book")
    by_keyword = _flow("menu", "keyword", "Menu")
    by_regex = _flow("order", "regex", r"^order\s+#\d+$")
    flows = [by_command, by_keyword, by_regex]
    assert match_flow_trigger(flows, "/book now") is by_command
    assert match_flow_trigger(flows, "show me the menu") is by_keyword
    assert match_flow_trigger(flows, "order #42") is by_regex
    assert match_flow_trigger(flows, "hello") is None


def test_invalid_regex_trigger_never_matches():
    assert match_flow_trigger([_flow("bad", "regex", "([")], "([") is None


@pytest.mark.timeout(10)
def test_store_orders_and_filters(test_db_session, project):
    db = test_db_session
    db.add_all([
        BotIntent(project_id=project.id, intent_name="low", training_phrases=["x"], priority=0),
        BotIntent(project_id=project.id, intent_name="high", training_phrases=["x"], priority=5),
        BotIntent(project_id=project.id, intent_name="off", training_phrases=["x"], priority=9, is_active=False),
        BotCommand(project_id=project.id, command="/b", order_index=2),
        BotCommand(project_id=project.id, command="/a", order_index=1),
        BotCommand(project_id=project.id, command="/off", order_index=0, is_active=False),
        ConversationFlow(project_id=project.id, name="f1", trigger_type="keyword", trigger_value="hi", priority=1),
        ConversationFlow(project_id=project.id, name="f2", trigger_type="keyword", trigger_value="hi", priority=3),
    ])
    db.commit()

    assert [i.intent_name for i in config_store.list_active_intents(db, project.id)] == ["high", "low"]
    assert [c.command for c in config_store.list_active_commands(db, project.id)] == ["/a", "/b"]
    flows = config_store.list_active_flows(db, project.id)
    assert [f.name for f in flows] == ["f2", "f1"]
    assert match_flow_trigger(flows, "hi there").name == "f2"
