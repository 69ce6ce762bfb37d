"""Bot project resolution by token."""
import pytest

from botruntime.errors import NotFound
from botruntime.models import BotProject
from botruntime.services.projects import (
    find_project_by_token,
    get_project_bot_token_plain,
    is_project_live,
    set_project_bot_token,
)

from conftest import BOT_TOKEN


@pytest.mark.timeout(10)
def test_token_is_stored_encrypted(test_db_session, project):
    assert project.telegram_bot_token_enc
    assert BOT_TOKEN not in project.telegram_bot_token_enc
    assert get_project_bot_token_plain(project) == BOT_TOKEN


@pytest.mark.timeout(10)
def test_lookup_by_token(test_db_session, project):
    found = find_project_by_token(test_db_session, BOT_TOKEN)
    assert found.id == project.id
    assert is_project_live(found)


@pytest.mark.timeout(10)
def test_inactive_projects_are_not_found(test_db_session, project):
    project.is_active = False
    test_db_session.commit()

    with pytest.raises(NotFound):
        find_project_by_token(test_db_session, BOT_TOKEN)
    with pytest.raises(NotFound):
        find_project_by_token(test_db_session, "nope")


@pytest.mark.timeout(10)
def test_draft_project_resolves_but_is_not_live(test_db_session):
    p = BotProject(name="Draft", description="", is_active=True, bot_status="draft")
    test_db_session.add(p)
    test_db_session.commit()
    set_project_bot_token(test_db_session, p, "42:draft")

    found = find_project_by_token(test_db_session, "42:draft")
    assert found.id == p.id
    assert not is_project_live(found)
