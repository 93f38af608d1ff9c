import pytest
from sqlalchemy import text

from content_platform.config import AppSettings
from content_platform.db.engine import get_db_session
from content_platform.errors import ContentNotFoundError, ValidationError
from content_platform.repositories.content_repo import ContentRepository
from content_platform.repositories.tracking_repo import TrackingRepository
from content_platform.services.link_service import LinkService, restore_uuid_dashes

pytestmark = pytest.mark.integration

CONTENT_ID = "11111111-2222-3333-4444-555555555555"


@pytest.fixture
def service(sqlite_db):
    ContentRepository().create_content(CONTENT_ID, "training", title="Links")
    return LinkService(AppSettings(base_url="https://train.example.com"))


def test_preview_link_issues_a_pending_session(service):
    url = service.create_preview_link(CONTENT_ID)
    assert url.startswith("https://train.example.com/launch/11111111222233334444555555555555/")
    token = restore_uuid_dashes(url.rsplit("/", 1)[1])

    session = TrackingRepository().get_session(token)
    assert session["recipient_id"] == "preview"
    assert session["status"] == "pending"
    training = TrackingRepository().get_training(session["training_id"])
    assert training["training_type"] == "preview"
    assert training["company_id"] == "system"
    assert ContentRepository().get_content_by_id(CONTENT_ID)["content_preview"] == url


def test_direct_link_uses_active_domain(service):
    with get_db_session() as session:
        session.execute(
            text("INSERT INTO domains (id, domain_url, is_active) VALUES ('dom', 'https://acme.example.net/', :t)"),
            {"t": True},
        )
        session.execute(text("UPDATE content SET domain_id = 'dom' WHERE id = :id"), {"id": CONTENT_ID})

    link = service.create_direct_link(CONTENT_ID, " employee-9 ", company_id="acme")
    assert link["direct_url"].startswith("https://acme.example.net/launch/11111111222233334444555555555555/")
    assert link["content"] == {"id": CONTENT_ID, "title": "Links", "type": "training"}
    session = TrackingRepository().get_session(link["unique_tracking_id"])
    assert session["recipient_id"] == "employee-9"
    assert session["id"] == link["tracking_id"]


def test_direct_link_falls_back_to_base_url(service):
    link = service.create_direct_link(CONTENT_ID, "employee-1")
    assert link["direct_url"].startswith("https://train.example.com/launch/")


def test_direct_link_validation(service):
    with pytest.raises(ValidationError):
        service.create_direct_link(CONTENT_ID, "  ")
    with pytest.raises(ContentNotFoundError):
        service.create_direct_link("missing", "employee-1")
    with pytest.raises(ContentNotFoundError):
        service.create_preview_link("missing")
