"""Session state machine and scoring against SQLite."""
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from content_platform.config import ScoringConfig
from content_platform.db.engine import get_db_session
from content_platform.errors import (
    SessionNotFoundError,
    TrackingWriteError,
    TrainingNotFoundError,
    ValidationError,
)
from content_platform.repositories.content_repo import ContentRepository
from content_platform.repositories.tracking_repo import TrackingRepository
from content_platform.services.tracking_service import SessionState, TrackingService, session_state

pytestmark = pytest.mark.integration


@pytest.fixture
def issued(sqlite_db):
    """A primary and a follow-on content item with tags, and one pending session."""
    content_repo = ContentRepository()
    content_repo.create_content("primary", "training", title="Primary")
    content_repo.add_tags("primary", ["mfa", "passwords"])
    content_repo.create_content("follow", "training", title="Follow-on")
    content_repo.add_tags("follow", ["reporting"])
    tracking_repo = TrackingRepository()
    training_id = tracking_repo.create_training("primary", "Job", "direct_link", follow_on_content_id="follow")
    session = tracking_repo.create_session(training_id, "recipient-7")
    return session["unique_tracking_id"]


def _row_count(table):
    with get_db_session() as session:
        return session.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()


def test_unknown_token_is_rejected_without_writes(issued):
    service = TrackingService()
    before = (_row_count("training_tracking"), _row_count("content_interactions"))
    with pytest.raises(SessionNotFoundError):
        service.track_view("abc")
    with pytest.raises(SessionNotFoundError):
        service.track_interaction("abc", "mfa", "click")
    with pytest.raises(SessionNotFoundError):
        service.record_score("abc", 90)
    with pytest.raises(SessionNotFoundError):
        service.validate_session("   ")
    assert (_row_count("training_tracking"), _row_count("content_interactions")) == before


def test_first_view_opens_the_session_once(issued):
    service = TrackingService()
    assert session_state(TrackingRepository().get_session(issued)) is SessionState.PENDING
    assert service.track_view(issued) == {"success": True, "first_view": True}
    assert service.track_view(issued) == {"success": True, "first_view": False}
    assert session_state(TrackingRepository().get_session(issued)) is SessionState.OPENED


def test_concurrent_views_open_exactly_once(issued):
    service = TrackingService()
    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(lambda _: service.track_view(issued), range(12)))
    assert all(o["success"] for o in outcomes)
    assert sum(1 for o in outcomes if o["first_view"]) == 1


def test_view_write_failure_is_soft(issued, monkeypatch):
    repo = TrackingRepository()

    def _broken(token):
        raise OperationalError("UPDATE training_tracking", {}, Exception("database is locked"))

    monkeypatch.setattr(repo, "mark_opened", _broken)
    assert TrackingService(tracking_repo=repo).track_view(issued) == {"success": False, "first_view": False}


def test_interactions_are_recorded_and_validated(issued):
    service = TrackingService()
    result = service.track_interaction(issued, " mfa ", "input", "123456", True)
    assert result["success"] is True
    assert result["interaction_id"]
    assert TrackingRepository().count_interactions(issued) == 1
    with pytest.raises(ValidationError):
        service.track_interaction(issued, "", "click")
    with pytest.raises(ValidationError):
        service.track_interaction(issued, "mfa", " ")


def test_interaction_write_failure_raises(issued, monkeypatch):
    repo = TrackingRepository()

    def _broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(repo, "insert_interaction", _broken)
    with pytest.raises(TrackingWriteError):
        TrackingService(tracking_repo=repo).track_interaction(issued, "mfa", "click")


def test_passing_score_completes_training_and_bumps_tags(issued):
    service = TrackingService()
    result = service.record_score(issued, 85)
    assert result == {"success": True, "score": 85.0, "status": "passed", "content_type": "training"}

    repo = TrackingRepository()
    row = repo.get_session(issued)
    assert row["training_score"] == 85
    assert row["status"] == "passed"
    assert row["training_completed_at"] is not None
    assert row["training_opened_at"] is not None
    for tag in ("mfa", "passwords"):
        aggregate = repo.get_tag_score("recipient-7", tag)
        assert (aggregate["score_count"], aggregate["total_attempts"]) == (1, 1)
    assert repo.get_tag_score("recipient-7", "reporting") is None


def test_failing_score_leaves_tag_aggregates_alone(issued):
    result = TrackingService().record_score(issued, 79.5, content_id="primary")
    assert result["status"] == "failed"
    assert TrackingRepository().get_tag_score("recipient-7", "mfa") is None


def test_follow_on_score_is_recorded_in_its_own_phase(issued):
    service = TrackingService()
    service.record_score(issued, 40)
    result = service.record_score(issued, 95, content_id="follow")
    assert result["content_type"] == "follow_on"
    assert result["status"] == "passed"

    repo = TrackingRepository()
    row = repo.get_session(issued)
    assert row["training_score"] == 40
    assert row["follow_on_score"] == 95
    assert row["follow_on_completed_at"] is not None
    assert repo.get_tag_score("recipient-7", "reporting")["score_count"] == 1
    assert repo.get_tag_score("recipient-7", "mfa") is None


def test_status_never_returns_to_pending(issued):
    service = TrackingService()
    service.record_score(issued, 90)
    service.track_view(issued)
    service.track_interaction(issued, "mfa", "click")
    assert session_state(TrackingRepository().get_session(issued)) is SessionState.PASSED
    service.record_score(issued, 10)
    assert session_state(TrackingRepository().get_session(issued)) is SessionState.FAILED


def test_passing_threshold_is_configurable(issued):
    service = TrackingService(scoring=ScoringConfig(passing_score=50))
    assert service.record_score(issued, 50)["status"] == "passed"


@pytest.mark.parametrize("score", [-1, 100.5, "abc", None])
def test_invalid_scores_are_rejected(issued, score):
    with pytest.raises(ValidationError):
        TrackingService().record_score(issued, score)
    assert TrackingRepository().get_session(issued)["status"] == "pending"


def test_missing_training_record(sqlite_db):
    repo = TrackingRepository()
    token = repo.create_session("no-such-training", "recipient-1")["unique_tracking_id"]
    with pytest.raises(TrainingNotFoundError):
        TrackingService().record_score(token, 90)
