"""
Tracking session state machine: pending -> opened -> passed | failed.

The stored `status` column only ever holds pending/passed/failed; "opened" is
derived from training_opened_at being set while status is still pending.
Every transition is a single conditional statement in the repository so
concurrent requests for the same session never lose updates.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from content_platform.config import ScoringConfig
from content_platform.errors import (
    SessionNotFoundError,
    TrackingWriteError,
    TrainingNotFoundError,
    ValidationError,
)
from content_platform.repositories.content_repo import ContentRepository
from content_platform.repositories.tracking_repo import TrackingRepository
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)


class SessionState(Enum):
    PENDING = "pending"
    OPENED = "opened"
    PASSED = "passed"
    FAILED = "failed"


def session_state(session: Dict[str, Any]) -> SessionState:
    status = (session.get("status") or "pending").lower()
    if status == "passed":
        return SessionState.PASSED
    if status == "failed":
        return SessionState.FAILED
    if session.get("training_opened_at"):
        return SessionState.OPENED
    return SessionState.PENDING


class TrackingService:
    def __init__(
        self,
        tracking_repo: Optional[TrackingRepository] = None,
        content_repo: Optional[ContentRepository] = None,
        scoring: Optional[ScoringConfig] = None,
    ) -> None:
        self.tracking_repo = tracking_repo or TrackingRepository()
        self.content_repo = content_repo or ContentRepository()
        self.scoring = scoring or ScoringConfig()

    def validate_session(self, tracking_link_id: str) -> Dict[str, Any]:
        """Return the session row or raise SessionNotFoundError."""
        token = (tracking_link_id or "").strip()
        if not token:
            raise SessionNotFoundError("Invalid tracking session")
        try:
            session = self.tracking_repo.get_session(token)
        except SQLAlchemyError as exc:
            logger.error("Error validating training session %s: %s", token, exc)
            raise TrackingWriteError("Tracking storage unavailable", detail=str(exc)) from exc
        if not session:
            logger.warning("Invalid tracking session: %s", token)
            raise SessionNotFoundError("Invalid tracking session", detail=token)
        return session

    def track_view(self, tracking_link_id: str, content_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Record the first view. Repeated or concurrent calls set the opened
        timestamp at most once; storage write failures are logged and reported
        as a soft failure.
        """
        session = self.validate_session(tracking_link_id)
        try:
            first_view = self.tracking_repo.mark_opened(session["unique_tracking_id"])
        except SQLAlchemyError as exc:
            logger.warning("Could not record view for %s: %s", session["unique_tracking_id"], exc)
            return {"success": False, "first_view": False}
        if first_view:
            logger.info(
                "Session %s opened (recipient=%s, content=%s)",
                session["unique_tracking_id"],
                session["recipient_id"],
                content_id,
            )
        return {"success": True, "first_view": first_view}

    def track_interaction(
        self,
        tracking_link_id: str,
        tag_name: str,
        interaction_type: str,
        interaction_value: Optional[str] = None,
        success: Optional[bool] = None,
    ) -> Dict[str, Any]:
        session = self.validate_session(tracking_link_id)
        if not (tag_name or "").strip():
            raise ValidationError("tag_name is required")
        if not (interaction_type or "").strip():
            raise ValidationError("interaction_type is required")
        try:
            interaction_id = self.tracking_repo.insert_interaction(
                session["unique_tracking_id"],
                tag_name.strip(),
                interaction_type.strip(),
                interaction_value,
                success,
            )
        except SQLAlchemyError as exc:
            logger.error("Interaction write failed for %s: %s", session["unique_tracking_id"], exc)
            raise TrackingWriteError("Could not record interaction", detail=str(exc)) from exc
        return {"success": True, "interaction_id": interaction_id}

    def record_score(
        self,
        tracking_link_id: str,
        score: float,
        content_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record a phase score. score >= passing_score is a pass; a pass bumps
        the recipient's aggregate for every tag on the scored content.

        The phase is follow_on when content_id matches the job's follow-on
        content, otherwise the primary training phase.
        """
        session = self.validate_session(tracking_link_id)
        try:
            value = float(score)
        except (TypeError, ValueError):
            raise ValidationError("score must be numeric", detail=repr(score)) from None
        if value < 0 or value > 100:
            raise ValidationError("score must be between 0 and 100", detail=str(value))

        try:
            training = self.tracking_repo.get_training(session["training_id"])
        except SQLAlchemyError as exc:
            raise TrackingWriteError("Could not load training record", detail=str(exc)) from exc
        if not training:
            raise TrainingNotFoundError("Training record not found", detail=str(session["training_id"]))

        is_follow_on = bool(content_id) and content_id == training.get("follow_on_content_id")
        phase = "follow_on" if is_follow_on else "training"
        scored_content_id = content_id if content_id else training.get("training_content_id")
        passed = value >= self.scoring.passing_score
        status = "passed" if passed else "failed"

        try:
            tags = self.content_repo.get_tag_names(scored_content_id) if passed and scored_content_id else []
            updated = self.tracking_repo.apply_score(
                session["unique_tracking_id"],
                phase,
                value,
                status,
                session["recipient_id"],
                passed_tags=tags,
            )
        except SQLAlchemyError as exc:
            logger.error("Score write failed for %s: %s", session["unique_tracking_id"], exc)
            raise TrackingWriteError("Could not record score", detail=str(exc)) from exc
        if not updated:
            raise TrackingWriteError("Tracking session row was not updated", detail=session["unique_tracking_id"])

        logger.info(
            "Score %s recorded for %s (phase=%s, status=%s, tags=%s)",
            value,
            session["unique_tracking_id"],
            phase,
            status,
            len(tags),
        )
        return {"success": True, "score": value, "status": status, "content_type": phase}
