"""
Repository for training jobs, tracking sessions, interactions and recipient tag scores.

All state changes that may race (first view, score + aggregate increments) are
single conditional statements so that concurrent requests never lose updates.
"""
import json
import uuid
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import text

from content_platform.db.engine import get_db_session, utc_now_iso

# Column pairs written when a score is recorded for each phase.
_PHASE_COLUMNS = {
    "training": ("training_score", "training_completed_at"),
    "follow_on": ("follow_on_score", "follow_on_completed_at"),
}


def _now() -> str:
    return utc_now_iso()


class TrackingRepository:
    """SQL-backed training / training_tracking repository."""

    def create_training(
        self,
        training_content_id: str,
        name: str,
        training_type: str,
        company_id: str = "default",
        description: Optional[str] = None,
        follow_on_content_id: Optional[str] = None,
    ) -> str:
        training_id = str(uuid.uuid4())
        now = _now()
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO training (
                        id, company_id, name, description, training_type,
                        training_content_id, follow_on_content_id, status, created_at, updated_at
                    ) VALUES (
                        :id, :company_id, :name, :description, :training_type,
                        :training_content_id, :follow_on_content_id, 'active', :now, :now
                    )
                """),
                {
                    "id": training_id,
                    "company_id": company_id,
                    "name": name,
                    "description": description,
                    "training_type": training_type,
                    "training_content_id": training_content_id,
                    "follow_on_content_id": follow_on_content_id,
                    "now": now,
                },
            )
        return training_id

    def get_training(self, training_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT id, company_id, name, training_type, training_content_id,
                           follow_on_content_id, status
                    FROM training WHERE id = :training_id
                """),
                {"training_id": training_id},
            ).mappings().fetchone()
        return dict(row) if row else None

    def create_session(self, training_id: str, recipient_id: str, unique_tracking_id: Optional[str] = None) -> Dict[str, Any]:
        """Issue a new pending tracking session; returns ids."""
        row_id = str(uuid.uuid4())
        token = unique_tracking_id or str(uuid.uuid4())
        now = _now()
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO training_tracking (
                        id, training_id, recipient_id, unique_tracking_id, status, created_at, updated_at
                    ) VALUES (
                        :id, :training_id, :recipient_id, :token, 'pending', :now, :now
                    )
                """),
                {"id": row_id, "training_id": training_id, "recipient_id": recipient_id, "token": token, "now": now},
            )
        return {"id": row_id, "training_id": training_id, "unique_tracking_id": token}

    def get_session(self, unique_tracking_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT id, training_id, recipient_id, unique_tracking_id, status,
                           training_opened_at, training_score, training_completed_at,
                           follow_on_score, follow_on_completed_at, created_at, updated_at
                    FROM training_tracking WHERE unique_tracking_id = :token
                """),
                {"token": unique_tracking_id},
            ).mappings().fetchone()
        return dict(row) if row else None

    def mark_opened(self, unique_tracking_id: str) -> bool:
        """Set training_opened_at only if still NULL. True when this call set it."""
        now = _now()
        with get_db_session() as session:
            result = session.execute(
                text("""
                    UPDATE training_tracking
                    SET training_opened_at = :now, updated_at = :now
                    WHERE unique_tracking_id = :token AND training_opened_at IS NULL
                """),
                {"now": now, "token": unique_tracking_id},
            )
            return (result.rowcount or 0) == 1

    def insert_interaction(
        self,
        unique_tracking_id: str,
        tag_name: str,
        interaction_type: str,
        interaction_value: Optional[str] = None,
        success: Optional[bool] = None,
    ) -> str:
        interaction_id = str(uuid.uuid4())
        now = _now()
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO content_interactions (
                        id, tracking_link_id, tag_name, interaction_type, interaction_value,
                        success, interaction_data, created_at
                    ) VALUES (
                        :id, :token, :tag_name, :interaction_type, :interaction_value,
                        :success, :interaction_data, :created_at
                    )
                """),
                {
                    "id": interaction_id,
                    "token": unique_tracking_id,
                    "tag_name": tag_name,
                    "interaction_type": interaction_type,
                    "interaction_value": interaction_value,
                    "success": success,
                    "interaction_data": json.dumps({"timestamp": now}),
                    "created_at": now,
                },
            )
        return interaction_id

    def apply_score(
        self,
        unique_tracking_id: str,
        phase: str,
        score: float,
        status: str,
        recipient_id: str,
        passed_tags: Iterable[str] = (),
    ) -> bool:
        """
        Record a phase score and, in the same transaction, bump the recipient's
        per-tag aggregates for every tag in passed_tags.

        status must be 'passed' or 'failed'; the statement never writes 'pending'.
        """
        if status not in ("passed", "failed"):
            raise ValueError(f"invalid terminal status: {status}")
        score_col, completed_col = _PHASE_COLUMNS[phase]
        now = _now()
        with get_db_session() as session:
            result = session.execute(
                text(f"""
                    UPDATE training_tracking SET
                        {score_col} = :score,
                        {completed_col} = :now,
                        status = :status,
                        training_opened_at = COALESCE(training_opened_at, :now),
                        updated_at = :now
                    WHERE unique_tracking_id = :token
                """),
                {"score": score, "now": now, "status": status, "token": unique_tracking_id},
            )
            if (result.rowcount or 0) != 1:
                return False
            for tag in passed_tags:
                session.execute(
                    text("""
                        INSERT INTO recipient_tag_scores (recipient_id, tag_name, score_count, total_attempts, last_updated)
                        VALUES (:recipient_id, :tag_name, 1, 1, :now)
                        ON CONFLICT (recipient_id, tag_name) DO UPDATE SET
                            score_count = recipient_tag_scores.score_count + 1,
                            total_attempts = recipient_tag_scores.total_attempts + 1,
                            last_updated = EXCLUDED.last_updated
                    """),
                    {"recipient_id": recipient_id, "tag_name": tag, "now": now},
                )
        return True

    def get_tag_score(self, recipient_id: str, tag_name: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT recipient_id, tag_name, score_count, total_attempts, last_updated
                    FROM recipient_tag_scores
                    WHERE recipient_id = :recipient_id AND tag_name = :tag_name
                """),
                {"recipient_id": recipient_id, "tag_name": tag_name},
            ).mappings().fetchone()
        return dict(row) if row else None

    def count_interactions(self, unique_tracking_id: str) -> int:
        with get_db_session() as session:
            value = session.execute(
                text("SELECT COUNT(*) FROM content_interactions WHERE tracking_link_id = :token"),
                {"token": unique_tracking_id},
            ).scalar()
        return int(value or 0)
