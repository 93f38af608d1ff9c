"""
Repository for the content catalog, content tag associations and launch domains.
"""
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import text

from content_platform.db.engine import get_db_session, utc_now_iso


def _now() -> str:
    return utc_now_iso()


class ContentRepository:
    """SQL-backed content and content_tags repository."""

    def create_content(
        self,
        content_id: str,
        content_type: str,
        title: str = "Untitled Content",
        description: Optional[str] = None,
        company_id: Optional[str] = None,
        domain_id: Optional[str] = None,
        content_url: Optional[str] = None,
        thumbnail_filename: Optional[str] = None,
        email_subject: Optional[str] = None,
        email_from_address: Optional[str] = None,
        email_body_html: Optional[str] = None,
    ) -> str:
        """Insert a content row; content_url stays NULL until processing finishes."""
        now = _now()
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO content (
                        id, company_id, domain_id, title, description, content_type,
                        content_url, thumbnail_filename, email_subject, email_from_address,
                        email_body_html, created_at, updated_at
                    ) VALUES (
                        :id, :company_id, :domain_id, :title, :description, :content_type,
                        :content_url, :thumbnail_filename, :email_subject, :email_from_address,
                        :email_body_html, :created_at, :updated_at
                    )
                """),
                {
                    "id": content_id,
                    "company_id": company_id,
                    "domain_id": domain_id,
                    "title": title,
                    "description": description,
                    "content_type": content_type,
                    "content_url": content_url,
                    "thumbnail_filename": thumbnail_filename,
                    "email_subject": email_subject,
                    "email_from_address": email_from_address,
                    "email_body_html": email_body_html,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        return content_id

    def get_content_by_id(self, content_id: str) -> Optional[Dict[str, Any]]:
        """Return content row as dict or None."""
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT id, company_id, domain_id, title, description, content_type,
                           content_url, content_preview, thumbnail_filename, tags, difficulty,
                           email_subject, email_from_address, created_at, updated_at
                    FROM content WHERE id = :content_id
                """),
                {"content_id": content_id},
            ).mappings().fetchone()
        if not row:
            return None
        return dict(row)

    def list_content(
        self,
        company_id: Optional[str] = None,
        content_type: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Return content rows, newest first, optionally filtered by company and type."""
        clauses = []
        params: Dict[str, Any] = {"limit": limit}
        if company_id:
            clauses.append("company_id = :company_id")
            params["company_id"] = company_id
        if content_type:
            clauses.append("content_type = :content_type")
            params["content_type"] = content_type
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with get_db_session() as session:
            rows = session.execute(
                text(f"""
                    SELECT id, company_id, domain_id, title, description, content_type,
                           content_url, content_preview, thumbnail_filename, tags, difficulty,
                           created_at, updated_at
                    FROM content {where}
                    ORDER BY created_at DESC
                    LIMIT :limit
                """),
                params,
            ).mappings().fetchall()
        return [dict(r) for r in rows]

    def update_processing_result(
        self,
        content_id: str,
        content_url: str,
        tags: Optional[Iterable[str]] = None,
        difficulty: Optional[int] = None,
    ) -> None:
        """Store the artifact path, comma-joined tag list and (email only) difficulty."""
        tag_list = list(tags or [])
        with get_db_session() as session:
            session.execute(
                text("""
                    UPDATE content SET
                        content_url = :content_url,
                        tags = COALESCE(:tags, tags),
                        difficulty = COALESCE(:difficulty, difficulty),
                        updated_at = :updated_at
                    WHERE id = :content_id
                """),
                {
                    "content_id": content_id,
                    "content_url": content_url,
                    "tags": ", ".join(tag_list) if tag_list else None,
                    "difficulty": str(difficulty) if difficulty is not None else None,
                    "updated_at": _now(),
                },
            )

    def set_preview_url(self, content_id: str, preview_url: str) -> None:
        with get_db_session() as session:
            session.execute(
                text("UPDATE content SET content_preview = :preview, updated_at = :now WHERE id = :content_id"),
                {"preview": preview_url, "now": _now(), "content_id": content_id},
            )

    def add_tags(self, content_id: str, tags: Iterable[str], tag_type: str = "interaction") -> int:
        """Insert (content, tag) pairs; existing pairs are left alone. Returns rows inserted."""
        inserted = 0
        now = _now()
        with get_db_session() as session:
            for tag in tags:
                result = session.execute(
                    text("""
                        INSERT INTO content_tags (id, content_id, tag_name, tag_type, confidence_score, created_at)
                        VALUES (:id, :content_id, :tag_name, :tag_type, 1.0, :created_at)
                        ON CONFLICT (content_id, tag_name) DO NOTHING
                    """),
                    {
                        "id": str(uuid.uuid4()),
                        "content_id": content_id,
                        "tag_name": tag,
                        "tag_type": tag_type,
                        "created_at": now,
                    },
                )
                inserted += max(result.rowcount or 0, 0)
        return inserted

    def get_content_tags(self, content_id: str) -> List[Dict[str, Any]]:
        with get_db_session() as session:
            rows = session.execute(
                text("""
                    SELECT id, content_id, tag_name, tag_type, confidence_score, created_at
                    FROM content_tags WHERE content_id = :content_id
                    ORDER BY tag_name
                """),
                {"content_id": content_id},
            ).mappings().fetchall()
        return [dict(r) for r in rows]

    def get_tag_names(self, content_id: str) -> List[str]:
        with get_db_session() as session:
            rows = session.execute(
                text("SELECT DISTINCT tag_name FROM content_tags WHERE content_id = :content_id ORDER BY tag_name"),
                {"content_id": content_id},
            ).fetchall()
        return [str(r[0]) for r in rows]

    def get_active_domain(self, domain_id: str) -> Optional[Dict[str, Any]]:
        """Return the domain row if it exists and is active."""
        with get_db_session() as session:
            row = session.execute(
                text("SELECT id, domain_url, is_active FROM domains WHERE id = :id AND is_active = :active"),
                {"id": domain_id, "active": True},
            ).mappings().fetchone()
        return dict(row) if row else None

    def delete_content(self, content_id: str) -> None:
        """Remove a content row and its tag associations."""
        with get_db_session() as session:
            session.execute(text("DELETE FROM content_tags WHERE content_id = :content_id"), {"content_id": content_id})
            session.execute(text("DELETE FROM content WHERE id = :content_id"), {"content_id": content_id})
