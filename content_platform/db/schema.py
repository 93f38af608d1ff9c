"""
Relational schema for content, tag associations, training jobs and tracking.

Tables:
- content: uploaded artifacts (type, artifact path, tags, difficulty, email fields)
- content_tags: (content_id, tag_name) association, unique per pair
- domains: optional launch domains per content
- training: parent job with primary and follow-on content
- training_tracking: one row per issued session (unique_tracking_id)
- content_interactions: append-only interaction log
- recipient_tag_scores: per (recipient, tag) pass/attempt aggregates
"""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.engine import Engine

metadata = sa.MetaData()

content = sa.Table(
    "content",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("company_id", sa.Text(), nullable=True),
    sa.Column("domain_id", sa.Text(), nullable=True),
    sa.Column("title", sa.Text(), nullable=False, server_default="Untitled Content"),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("content_type", sa.Text(), nullable=False),
    sa.Column("content_url", sa.Text(), nullable=True),
    sa.Column("content_preview", sa.Text(), nullable=True),
    sa.Column("thumbnail_filename", sa.Text(), nullable=True),
    sa.Column("tags", sa.Text(), nullable=True),
    sa.Column("difficulty", sa.Text(), nullable=True),
    sa.Column("email_subject", sa.Text(), nullable=True),
    sa.Column("email_from_address", sa.Text(), nullable=True),
    sa.Column("email_body_html", sa.Text(), nullable=True),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Column("updated_at", sa.Text(), nullable=False),
    sa.Index("ix_content_content_type", "content_type"),
    sa.Index("ix_content_company_id", "company_id"),
)

content_tags = sa.Table(
    "content_tags",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("content_id", sa.Text(), sa.ForeignKey("content.id"), nullable=False),
    sa.Column("tag_name", sa.Text(), nullable=False),
    sa.Column("tag_type", sa.Text(), nullable=False, server_default="interaction"),
    sa.Column("confidence_score", sa.Float(), nullable=False, server_default="1.0"),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.UniqueConstraint("content_id", "tag_name", name="uq_content_tags_content_tag"),
)

domains = sa.Table(
    "domains",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("domain_url", sa.Text(), nullable=False),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
)

training = sa.Table(
    "training",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("company_id", sa.Text(), nullable=False),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("training_type", sa.Text(), nullable=False),
    sa.Column("training_content_id", sa.Text(), nullable=True),
    sa.Column("follow_on_content_id", sa.Text(), nullable=True),
    sa.Column("status", sa.Text(), nullable=False, server_default="active"),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Column("updated_at", sa.Text(), nullable=False),
)

training_tracking = sa.Table(
    "training_tracking",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("training_id", sa.Text(), sa.ForeignKey("training.id"), nullable=False),
    sa.Column("recipient_id", sa.Text(), nullable=False),
    sa.Column("unique_tracking_id", sa.Text(), nullable=False, unique=True),
    sa.Column("status", sa.Text(), nullable=False, server_default="pending"),
    sa.Column("training_opened_at", sa.Text(), nullable=True),
    sa.Column("training_score", sa.Float(), nullable=True),
    sa.Column("training_completed_at", sa.Text(), nullable=True),
    sa.Column("follow_on_score", sa.Float(), nullable=True),
    sa.Column("follow_on_completed_at", sa.Text(), nullable=True),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Column("updated_at", sa.Text(), nullable=False),
    sa.Index("ix_training_tracking_recipient_id", "recipient_id"),
)

content_interactions = sa.Table(
    "content_interactions",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("tracking_link_id", sa.Text(), nullable=False),
    sa.Column("tag_name", sa.Text(), nullable=False),
    sa.Column("interaction_type", sa.Text(), nullable=False),
    sa.Column("interaction_value", sa.Text(), nullable=True),
    sa.Column("success", sa.Boolean(), nullable=True),
    sa.Column("interaction_data", sa.Text(), nullable=True),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Index("ix_content_interactions_tracking_link_id", "tracking_link_id"),
)

recipient_tag_scores = sa.Table(
    "recipient_tag_scores",
    metadata,
    sa.Column("recipient_id", sa.Text(), nullable=False),
    sa.Column("tag_name", sa.Text(), nullable=False),
    sa.Column("score_count", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("total_attempts", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("last_updated", sa.Text(), nullable=False),
    sa.PrimaryKeyConstraint("recipient_id", "tag_name", name="pk_recipient_tag_scores"),
)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
