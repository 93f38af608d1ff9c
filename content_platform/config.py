"""
Typed application configuration.

Every recognized option lives on one of the dataclasses below with an explicit
default. `load_config()` reads the process environment (after `.env`) once;
components receive the resulting objects through their constructors.

Environment variables:
    DATABASE_URL                 SQLAlchemy URL (postgresql+psycopg2://..., sqlite:///...)
    ANTHROPIC_API_KEY            Annotation service key
    ANNOTATION_API_URL           Annotation service endpoint
    ANNOTATION_MODEL             Model id (default claude-sonnet-4-5)
    ANNOTATION_MAX_TOKENS        Output token ceiling (default 8192)
    ANNOTATION_TIMEOUT_SECONDS   Per-call timeout (default 120)
    ANNOTATION_MAX_CONTENT_SIZE  Skip annotation above this many bytes (default 500000)
    ANNOTATION_CHUNK_SIZE        Chunk documents above this many bytes (default 50000)
    ANNOTATION_MAX_WORKERS       Concurrent chunk calls (default 4)
    LLM_FALLBACK_ENABLED         Enable OpenAI fallback (default false)
    OPENAI_API_KEY               Fallback key
    CONTENT_UPLOAD_DIR           Content root directory
    CONTENT_MAX_UPLOAD_SIZE      Upload ceiling in bytes (default 100 MB)
    ASSET_LEGACY_ORIGIN          Trusted origin for /system/ assets
    ASSET_FETCH_TIMEOUT_SECONDS  Per-asset timeout (default 10)
    ASSET_FETCH_TRIES            Per-asset tries (default 2)
    ASSET_MAX_WORKERS            Concurrent downloads (default 8)
    APP_BASE_URL                 Public base URL
    APP_DEBUG                    Expose error detail (default false)
    APP_TIMEZONE                 IANA zone for reported server time (default UTC)
    API_BEARER_TOKEN             Management API token (empty disables auth)
    PASSING_SCORE                Score threshold for a pass (default 80)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

EDUCATIONAL_TAGS: Tuple[str, ...] = (
    "brand-impersonation", "compliance", "emotions", "financial-transactions",
    "general-phishing", "cloud", "mobile", "news-and-events", "office-communications",
    "passwords", "reporting", "safe-web-browsing", "shipment-and-deliveries",
    "small-medium-businesses", "social-media", "spear-phishing", "data-breach",
    "malware", "mfa", "personal-security", "physical-security", "ransomware",
    "shared-file", "attachment-phish", "bec-ceo-fraud", "credential-phish",
    "qr-codes", "url-phish",
)

# NIST Phish Scale cue names grouped by cue type, with the criterion shown to the service.
PHISHING_CUE_TYPES: Tuple[Tuple[str, Tuple[Tuple[str, str], ...]], ...] = (
    ("Error", (
        ("spelling-grammar", "Does the message contain inaccurate spelling or grammar use, including mismatched plurality?"),
        ("inconsistency", "Are there inconsistencies contained in the email message?"),
    )),
    ("Technical indicator", (
        ("attachment-type", "Is there a potentially dangerous attachment?"),
        ("display-name-email-mismatch", "Does a display name hide the real sender or reply-to email address?"),
        ("url-hyperlinking", "Is there text that hides the true URL behind the text?"),
        ("domain-spoofing", "Is a domain name used in addresses or links plausibly similar to a legitimate entity's domain?"),
    )),
    ("Visual presentation indicator", (
        ("no-minimal-branding", "Are appropriately branded labeling, symbols, or insignias missing?"),
        ("logo-imitation-outdated", "Do any branding elements appear to be an imitation or out-of-date?"),
        ("unprofessional-design", "Does the design and formatting violate any conventional professional practices?"),
        ("security-indicators-icons", "Are any markers, images, or logos that imply the security of the email present?"),
    )),
    ("Language and content", (
        ("legal-language-disclaimers", "Does the message contain any legal-type language such as copyright information, disclaimers, or tax information?"),
        ("distracting-detail", "Does the email contain details that are superfluous or unrelated to the email's main premise?"),
        ("requests-sensitive-info", "Does the message contain a request for any sensitive information, including personally identifying information or credentials?"),
        ("sense-of-urgency", "Does the message contain time pressure to get users to quickly comply with the request, including implied pressure?"),
        ("threatening-language", "Does the message contain a threat, including an implied threat, such as legal ramifications for inaction?"),
        ("generic-greeting", "Does the message lack a greeting or lack personalization in the message?"),
        ("lack-signer-details", "Does the message lack detail about the sender, such as contact information?"),
        ("humanitarian-appeals", "Does the message make an appeal to help others in need?"),
    )),
    ("Common tactic", (
        ("too-good-to-be-true", "Does the message offer anything that is too good to be true, such as winning a contest, lottery, free vacation and so on?"),
        ("youre-special", "Does the email offer anything just for you, such as a valentine e-card from a secret admirer?"),
        ("limited-time-offer", "Does the email offer anything that won't last long or for a limited length of time?"),
        ("mimics-business-process", "Does the message appear to be a work or business-related process, such as a new voicemail, package delivery, order confirmation, notice to reset credentials and so on?"),
        ("poses-as-authority", "Does the message appear to be from a friend, colleague, boss or other authority entity?"),
    )),
)

PHISHING_CUES: Tuple[str, ...] = tuple(name for _, cues in PHISHING_CUE_TYPES for name, _ in cues)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_timezone(name: str, default: str) -> str:
    raw = _env_str(name, default)
    try:
        ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"{name} must be an IANA time zone name, got {raw!r}")
    return raw


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(frozen=True)
class AnnotationConfig:
    api_key: str = ""
    api_url: str = "https://api.anthropic.com"
    model: str = "claude-sonnet-4-5"
    max_tokens: int = 8192
    timeout_seconds: int = 120
    max_content_size: int = 500_000
    chunk_size: int = 50_000
    max_workers: int = 4
    truncation_ratio: float = 0.8
    fallback_enabled: bool = False
    fallback_provider: str = "openai"
    fallback_model: str = "gpt-4o-mini"
    fallback_api_key: str = ""
    educational_tags: Tuple[str, ...] = EDUCATIONAL_TAGS
    phishing_cues: Tuple[str, ...] = PHISHING_CUES


@dataclass(frozen=True)
class ContentConfig:
    upload_dir: str = "/var/www/html/content"
    max_upload_size: int = 100 * 1024 * 1024
    allowed_extensions: Dict[str, Tuple[str, ...]] = field(
        default_factory=lambda: {
            "scorm": ("zip",),
            "html": ("zip",),
            "video": ("mp4", "webm", "ogg"),
            "training": ("html",),
        }
    )
    legacy_asset_prefix: str = "/system/"
    legacy_asset_origin: str = "https://login.phishme.com"
    asset_fetch_timeout_seconds: int = 10
    asset_fetch_tries: int = 2
    asset_max_workers: int = 8


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///content_platform.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_recycle_seconds: int = 3600


@dataclass(frozen=True)
class AppSettings:
    base_url: str = "http://localhost:8000"
    debug: bool = False
    timezone: str = "UTC"
    bearer_token: str = ""

    @property
    def base_path(self) -> str:
        """Path component of the base URL without trailing slash ('' at root)."""
        return (urlparse(self.base_url).path or "").rstrip("/")


@dataclass(frozen=True)
class ScoringConfig:
    passing_score: int = 80


@dataclass(frozen=True)
class AppConfig:
    annotation: AnnotationConfig = field(default_factory=AnnotationConfig)
    content: ContentConfig = field(default_factory=ContentConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    app: AppSettings = field(default_factory=AppSettings)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """Build AppConfig from `.env` plus the process environment."""
    load_dotenv(env_file)
    annotation = AnnotationConfig(
        api_key=_env_str("ANTHROPIC_API_KEY", ""),
        api_url=_env_str("ANNOTATION_API_URL", AnnotationConfig.api_url),
        model=_env_str("ANNOTATION_MODEL", AnnotationConfig.model),
        max_tokens=_env_int("ANNOTATION_MAX_TOKENS", AnnotationConfig.max_tokens),
        timeout_seconds=_env_int("ANNOTATION_TIMEOUT_SECONDS", AnnotationConfig.timeout_seconds),
        max_content_size=_env_int("ANNOTATION_MAX_CONTENT_SIZE", AnnotationConfig.max_content_size),
        chunk_size=_env_int("ANNOTATION_CHUNK_SIZE", AnnotationConfig.chunk_size),
        max_workers=max(1, _env_int("ANNOTATION_MAX_WORKERS", AnnotationConfig.max_workers)),
        fallback_enabled=_env_bool("LLM_FALLBACK_ENABLED", False),
        fallback_provider=_env_str("LLM_FALLBACK_PROVIDER", AnnotationConfig.fallback_provider).lower(),
        fallback_model=_env_str("LLM_FALLBACK_MODEL", AnnotationConfig.fallback_model),
        fallback_api_key=_env_str("OPENAI_API_KEY", ""),
    )
    content = ContentConfig(
        upload_dir=_env_str("CONTENT_UPLOAD_DIR", ContentConfig.upload_dir),
        max_upload_size=_env_int("CONTENT_MAX_UPLOAD_SIZE", ContentConfig.max_upload_size),
        legacy_asset_origin=_env_str("ASSET_LEGACY_ORIGIN", ContentConfig.legacy_asset_origin).rstrip("/"),
        asset_fetch_timeout_seconds=_env_int("ASSET_FETCH_TIMEOUT_SECONDS", ContentConfig.asset_fetch_timeout_seconds),
        asset_fetch_tries=max(1, _env_int("ASSET_FETCH_TRIES", ContentConfig.asset_fetch_tries)),
        asset_max_workers=max(1, _env_int("ASSET_MAX_WORKERS", ContentConfig.asset_max_workers)),
    )
    database = DatabaseConfig(
        url=_env_str("DATABASE_URL", DatabaseConfig.url),
    )
    app = AppSettings(
        base_url=_env_str("APP_BASE_URL", AppSettings.base_url).rstrip("/"),
        debug=_env_bool("APP_DEBUG", False),
        timezone=_env_timezone("APP_TIMEZONE", AppSettings.timezone),
        bearer_token=_env_str("API_BEARER_TOKEN", ""),
    )
    scoring = ScoringConfig(passing_score=_env_int("PASSING_SCORE", ScoringConfig.passing_score))
    return AppConfig(annotation=annotation, content=content, database=database, app=app, scoring=scoring)
