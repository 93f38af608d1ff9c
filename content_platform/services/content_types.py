from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from content_platform.errors import UnsupportedContentTypeError


class ContentKind(Enum):
    SCORM = "scorm"
    HTML = "html"
    VIDEO = "video"
    TRAINING = "training"
    LANDING = "landing"
    EMAIL = "email"


VIDEO_EXTENSIONS = ("mp4", "webm", "ogg")


def parse_content_kind(value: str) -> ContentKind:
    try:
        return ContentKind((value or "").strip().lower())
    except ValueError:
        raise UnsupportedContentTypeError(f"Unsupported content type: {value!r}") from None


@dataclass(frozen=True)
class ScormPackage:
    content_id: str
    archive_path: str
    title: Optional[str] = None

    kind = ContentKind.SCORM


@dataclass(frozen=True)
class HtmlPackage:
    content_id: str
    archive_path: str
    title: Optional[str] = None

    kind = ContentKind.HTML


@dataclass(frozen=True)
class HtmlPage:
    content_id: str
    html: str
    kind: ContentKind = ContentKind.TRAINING  # TRAINING | LANDING

    def __post_init__(self) -> None:
        if self.kind not in (ContentKind.TRAINING, ContentKind.LANDING):
            raise UnsupportedContentTypeError(f"HtmlPage cannot carry kind {self.kind.value}")


@dataclass(frozen=True)
class EmailContent:
    content_id: str
    html: str
    subject: str = ""
    from_address: str = ""

    kind = ContentKind.EMAIL


@dataclass(frozen=True)
class VideoContent:
    content_id: str
    file_name: str

    kind = ContentKind.VIDEO

    @property
    def extension(self) -> str:
        _, _, ext = self.file_name.rpartition(".")
        return ext.lower() if ext != self.file_name else ""

    def __post_init__(self) -> None:
        if self.extension not in VIDEO_EXTENSIONS:
            raise UnsupportedContentTypeError(f"Unsupported video format: {self.file_name!r}")


ContentVariant = Union[ScormPackage, HtmlPackage, HtmlPage, EmailContent, VideoContent]
