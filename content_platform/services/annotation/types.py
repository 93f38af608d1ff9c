"""
Shared datatypes for the annotation pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class AnnotationMode(str, Enum):
    EDUCATIONAL = "educational-tagging"
    PHISHING = "phishing-cue-tagging"

    @property
    def marker_attribute(self) -> str:
        return "data-cue" if self is AnnotationMode.PHISHING else "data-tag"


@dataclass
class AnnotationResult:
    html: str
    tags: List[str] = field(default_factory=list)
    difficulty: Optional[int] = None
    skipped: bool = False
    failed_chunks: List[int] = field(default_factory=list)
    chunk_count: int = 1

    @property
    def partial(self) -> bool:
        return bool(self.failed_chunks)
