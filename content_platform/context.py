"""
Per-request context passed explicitly to services.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from content_platform.config import AppConfig


@dataclass(frozen=True)
class RequestContext:
    base_path: str = ""
    debug: bool = False
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_config(cls, config: AppConfig, request_id: str | None = None) -> "RequestContext":
        if request_id:
            return cls(base_path=config.app.base_path, debug=config.app.debug, request_id=request_id)
        return cls(base_path=config.app.base_path, debug=config.app.debug)
