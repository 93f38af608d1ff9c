"""
Serve content to a recipient: validate the session, record the view and
return the artifact bound to that session.
"""

from __future__ import annotations

import html as html_lib
import os
from typing import Optional

from content_platform.config import ContentConfig
from content_platform.context import RequestContext
from content_platform.errors import ContentNotFoundError, ValidationError
from content_platform.repositories.content_repo import ContentRepository
from content_platform.services.instrumentation import render_for_session
from content_platform.services.link_service import restore_uuid_dashes
from content_platform.services.tracking_service import TrackingService
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)

_VIDEO_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        body {{ margin: 0; padding: 20px; font-family: Arial, sans-serif; background: #f5f5f5; }}
        .container {{ max-width: 1200px; margin: 0 auto; background: white; padding: 20px; border-radius: 8px; }}
        video {{ width: 100%; max-width: 800px; display: block; margin: 20px auto; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{title}</h1>
        <video controls>
            <source src="{src}" type="{mime}">
            Your browser does not support the video tag.
        </video>
    </div>
</body>
</html>
"""


class LaunchService:
    def __init__(
        self,
        config: ContentConfig,
        context: RequestContext,
        tracking_service: Optional[TrackingService] = None,
        content_repo: Optional[ContentRepository] = None,
    ) -> None:
        self.config = config
        self.context = context
        self.content_repo = content_repo or ContentRepository()
        self.tracking_service = tracking_service or TrackingService(content_repo=self.content_repo)

    def launch(self, content_ref: str, tracking_ref: str) -> str:
        content_id = restore_uuid_dashes(content_ref)
        tracking_id = restore_uuid_dashes(tracking_ref)
        if not content_id or not tracking_id:
            raise ValidationError("Invalid ID format in URL")

        self.tracking_service.validate_session(tracking_id)
        content = self.content_repo.get_content_by_id(content_id)
        if not content:
            raise ContentNotFoundError("Content not found", detail=content_id)

        self.tracking_service.track_view(tracking_id, content_id)

        content_url = content.get("content_url")
        if not content_url:
            raise ContentNotFoundError("Content has not been processed yet", detail=content_id)

        if content.get("content_type") == "video":
            return self._video_page(content)

        path = os.path.realpath(os.path.join(self.config.upload_dir, content_url))
        root = os.path.realpath(self.config.upload_dir)
        if not path.startswith(root + os.sep) or not os.path.isfile(path):
            raise ContentNotFoundError("Content file not found", detail=content_url)
        with open(path, "r", encoding="utf-8") as handle:
            artifact = handle.read()
        return render_for_session(artifact, tracking_id)

    def _video_page(self, content) -> str:
        content_url = content["content_url"]
        _, _, ext = content_url.rpartition(".")
        return _VIDEO_PAGE.format(
            title=html_lib.escape(content.get("title") or ""),
            src=html_lib.escape(f"{self.context.base_path}/content/{content_url}"),
            mime=f"video/{html_lib.escape(ext.lower())}",
        )
