from content_platform.repositories.content_repo import ContentRepository
from content_platform.repositories.tracking_repo import TrackingRepository

__all__ = ["ContentRepository", "TrackingRepository"]
