from content_platform.services.annotation.llm_gateway import AnnotationGateway
from content_platform.services.annotation.orchestrator import AnnotationOrchestrator
from content_platform.services.annotation.types import AnnotationMode, AnnotationResult

__all__ = [
    "AnnotationGateway",
    "AnnotationMode",
    "AnnotationOrchestrator",
    "AnnotationResult",
]
