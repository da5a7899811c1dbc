"""
Landing-page generation: design plan, HTML rendering and improvement.
"""

from ailand.generation.generator import RETRY_CONTENT_THRESHOLD, TwoStageGenerator
from ailand.generation.models import ActionType, GenerationRequest, GenerationResult
from ailand.generation.postprocess import strip_code_fences

__all__ = [
    "ActionType",
    "GenerationRequest",
    "GenerationResult",
    "RETRY_CONTENT_THRESHOLD",
    "TwoStageGenerator",
    "strip_code_fences",
]
