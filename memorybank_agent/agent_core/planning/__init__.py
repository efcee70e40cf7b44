"""Planning subsystem: model service abstraction and the structured planner."""

from .model_service import ModelService, PydanticAIModelService
from .planner import Planner, PlanResponse

__all__ = [
    "ModelService",
    "PydanticAIModelService",
    "Planner",
    "PlanResponse",
]
