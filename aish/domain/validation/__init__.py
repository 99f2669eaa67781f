"""Domain validation utilities."""

from .path_validator import PathValidator
from .plan_validator import PlanValidator, validate_plan

__all__ = [
    "PathValidator",
    "PlanValidator",
    "validate_plan",
]
