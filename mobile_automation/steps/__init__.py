# Importing the step modules registers their steps on `default_registry`.
from . import calculator, common, explorer, fixtures  # noqa: F401
from .context import ScenarioContext
from .registry import (
    AmbiguousStepError,
    StepDefinition,
    StepDefinitionError,
    StepMatch,
    StepRegistry,
    UndefinedStepError,
    default_registry,
    given,
    step,
    then,
    when,
)

__all__ = [
    "AmbiguousStepError",
    "ScenarioContext",
    "StepDefinition",
    "StepDefinitionError",
    "StepMatch",
    "StepRegistry",
    "UndefinedStepError",
    "default_registry",
    "given",
    "step",
    "then",
    "when",
]
