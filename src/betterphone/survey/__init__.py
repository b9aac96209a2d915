"""Survey step definitions, navigation and answer persistence."""

from betterphone.survey.navigator import Destination, DestinationKind, StepNavigator
from betterphone.survey.steps import (
    PARENT_STEPS,
    SCHOOL_ADMIN_STEPS,
    StepDefinition,
    StepRegistry,
    StepType,
)
from betterphone.survey.variants import PARENT, SCHOOL_ADMIN, SurveyVariant, get_variant

__all__ = [
    "Destination",
    "DestinationKind",
    "PARENT",
    "PARENT_STEPS",
    "SCHOOL_ADMIN",
    "SCHOOL_ADMIN_STEPS",
    "StepDefinition",
    "StepNavigator",
    "StepRegistry",
    "StepType",
    "SurveyVariant",
    "get_variant",
]
