from .errors import ConfigurationError, PromptMatrixError, RequestError
from .evaluation import Evaluation, Winner, clamp_score
from .results import Results, ScenarioScore, ScoreSummary, TimingSummary
from .rubrics import Rubric, RubricRegistry
from .variants import Variant, VariantDefinition, VariantsConfig, build_variants

__all__ = [
    "ConfigurationError",
    "Evaluation",
    "PromptMatrixError",
    "RequestError",
    "Results",
    "Rubric",
    "RubricRegistry",
    "ScenarioScore",
    "ScoreSummary",
    "TimingSummary",
    "Variant",
    "VariantDefinition",
    "VariantsConfig",
    "Winner",
    "build_variants",
    "clamp_score",
]
