from .cache import CacheContract
from .provider import ChatMessage, ProviderContract, ProviderFactory, ProviderResponse
from .suite import Candidate, Combination, JudgeConfig, Scenario, SuiteDefinition

__all__ = [
    "CacheContract",
    "Candidate",
    "Combination",
    "ChatMessage",
    "JudgeConfig",
    "ProviderContract",
    "ProviderFactory",
    "ProviderResponse",
    "Scenario",
    "SuiteDefinition",
]
