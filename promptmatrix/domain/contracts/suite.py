from dataclasses import dataclass, field
from typing import Any

from ..errors import ConfigurationError
from ..evaluation import DEFAULT_PASS_THRESHOLD
from ..variants import Variant, VariantsConfig, validate_temperature


@dataclass(frozen=True)
class Candidate:
    name: str
    model: str
    system_prompt: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Scenario:
    name: str
    prompt: str
    system_prompt: str | None = None
    context: str | None = None
    criteria: tuple[str, ...] = ()
    rubric: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "criteria", tuple(self.criteria))

    def compose_prompt(self, variant: Variant | None = None) -> str:
        if variant is None:
            return self.prompt
        if variant.full_prompt:
            return variant.full_prompt
        if variant.base_prompt:
            return variant.base_prompt

        parts = []
        if variant.credential:
            parts.append(variant.credential)
        parts.append(self.prompt)
        return " ".join(parts)

    def compose_system_prompt(
        self,
        variant: Variant | None = None,
        candidate_system_prompt: str | None = None,
    ) -> str | None:
        # variant > scenario > candidate
        if variant is not None and variant.system_prompt:
            return variant.system_prompt
        return self.system_prompt or candidate_system_prompt


@dataclass(frozen=True)
class JudgeConfig:
    model: str = "openrouter:google/gemini-3-flash-preview"
    pass_threshold: int = DEFAULT_PASS_THRESHOLD
    temperature: float | None = 0.0
    system_prompt: str | None = None


@dataclass(frozen=True)
class SuiteDefinition:
    name: str
    candidates: tuple[Candidate, ...]
    scenarios: tuple[Scenario, ...]
    variants: VariantsConfig | None = None
    temperatures: tuple[float | None, ...] = (None,)
    judge: JudgeConfig = field(default_factory=JudgeConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "candidates", tuple(self.candidates))
        object.__setattr__(self, "scenarios", tuple(self.scenarios))

        temperatures = tuple(validate_temperature(t) for t in self.temperatures)
        object.__setattr__(self, "temperatures", temperatures or (None,))

        seen: set[str] = set()
        for candidate in self.candidates:
            if candidate.name in seen:
                raise ConfigurationError(
                    f"Duplicate candidate name '{candidate.name}' in suite '{self.name}'"
                )
            seen.add(candidate.name)

    @property
    def candidate_names(self) -> list[str]:
        return [c.name for c in self.candidates]


@dataclass(frozen=True)
class Combination:
    """One (scenario, variant, temperature) cell of the matrix."""

    index: int
    total: int
    scenario: Scenario
    variant: Variant
    temperature: float | None

    @property
    def effective_temperature(self) -> float | None:
        if self.temperature is not None:
            return self.temperature
        return self.variant.temperature

    @property
    def label(self) -> str:
        parts = [self.scenario.name]
        if self.variant.name != "default":
            parts.append(self.variant.name)
        if self.temperature is not None:
            parts.append(f"t={self.temperature}")
        return " / ".join(parts)
