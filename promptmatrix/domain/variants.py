import itertools
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Protocol, Sequence

from .errors import ConfigurationError

DEFAULT_VARIANT_NAME = "default"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_STANCE = "neutral"
DEFAULT_DIALECT = "formal"
DEFAULT_VERBOSITY = "normal"
TEMPERATURE_RANGE = (0.0, 2.0)


def validate_temperature(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Temperature must be numeric, got {value!r}")
    low, high = TEMPERATURE_RANGE
    if not low <= value <= high:
        raise ConfigurationError(
            f"Temperature {value} outside valid range {low}-{high}"
        )
    return float(value)


@dataclass(frozen=True)
class Variant:
    name: str = DEFAULT_VARIANT_NAME
    traits_applied: tuple[str, ...] = ()
    credential: str | None = None
    stance: str = DEFAULT_STANCE
    dialect: str = DEFAULT_DIALECT
    verbosity: str = DEFAULT_VERBOSITY
    temperature: float | None = DEFAULT_TEMPERATURE
    context_history: tuple[dict[str, str], ...] = ()
    output_schema: str = "free"
    schema_instruction: str | None = None
    base_prompt: str | None = None
    full_prompt: str | None = None
    system_prompt: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "temperature", validate_temperature(self.temperature))
        object.__setattr__(self, "traits_applied", tuple(self.traits_applied))
        object.__setattr__(self, "context_history", tuple(self.context_history))
        for message in self.context_history:
            if not isinstance(message, dict) or not {"role", "content"} <= set(message):
                raise ConfigurationError(
                    f"Variant '{self.name}' history entries need 'role' and 'content'"
                )

    @classmethod
    def attribute_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls)) - {"name", "traits_applied"}

    @classmethod
    def from_attributes(
        cls,
        name: str,
        traits: Sequence[str] = (),
        attributes: dict[str, Any] | None = None,
    ) -> "Variant":
        attributes = dict(attributes or {})
        unknown = set(attributes) - cls.attribute_names()
        if unknown:
            raise ConfigurationError(
                f"Unknown variant attribute(s) for '{name}': {', '.join(sorted(unknown))}"
            )
        return cls(name=str(name), traits_applied=tuple(traits), **attributes)

    @property
    def variant_key(self) -> str:
        return (
            self.name
            or "_".join(sorted(self.traits_applied))
            or DEFAULT_VARIANT_NAME
        )

    @property
    def is_customized(self) -> bool:
        return (
            bool((self.credential or "").strip())
            or self.stance != DEFAULT_STANCE
            or (
                self.temperature is not None
                and self.temperature != DEFAULT_TEMPERATURE
            )
        )

    def with_composed_prompt(self, prompt: str) -> "Variant":
        return replace(self, full_prompt=prompt)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["traits_applied"] = list(self.traits_applied)
        data["context_history"] = [dict(m) for m in self.context_history]
        data["variant_key"] = self.variant_key
        return {k: v for k, v in data.items() if v is not None}


class TraitComposer(Protocol):
    """Builds a variant from trait identifiers plus literal attribute overrides."""

    def build(
        self, name: str, traits: Sequence[str], attributes: dict[str, Any]
    ) -> Variant: ...


@dataclass(frozen=True)
class VariantDefinition:
    name: str
    traits: tuple[str, ...] = ()
    attributes: dict[str, Any] = field(default_factory=dict)


def _validate_trait_matrix(dimensions: Sequence[Any]) -> None:
    if not dimensions:
        raise ConfigurationError("trait_matrix requires at least 1 dimension")
    for i, dim in enumerate(dimensions):
        if not isinstance(dim, (list, tuple)) or not dim:
            raise ConfigurationError(
                f"trait_matrix dimension {i} must be a non-empty list"
            )


@dataclass(frozen=True)
class VariantsConfig:
    definitions: tuple[VariantDefinition, ...] = ()
    trait_matrix: tuple[Sequence[str], ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "definitions", tuple(self.definitions))
        if self.trait_matrix is not None:
            _validate_trait_matrix(self.trait_matrix)
            object.__setattr__(self, "trait_matrix", tuple(self.trait_matrix))

    def trait_combinations(self) -> list[tuple[str, ...]]:
        if self.trait_matrix is None:
            return []
        _validate_trait_matrix(self.trait_matrix)
        return [
            tuple(str(t) for t in combo)
            for combo in itertools.product(*self.trait_matrix)
        ]


def build_variants(
    config: VariantsConfig | None, composer: TraitComposer | None = None
) -> list[Variant]:
    """Expand explicit variants and the trait matrix into a unique, ordered list.

    Explicit definitions come first, then matrix combinations in product order
    (first dimension varies slowest). When two variants share a name the first
    one wins. With nothing configured a single ``default`` variant is returned.
    """
    if config is None:
        return [Variant()]

    if composer is not None:

        def build(name: str, traits: Sequence[str], attributes: dict[str, Any]) -> Variant:
            if traits:
                variant = composer.build(name, traits, attributes)
            else:
                variant = Variant.from_attributes(name, (), attributes)
            return replace(variant, name=str(name), traits_applied=tuple(traits))

    else:

        def build(name: str, traits: Sequence[str], attributes: dict[str, Any]) -> Variant:
            return Variant.from_attributes(name, traits, attributes)

    variants = [
        build(defn.name, defn.traits, defn.attributes) for defn in config.definitions
    ]
    for combo in config.trait_combinations():
        variants.append(build("_".join(combo), combo, {}))

    if not variants:
        return [Variant()]

    seen: set[str] = set()
    unique = []
    for variant in variants:
        if variant.name in seen:
            continue
        seen.add(variant.name)
        unique.append(variant)
    return unique
