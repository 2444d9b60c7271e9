from typing import Any, Mapping, Sequence

from ..domain.errors import ConfigurationError
from ..domain.variants import Variant


class TraitLibrary:
    """Trait composer backed by a mapping of trait id -> variant attributes.

    Traits are applied in the order given, later traits overriding earlier
    ones, then literal attributes override everything.
    """

    def __init__(self, traits: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._traits: dict[str, dict[str, Any]] = {}
        for name, attributes in (traits or {}).items():
            self.define(name, attributes)

    def define(self, name: str, attributes: Mapping[str, Any] | None) -> None:
        attributes = dict(attributes or {})
        unknown = set(attributes) - Variant.attribute_names()
        if unknown:
            raise ConfigurationError(
                f"Trait '{name}' sets unknown attribute(s): {', '.join(sorted(unknown))}"
            )
        self._traits[str(name)] = attributes

    def __contains__(self, name: object) -> bool:
        return name in self._traits

    def names(self) -> list[str]:
        return list(self._traits)

    def build(
        self, name: str, traits: Sequence[str], attributes: dict[str, Any]
    ) -> Variant:
        merged: dict[str, Any] = {}
        for trait in traits:
            if trait not in self._traits:
                raise ConfigurationError(f"Unknown trait '{trait}' for variant '{name}'")
            merged.update(self._traits[trait])
        merged.update(attributes)
        return Variant.from_attributes(name, traits, merged)
