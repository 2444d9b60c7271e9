from dataclasses import dataclass
from pathlib import Path
from typing import Any

import frontmatter
import structlog
import yaml

from ..domain.behaviors import BehaviorRegistry
from ..domain.contracts.suite import Candidate, JudgeConfig, Scenario, SuiteDefinition
from ..domain.errors import ConfigurationError
from ..domain.evaluation import DEFAULT_PASS_THRESHOLD
from ..domain.rubrics import RubricRegistry
from ..domain.variants import VariantDefinition, VariantsConfig, validate_temperature
from .traits import TraitLibrary

SUITE_FILE = "suite.yaml"
SCENARIOS_DIR = "scenarios"

_CANDIDATE_KEYS = {"name", "model", "system_prompt", "system", "options"}
_VARIANT_KEYS = {"name", "traits", "attributes"}

log = structlog.get_logger()


class YamlSuiteLoaderError(ConfigurationError):
    pass


@dataclass(frozen=True)
class LoadedSuite:
    definition: SuiteDefinition
    composer: TraitLibrary | None
    rubrics: RubricRegistry


class YamlSuiteLoader:
    """Loads a suite from ``suite.yaml`` plus optional ``scenarios/*.md`` files."""

    def __init__(
        self,
        rubrics: RubricRegistry | None = None,
        behaviors: BehaviorRegistry | None = None,
        default_judge_model: str | None = None,
    ) -> None:
        self._rubrics = rubrics
        self._behaviors = behaviors or BehaviorRegistry.with_builtins()
        self._default_judge_model = default_judge_model

    def load(self, path: Path) -> LoadedSuite:
        path = Path(path).resolve()

        if path.is_dir():
            suite_file = path / SUITE_FILE
            scenarios_dir: Path | None = path / SCENARIOS_DIR
        else:
            suite_file = path
            scenarios_dir = None

        if not suite_file.exists():
            raise YamlSuiteLoaderError(f"{SUITE_FILE} not found in {path}")

        data = self._read_yaml(suite_file)

        rubrics = self._load_rubrics(data.get("rubrics"), suite_file)
        composer = self._load_traits(data.get("traits"), suite_file)

        scenarios = self._load_inline_scenarios(data.get("scenarios"), rubrics)
        if scenarios_dir is not None and scenarios_dir.is_dir():
            scenarios.extend(self._load_scenario_files(scenarios_dir, rubrics))
        scenarios.extend(self._load_behaviors(data.get("behaviors"), rubrics))

        if not scenarios:
            raise YamlSuiteLoaderError(f"No scenarios defined in {suite_file}")

        names = [s.name for s in scenarios]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise YamlSuiteLoaderError(
                f"Duplicate scenario name(s) in {suite_file}: {', '.join(duplicates)}"
            )

        definition = SuiteDefinition(
            name=str(data.get("name") or suite_file.parent.name),
            candidates=self._load_candidates(data.get("candidates"), suite_file),
            scenarios=tuple(scenarios),
            variants=self._load_variants(data.get("variants"), suite_file),
            temperatures=self._load_temperatures(data.get("temperatures")),
            judge=self._load_judge(data.get("judge")),
        )

        log.debug(
            "suite.loaded",
            path=str(suite_file),
            candidates=len(definition.candidates),
            scenarios=len(definition.scenarios),
        )
        return LoadedSuite(definition=definition, composer=composer, rubrics=rubrics)

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise YamlSuiteLoaderError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise YamlSuiteLoaderError(f"{path.name} must contain a mapping")
        return data

    def _load_rubrics(self, data: Any, path: Path) -> RubricRegistry:
        if self._rubrics is None:
            rubrics = RubricRegistry.with_builtins()
        else:
            rubrics = RubricRegistry(self._rubrics.find(n) for n in self._rubrics.names())

        if data is None:
            return rubrics
        if not isinstance(data, dict):
            raise YamlSuiteLoaderError(
                f"rubrics must be a mapping of name to criteria list in {path}"
            )
        for name, criteria in data.items():
            if not isinstance(criteria, list):
                raise YamlSuiteLoaderError(f"Rubric '{name}' must be a list of criteria")
            rubrics.define(str(name), [str(c) for c in criteria])
        return rubrics

    def _load_traits(self, data: Any, path: Path) -> TraitLibrary | None:
        # Without traits, matrix attributes go straight onto plain variants.
        if data is None:
            return None
        if not isinstance(data, dict):
            raise YamlSuiteLoaderError(
                f"traits must be a mapping of trait id to attributes in {path}"
            )
        for name, attributes in data.items():
            if attributes is not None and not isinstance(attributes, dict):
                raise YamlSuiteLoaderError(f"Trait '{name}' must be a mapping")
        return TraitLibrary(data)

    def _load_candidates(self, data: Any, path: Path) -> tuple[Candidate, ...]:
        if not data:
            raise YamlSuiteLoaderError(f"No candidates specified in {path}")
        if not isinstance(data, list):
            raise YamlSuiteLoaderError("candidates must be a list")

        candidates = []
        for i, item in enumerate(data):
            if not isinstance(item, dict):
                raise YamlSuiteLoaderError(f"Candidate {i} must be a dictionary")

            name = item.get("name")
            model = item.get("model")
            if not name or not model:
                raise YamlSuiteLoaderError(f"Candidate {i} needs 'name' and 'model'")

            # Unrecognised keys are passed through to the provider.
            options = dict(item.get("options") or {})
            options.update({k: v for k, v in item.items() if k not in _CANDIDATE_KEYS})

            candidates.append(
                Candidate(
                    name=str(name),
                    model=str(model),
                    system_prompt=item.get("system_prompt") or item.get("system"),
                    options=options,
                )
            )
        return tuple(candidates)

    def _load_inline_scenarios(
        self, data: Any, rubrics: RubricRegistry
    ) -> list[Scenario]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise YamlSuiteLoaderError("scenarios must be a list")

        scenarios = []
        for i, item in enumerate(data):
            if not isinstance(item, dict):
                raise YamlSuiteLoaderError(f"Scenario {i} must be a dictionary")
            scenarios.append(
                self._build_scenario(item.get("name"), item.get("prompt"), item, rubrics)
            )
        return scenarios

    def _load_scenario_files(
        self, directory: Path, rubrics: RubricRegistry
    ) -> list[Scenario]:
        scenarios = []
        for scenario_file in sorted(directory.glob("*.md")):
            post = frontmatter.load(scenario_file)
            metadata = dict(post.metadata)
            name = metadata.pop("name", scenario_file.stem)
            scenarios.append(
                self._build_scenario(name, post.content.strip(), metadata, rubrics)
            )
        return scenarios

    def _load_behaviors(self, data: Any, rubrics: RubricRegistry) -> list[Scenario]:
        if data is None:
            return []
        if isinstance(data, str):
            data = [data]
        if not isinstance(data, list):
            raise YamlSuiteLoaderError("behaviors must be a list of behavior names")

        scenarios = []
        for name in data:
            scenarios.extend(self._behaviors.scenarios(str(name), rubrics))
        return scenarios

    def _build_scenario(
        self,
        name: Any,
        prompt: Any,
        data: dict[str, Any],
        rubrics: RubricRegistry,
    ) -> Scenario:
        if not name:
            raise YamlSuiteLoaderError("Scenario missing 'name'")
        if not prompt:
            raise YamlSuiteLoaderError(f"Scenario '{name}' has no prompt")

        criteria = data.get("criteria") or []
        if isinstance(criteria, str):
            criteria = [criteria]
        if data.get("criterion"):
            criteria = [*criteria, data["criterion"]]

        rubric = data.get("rubric")
        resolved = rubrics.resolve_criteria([str(c) for c in criteria], rubric)
        if not resolved:
            raise YamlSuiteLoaderError(f"Scenario '{name}' needs criteria or a rubric")

        return Scenario(
            name=str(name),
            prompt=str(prompt),
            system_prompt=data.get("system_prompt") or data.get("system"),
            context=data.get("context"),
            criteria=resolved,
            rubric=rubric,
        )

    def _load_variants(self, data: Any, path: Path) -> VariantsConfig | None:
        if data is None:
            return None
        if not isinstance(data, dict):
            raise YamlSuiteLoaderError(
                f"variants must be a mapping with 'definitions' and/or 'trait_matrix' in {path}"
            )

        definitions = []
        for i, item in enumerate(data.get("definitions") or []):
            if not isinstance(item, dict) or not item.get("name"):
                raise YamlSuiteLoaderError(f"Variant definition {i} needs a 'name'")

            traits = item.get("traits") or []
            if isinstance(traits, str):
                traits = [traits]
            attributes = dict(item.get("attributes") or {})
            attributes.update({k: v for k, v in item.items() if k not in _VARIANT_KEYS})

            definitions.append(
                VariantDefinition(
                    name=str(item["name"]),
                    traits=tuple(str(t) for t in traits),
                    attributes=attributes,
                )
            )

        return VariantsConfig(
            definitions=tuple(definitions),
            trait_matrix=data.get("trait_matrix"),
        )

    def _load_temperatures(self, data: Any) -> tuple[float | None, ...]:
        if data is None:
            return (None,)
        if not isinstance(data, list):
            data = [data]
        return tuple(data)

    def _load_judge(self, data: Any) -> JudgeConfig:
        data = dict(data or {})
        defaults = JudgeConfig()

        try:
            pass_threshold = int(data.get("pass_threshold", DEFAULT_PASS_THRESHOLD))
        except (TypeError, ValueError) as e:
            raise YamlSuiteLoaderError(f"Invalid judge pass_threshold: {e}") from e

        temperature = data.get("temperature", defaults.temperature)
        return JudgeConfig(
            model=data.get("model") or self._default_judge_model or defaults.model,
            pass_threshold=pass_threshold,
            temperature=validate_temperature(temperature),
            system_prompt=data.get("system_prompt") or data.get("system"),
        )
