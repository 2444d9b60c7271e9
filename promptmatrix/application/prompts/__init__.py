from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Template

PROMPTS_DIR = Path(__file__).parent


@lru_cache(maxsize=32)
def load_prompt(name: str) -> str:
    prompt_file = PROMPTS_DIR / f"{name}.md"
    if not prompt_file.exists():
        raise FileNotFoundError(f"Prompt template not found: {prompt_file}")

    return prompt_file.read_text()


def render_prompt(name: str, **values: Any) -> str:
    template = Template(load_prompt(name), trim_blocks=True, lstrip_blocks=True)
    return template.render(**values).strip()
