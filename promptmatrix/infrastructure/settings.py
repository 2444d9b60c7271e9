import os
from dataclasses import dataclass
from pathlib import Path

from ..domain.errors import ConfigurationError

DEFAULT_API_URL = "https://openrouter.ai/api/v1"
DEFAULT_JUDGE_MODEL = "openrouter:google/gemini-3-flash-preview"
DEFAULT_CACHE_DIR = Path(".promptmatrix_cache")


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    api_key_env_var: str = "OPENROUTER_API_KEY"
    judge_model: str = DEFAULT_JUDGE_MODEL
    request_timeout: float = 120.0
    cache_dir: Path = DEFAULT_CACHE_DIR

    @classmethod
    def from_env(cls) -> "Settings":
        timeout = os.getenv("PROMPTMATRIX_REQUEST_TIMEOUT", "120")
        try:
            request_timeout = float(timeout)
        except ValueError:
            raise ConfigurationError(
                f"PROMPTMATRIX_REQUEST_TIMEOUT must be a number, got {timeout!r}"
            ) from None

        return cls(
            api_url=os.getenv("PROMPTMATRIX_API_URL", DEFAULT_API_URL),
            api_key_env_var=os.getenv("PROMPTMATRIX_API_KEY_ENV", "OPENROUTER_API_KEY"),
            judge_model=os.getenv("PROMPTMATRIX_JUDGE_MODEL", DEFAULT_JUDGE_MODEL),
            request_timeout=request_timeout,
            cache_dir=Path(os.getenv("PROMPTMATRIX_CACHE_DIR", str(DEFAULT_CACHE_DIR))),
        )
