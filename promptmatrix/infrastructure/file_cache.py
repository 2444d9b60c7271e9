import hashlib
import json
from pathlib import Path
from typing import Any

import structlog

from ..domain.contracts.cache import CacheContract
from ..domain.contracts.provider import ChatMessage, ProviderResponse
from .settings import DEFAULT_CACHE_DIR

log = structlog.get_logger()


class FileCache(CacheContract):
    def __init__(self, cache_dir: Path = DEFAULT_CACHE_DIR) -> None:
        self._cache_dir = cache_dir

    def _key_path(self, key: str) -> Path:
        return self._cache_dir / f"{key}.json"

    def make_key(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        options: dict[str, Any] | None = None,
    ) -> str:
        key_data = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "options": options or {},
        }
        serialized = json.dumps(key_data, sort_keys=True)
        return hashlib.sha256(serialized.encode()).hexdigest()

    def get(self, key: str) -> ProviderResponse | None:
        path = self._key_path(key)
        if not path.exists():
            return None

        with open(path) as f:
            data = json.load(f)

        log.debug("cache.hit", key=key[:12])
        return ProviderResponse(
            content=data["content"],
            input_tokens=data["input_tokens"],
            output_tokens=data["output_tokens"],
            latency_ms=data["latency_ms"],
            cost=data.get("cost"),
            model=data.get("model"),
            raw=data.get("raw", {}),
        )

    def put(self, key: str, response: ProviderResponse) -> None:
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "content": response.content,
            "input_tokens": response.input_tokens,
            "output_tokens": response.output_tokens,
            "latency_ms": response.latency_ms,
            "cost": response.cost,
            "model": response.model,
            "raw": response.raw,
        }
        with open(self._key_path(key), "w") as f:
            json.dump(data, f, default=str)

    def has(self, key: str) -> bool:
        return self._key_path(key).exists()

    def clear(self) -> None:
        if not self._cache_dir.exists():
            return
        for path in self._cache_dir.glob("*.json"):
            path.unlink()
