import os
from typing import Any, Dict

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "llama-3.3-70b-versatile"


class AISettings:
    """Helper exposing typed accessors for the classifier endpoint configuration.

    Values come from the ``ai_settings`` block of ``app_config.yml``. The API
    key itself is never stored in the YAML file; ``api_key_env`` names the
    environment variable (loaded from ``.env``) that holds it.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def base_url(self) -> str:
        return str(self.data.get("base_url") or DEFAULT_BASE_URL)

    @property
    def model_name(self) -> str:
        return str(self.data.get("model_name") or DEFAULT_MODEL)

    @property
    def api_key_env(self) -> str:
        return str(self.data.get("api_key_env") or "GROQ_API_KEY")

    @property
    def api_key(self) -> str | None:
        return os.getenv(self.api_key_env) or None

    @property
    def temperature(self) -> float:
        return float(self.data.get("temperature", 0.1))

    @property
    def max_tokens(self) -> int:
        return int(self.data.get("max_tokens", 500))

    @property
    def top_p(self) -> float:
        return float(self.data.get("top_p", 0.9))

    @property
    def request_timeout(self) -> float:
        return float(self.data.get("request_timeout", 30.0))

    @property
    def system_prompt(self) -> str:
        return str(self.data.get("system_prompt") or "")
