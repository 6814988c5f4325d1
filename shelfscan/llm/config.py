from __future__ import annotations

import os
from dataclasses import dataclass

from ..config import env_flag


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = os.getenv("GROQ_API_KEY", "")
    model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    timeout: float = 30.0
    max_tokens: int = 2048
    temperature: float = 0.7
    json_mode: bool = True
    enabled: bool = env_flag("LLM_ENABLED", True)


DEFAULT_LLM_CONFIG = LLMConfig()
