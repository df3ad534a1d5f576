"""Model catalogue and per-model capability checks.

Model identifiers travel as plain strings; an identifier the service does
not know is accepted and simply has no extra capabilities.
"""

from enum import Enum


class Model(str, Enum):
    """Models exposed by the chat service."""
    GPT4_MINI = "gpt-4o-mini"
    CLAUDE3_HAIKU = "claude-3-haiku-20240307"
    LLAMA = "meta-llama/Llama-3.3-70B-Instruct-Turbo"
    MIXTRAL = "mistralai/Mistral-Small-24B-Instruct-2501"
    O4_MINI = "o4-mini"


DEFAULT_MODEL = Model.GPT4_MINI.value

# Only gpt-4o-mini accepts image parts and the WebSearch tool flag.
IMAGE_MODELS = frozenset({Model.GPT4_MINI.value})
WEB_SEARCH_MODELS = frozenset({Model.GPT4_MINI.value})
ADVANCED_TOOL_MODELS = frozenset({Model.GPT4_MINI.value})


def _model_key(model_id) -> str:
    return model_id.value if isinstance(model_id, Model) else str(model_id)


def supports_images(model_id: str) -> bool:
    return _model_key(model_id) in IMAGE_MODELS


def supports_web_search(model_id: str) -> bool:
    return _model_key(model_id) in WEB_SEARCH_MODELS


def supports_advanced_tools(model_id: str) -> bool:
    return _model_key(model_id) in ADVANCED_TOOL_MODELS


def available_models() -> list[str]:
    """Return every known model identifier, in catalogue order."""
    return [m.value for m in Model]
