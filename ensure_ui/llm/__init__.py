from .llm_api import LLMAPI, LLMProvider
from .prompt import LLMPrompt

__all__ = ["LLMAPI", "LLMProvider", "LLMPrompt"]
