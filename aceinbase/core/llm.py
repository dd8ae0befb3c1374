from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.messages import BaseMessage
from typing import List, Optional
import logging
from aceinbase.config import Config
from aceinbase.core.errors import InitializationError, ProviderError

logger = logging.getLogger(__name__)

class GeminiLLMWrapper:
    def __init__(self, model: Optional[str] = None):
        """Initialize with config values directly"""
        if not Config.GEMINI_API_KEY:
            raise InitializationError("GEMINI_API_KEY is not set; cannot create the Gemini client.")
        self.model = model or Config.GEMINI_CHAT_MODEL
        self.llm = ChatGoogleGenerativeAI(
            google_api_key=Config.GEMINI_API_KEY,
            model=self.model,
            temperature=Config.GEMINI_TEMPERATURE,
            max_output_tokens=Config.GEMINI_MAX_OUTPUT_TOKENS,
        )

    async def generate_response(
        self,
        messages: List[BaseMessage],
        **kwargs
    ) -> str:
        try:
            response = await self.llm.ainvoke(messages, **kwargs)
        except Exception as e:
            logger.error(f"LLM generation error ({self.model}): {e}")
            raise ProviderError(f"Gemini request failed: {e}") from e

        text = _content_to_text(response.content).strip()
        if not text:
            logger.error(f"LLM returned an empty response ({self.model})")
            raise ProviderError("Empty response from Gemini")
        return text


def _content_to_text(content) -> str:
    # Gemini can answer with a list of content parts instead of a plain string
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)
