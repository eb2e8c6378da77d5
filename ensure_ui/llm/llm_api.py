import logging
from enum import Enum

import httpx
from openai import AsyncOpenAI

from ensure_ui.exceptions import GenerationError

DEFAULT_ENSURE_UI_URL = "https://ensureui-be-production.up.railway.app/ensure"


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ENSURE_UI = "ensure_ui"


class LLMAPI:
    def __init__(self, llm_config) -> None:
        self.llm_config = llm_config
        try:
            self.api_type = LLMProvider(self.llm_config.get("api", LLMProvider.OPENAI.value))
        except ValueError:
            raise ValueError(
                f"Invalid API type: {self.llm_config.get('api')}. "
                f"Choose one of: {', '.join(p.value for p in LLMProvider)}"
            )
        self.model = self.llm_config.get("model", "gpt-4o")
        self.api_key = self.llm_config.get("api_key")
        self.base_url = self.llm_config.get("base_url")
        self.client = None  # AsyncOpenAI client
        self._client = None  # httpx client

    async def initialize(self):
        if not self.api_key:
            raise ValueError("API key is empty. LLM client not initialized.")

        if self.api_type == LLMProvider.OPENAI:
            self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url) if self.base_url else AsyncOpenAI(
                api_key=self.api_key)
            logging.debug(f"AsyncOpenAI client initialized. Model: {self.model}, base URL: {self.base_url}")
        else:
            await self._get_client()
            logging.debug(f"EnsureUI client initialized. Model: {self.model}, endpoint: {self._endpoint()}")

        return self

    async def _get_client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=60.0)
        return self._client

    def _endpoint(self):
        return self.base_url or DEFAULT_ENSURE_UI_URL

    async def generate_text(self, prompt, system_prompt, max_tokens=500, temperature=None):
        """Send one prompt and return the stripped text of the first completion.

        Raises:
            GenerationError: the backend was unreachable or returned an unusable body
        """
        if temperature is None:
            temperature = self.llm_config.get("temperature", 0.1)

        messages = self._create_messages(system_prompt, prompt)
        try:
            if self.client is None and self._client is None:
                await self.initialize()
            if self.api_type == LLMProvider.OPENAI:
                content = await self._call_openai(messages, max_tokens, temperature)
            else:
                content = await self._call_ensure_ui(messages, max_tokens, temperature)
        except GenerationError:
            raise
        except Exception as e:
            logging.error(f"LLMAPI.generate_text encountered error: {e}")
            raise GenerationError(str(e)) from e

        if content is None:
            raise GenerationError("Empty response from LLM")
        return content.strip()

    @staticmethod
    def _create_messages(system_prompt, prompt):
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

    async def _call_openai(self, messages, max_tokens, temperature):
        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            timeout=60,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return completion.choices[0].message.content

    async def _call_ensure_ui(self, messages, max_tokens, temperature):
        client = await self._get_client()
        response = await client.post(
            self._endpoint(),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )
        if response.status_code < 200 or response.status_code >= 300:
            raise GenerationError(f"EnsureUI API error: {response.status_code} {response.reason_phrase}")

        try:
            data = response.json()
            return data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected EnsureUI API response body: {e}") from e

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
        if self.client is not None:
            await self.client.close()
            self.client = None
