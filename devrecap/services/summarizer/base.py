"""Base class for LLM-backed summarizers.

The base handles LLM communication; subclasses define prompts and parsing.
Retries are not done here: the SDK's own retry is disabled so the caller's
bounded loop is the only one.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

import anthropic

from devrecap.config import settings

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")


class MalformedResponseError(ValueError):
    """The model answered, but not in a shape we can use."""


class BaseInterpreter(ABC, Generic[TInput, TOutput]):
    """Abstract base for prompt-in, structured-output-out model calls.

    Subclass this to create interpreters for different inputs or output
    formats.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or settings.model
        self.max_tokens = max_tokens or settings.max_tokens
        self.timeout = timeout or settings.request_timeout_seconds
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    @abstractmethod
    def get_system_prompt(self) -> str:
        """Return the system prompt for this interpreter."""
        ...

    @abstractmethod
    def format_input(self, input_data: TInput) -> str:
        """Convert typed input to prompt string."""
        ...

    @abstractmethod
    def parse_output(self, response_text: str) -> TOutput:
        """Parse LLM response into typed output.

        Raises:
            MalformedResponseError: nothing usable in the response
        """
        ...

    async def interpret(self, input_data: TInput) -> TOutput:
        """Main entry point: interpret input and return structured output."""
        user_message = self.format_input(input_data)

        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=self.get_system_prompt(),
            messages=[{"role": "user", "content": user_message}],
        )

        # Concatenate text blocks; anything else (tool use, thinking) is ignored
        response_text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not response_text.strip():
            raise MalformedResponseError("No text content in model response")
        return self.parse_output(response_text)
