import anthropic


class LLMError(Exception):
    """Raised when the LLM call fails or returns no usable text."""
    pass


class AnthropicLLM:
    """
    Prompt in, text out.

    Extraction and digest generation only need this one call, so tests can
    swap in any object with a matching `complete` method.
    """

    def __init__(self, api_key: str, model: str):
        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model

    def complete(self, prompt: str, max_tokens: int = 2000) -> str:
        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}]
            )
        except anthropic.APIError as e:
            raise LLMError(f"Anthropic API error: {e}") from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise LLMError("Anthropic returned an empty response")
        return text
