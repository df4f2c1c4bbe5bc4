import httpx

from ai.providers.base import AIProvider, ProviderError


class AnthropicProvider(AIProvider):
    """Anthropic / Claude text provider."""

    BASE_URL = "https://api.anthropic.com/v1/messages"
    DEFAULT_MODEL = "claude-haiku-4-5-20251001"

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(api_key, model)
        self._headers = {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        timeout: float = 10.0,
    ) -> dict:
        payload: dict = {
            "model": model or self.get_model(),
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(self.BASE_URL, headers=self._headers, json=payload)
            if resp.status_code != 200:
                raise ProviderError(f"Anthropic API error: {resp.text}", status_code=resp.status_code)
            data = resp.json()

        content = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                content += block["text"]

        usage = data.get("usage", {})
        return {
            "content": content,
            "tokens_in": usage.get("input_tokens", 0),
            "tokens_out": usage.get("output_tokens", 0),
            "model": data.get("model", payload["model"]),
        }
