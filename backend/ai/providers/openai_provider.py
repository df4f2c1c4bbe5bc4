from typing import Any

import httpx

from ai.providers.base import AIProvider, ProviderError


class OpenAIProvider(AIProvider):
    """OpenAI / GPT text provider."""

    BASE_URL = "https://api.openai.com/v1/chat/completions"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(api_key, model)
        self._headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    # ------------------------------------------------------------------
    # complete
    # ------------------------------------------------------------------
    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        timeout: float = 10.0,
    ) -> dict:
        model_id = model or self.get_model()
        payload: dict[str, Any] = {
            "model": model_id,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        payload.update(self._token_limit_field(model_id, max_tokens))
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(self.BASE_URL, headers=self._headers, json=payload)
            if resp.status_code != 200 and self._should_retry_with_alt_token_field(resp):
                resp = await client.post(
                    self.BASE_URL,
                    headers=self._headers,
                    json=self._swap_token_limit_field(payload),
                )
            if resp.status_code != 200:
                raise ProviderError(f"OpenAI API error: {resp.text}", status_code=resp.status_code)
            data = resp.json()

        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        usage = data.get("usage", {})
        return {
            "content": content,
            "tokens_in": usage.get("prompt_tokens", 0),
            "tokens_out": usage.get("completion_tokens", 0),
            "model": data.get("model", model_id),
        }

    def _token_limit_field(self, model: str, limit: int) -> dict[str, int]:
        m = (model or "").strip().lower()
        if m.startswith("o") or m.startswith("gpt-5") or m.startswith("gpt-4.1"):
            return {"max_completion_tokens": limit}
        return {"max_tokens": limit}

    def _swap_token_limit_field(self, payload: dict[str, Any]) -> dict[str, Any]:
        swapped = dict(payload)
        if "max_tokens" in swapped:
            swapped["max_completion_tokens"] = swapped.pop("max_tokens")
        elif "max_completion_tokens" in swapped:
            swapped["max_tokens"] = swapped.pop("max_completion_tokens")
        return swapped

    def _should_retry_with_alt_token_field(self, resp: httpx.Response) -> bool:
        if resp.status_code != 400:
            return False
        text = (resp.text or "").lower()
        return "unsupported parameter" in text and ("max_tokens" in text or "max_completion_tokens" in text)
