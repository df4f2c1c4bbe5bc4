from abc import ABC, abstractmethod


class ProviderError(Exception):
    """Raised when a text-generation provider returns an error or unusable payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AIProvider(ABC):
    """Abstract base class for best-effort text-generation providers."""

    DEFAULT_MODEL: str = ""

    def __init__(self, api_key: str, model: str | None = None):
        self.api_key = api_key
        self._model = model

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        timeout: float = 10.0,
    ) -> dict:
        """Send a single-turn prompt to the provider.

        Args:
            prompt: User prompt text.
            model: Model identifier; defaults to get_model().
            max_tokens: Completion token ceiling.
            temperature: Sampling temperature.
            timeout: HTTP timeout in seconds.

        Returns:
            dict with content, tokens_in, tokens_out, model.

        Raises:
            ProviderError if the provider rejects the request.
        """
        ...

    def get_model(self) -> str:
        return self._model or self.DEFAULT_MODEL
