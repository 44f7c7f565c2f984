from typing import Any

from .base import LLMProvider
from .providers import GatewayProvider, OpenAIProvider


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider instance.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Provider type ('gateway', 'openai')
        **config: Provider-specific configuration
            For both:
                - api_key: str (required)
                - model: str (default: 'anthropic/claude-sonnet-4')
                - base_url: str (default: 'https://ai-gateway.vercel.sh/v1')
                - timeout: float (default: 60.0)
            For Gateway:
                - transport: httpx.AsyncBaseTransport | None
            For OpenAI:
                - http_client: httpx.AsyncClient | None

    Returns:
        Initialized LLM provider instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> provider = create_llm_provider(
        ...     "gateway",
        ...     api_key="...",
        ...     model="anthropic/claude-sonnet-4"
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower in ("gateway", "vercel"):
        if "api_key" not in config:
            raise TypeError("Gateway provider requires 'api_key' in config")
        return GatewayProvider(**config)

    if provider_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI provider requires 'api_key' in config")
        return OpenAIProvider(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'gateway', 'openai'"
    )
