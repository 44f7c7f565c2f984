from .gateway import GatewayProvider
from .openai import OpenAIProvider

__all__ = ["GatewayProvider", "OpenAIProvider"]
