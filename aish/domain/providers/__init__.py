from .response_provider import ResponseProvider
from .provider_factory import ProviderFactory
from .gemini_cli_provider import GeminiCliProvider
from .claude_code_provider import ClaudeCodeProvider

# Register built-in providers
ProviderFactory.register("gemini-cli", GeminiCliProvider)
ProviderFactory.register("claude-code", ClaudeCodeProvider)

__all__ = ["ResponseProvider", "ProviderFactory", "GeminiCliProvider", "ClaudeCodeProvider"]
