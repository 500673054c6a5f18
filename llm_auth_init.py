"""Initialize environment and LLM authentication before the service starts.

This module MUST be imported first (server.py does) so that .env values are
visible to every module that reads configuration at import time.
"""
import os
import sys

from dotenv import load_dotenv


def load_env_with_optional_override() -> None:
    """Load .env without clobbering explicit environment overrides."""

    load_dotenv(override=False)
    if os.getenv("DOTENV_FORCE_OVERRIDE", "").strip().lower() in {"1", "true", "yes", "on"}:
        load_dotenv(override=True)


# Load environment immediately while respecting explicit overrides
load_env_with_optional_override()


def initialize_api_key() -> str:
    """
    Initialize API key configuration for LiteLLM/OpenAI clients.

    Uses standard Bearer token authentication (OPENAI_API_KEY). A missing key
    is reported but not fatal: the health endpoint surfaces it and completion
    calls fail with a CompletionError.

    Returns:
        The configured API key (empty string when unset)
    """
    base_url = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")
    api_key = os.getenv("OPENAI_API_KEY", "")

    os.environ["OPENAI_API_BASE"] = base_url
    if api_key:
        os.environ["OPENAI_API_KEY"] = api_key
    else:
        print("⚠️  OPENAI_API_KEY is not set; plan generation will fail\n", file=sys.stderr)

    return api_key


def configure_litellm() -> None:
    """Keep LiteLLM quiet and tolerant of provider-specific parameters."""
    import litellm

    litellm.drop_params = True
    litellm.suppress_debug_info = True


# Initialize authentication on module import
API_KEY = initialize_api_key()

configure_litellm()
