"""
Value Mapper Backend — Central Configuration

All environment variables and LLM settings live here.
Import `settings`, `LLM_CONFIG`, `log`, and `generate_error_code` from this module.
Do not read `os.environ` anywhere else.
"""

import uuid
from datetime import datetime, timezone

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All environment variables. Loaded from .env or the process environment.

    Every key is optional: a missing LLM key makes generation fall back to
    deterministic templates, a missing email/CRM key disables that collaborator.
    """

    # LLM
    llm_model: str = "openai/gpt-4o"  # litellm "provider/model" string
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""

    # Search
    tavily_api_key: str = ""              # Tavily Search API, primary lookup provider
    serper_api_key: str = ""              # Serper API, fallback lookup provider
    research_lookups_enabled: bool = True  # Disable to skip web lookups entirely

    # Email (SendGrid)
    sendgrid_api_key: str = ""
    email_from_address: str = "reports@valuemapper.app"
    email_from_name: str = "Value Mapper"

    # CRM (HubSpot)
    hubspot_api_key: str = ""
    crm_excluded_domain: str = "nytromarketing.com"  # Never create leads for this domain

    # App
    environment: str = "development"  # "development" | "production" | "test"
    cors_origins: str = "http://localhost:3000"  # Comma-separated for multiple origins

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton: import this everywhere
settings = Settings()


# ──────────────────────────────────────────────────────
# Logging Utilities (structured print)
# ──────────────────────────────────────────────────────

def generate_error_code() -> str:
    """Generate a short, user-friendly error reference code.

    Format: 'VP-' followed by 6 uppercase hex characters.
    Example: 'VP-3F8A2C'

    Returned to API callers instead of internal error detail. The same code is
    logged on the backend, so a user can quote it and the team can grep for it.
    """
    return f"VP-{uuid.uuid4().hex[:6].upper()}"


def log(level: str, message: str, **context) -> None:
    """Structured print-based logger.

    Every log line follows the format:
        [ISO_TIMESTAMP] [LEVEL] message | key1=value1 key2=value2

    Args:
        level: One of "INFO", "WARN", "ERROR".
        message: Human-readable description of what happened.
        **context: Arbitrary key-value pairs. Include request_id when available.

    Usage:
        log("INFO", "stage started", request_id="abc-123", stage="jobs")
        log("ERROR", "llm call failed", request_id="abc-123", model="openai/gpt-4o",
            error_code="VP-3F8A2C", error=str(e))
    """
    ts = datetime.now(timezone.utc).isoformat()
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    print(f"[{ts}] [{level}] {message} | {ctx}", flush=True)


# ──────────────────────────────────────────────────────
# LLM Configuration
# ──────────────────────────────────────────────────────

LLM_CONFIG = {
    "persona": {
        "name": "Value Mapper",
        "system_prompt": (
            "You are Value Mapper, a B2B positioning assistant grounded in Jobs-to-Be-Done "
            "and the Value Proposition Canvas. You help founders and marketers describe who "
            "their customer is, what that customer is trying to get done, and how the offering helps.\n\n"
            "Guidelines:\n"
            "- Ground every statement in the product information, website text, or research you are given.\n"
            "- Never invent capabilities, technologies, customers, or numbers that the inputs do not imply.\n"
            "- Use hedged language (\"is designed to help\", \"supports\") when there is no explicit evidence.\n"
            "- One canvas addresses exactly one customer segment. Never mix buyer and user personas.\n"
            "- Output strictly valid JSON when instructed. No markdown code fences, no text outside the JSON."
        ),
    },
    "temperature": 0.7,
    "max_tokens": 4000,
}

# Maps a litellm provider prefix to the settings attribute holding its key
PROVIDER_KEY_SETTINGS = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
    "gemini": "gemini_api_key",
}
