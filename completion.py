# backend/completion.py
"""
Client for an OpenAI-compatible chat-completions gateway.

One request per call, no retries. Non-2xx responses map to error kinds:

    429 -> UpstreamRateLimited
    402 -> UpstreamBillingRequired
    any other failure -> UpstreamUnavailable

Retry decisions belong to the caller.
"""

import logging
from typing import Dict, List, NamedTuple, Optional

import requests

import config
from errors import UpstreamBillingRequired, UpstreamRateLimited, UpstreamUnavailable

logger = logging.getLogger(__name__)

EMPTY_COMPLETION = "I apologize, but I couldn't generate a response."


class CompletionOptions(NamedTuple):
    temperature: float
    max_tokens: int


CHAT_OPTIONS = CompletionOptions(temperature=0.7, max_tokens=1000)
# Lower temperature keeps structured analysis output stable
ANALYSIS_OPTIONS = CompletionOptions(temperature=0.3, max_tokens=2000)


class CompletionClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = config.AI_GATEWAY_URL,
        model: str = config.AI_MODEL,
        timeout: Optional[float] = config.COMPLETION_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        # Plain requests.post unless a session is supplied
        self.http = session if session is not None else requests

    def complete(self, messages: List[Dict[str, str]], options: CompletionOptions = CHAT_OPTIONS) -> str:
        if not self.api_key:
            logger.error("AI_API_KEY is not configured")
            raise UpstreamUnavailable()

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(f"Calling AI gateway with {len(messages)} messages")
        try:
            r = self.http.post(
                f"{self.base_url}/chat/completions",
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"AI gateway request failed: {e.__class__.__name__}")
            raise UpstreamUnavailable()

        if r.status_code == 429:
            logger.warning("AI gateway rate limited the request")
            raise UpstreamRateLimited()
        if r.status_code == 402:
            logger.warning("AI gateway requires credits")
            raise UpstreamBillingRequired()
        if not r.ok:
            logger.error(f"AI gateway error: {r.status_code} {r.text[:500]}")
            raise UpstreamUnavailable()

        try:
            data = r.json()
            choices = data.get("choices") or []
            content = (choices[0].get("message") or {}).get("content") if choices else None
        except (ValueError, AttributeError) as e:
            logger.error(f"AI gateway returned an unreadable body: {e.__class__.__name__}")
            raise UpstreamUnavailable()

        return content or EMPTY_COMPLETION


# Dependency for FastAPI routes
def get_completion_client() -> CompletionClient:
    return CompletionClient(api_key=config.AI_API_KEY)
