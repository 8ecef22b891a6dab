"""
CompletionService — forwards relay prompts to OpenAI chat completions.

The reply text is stripped of markdown code fences and parsed as JSON.  Valid
JSON is re-emitted pretty printed; anything else degrades to a literal
bracketed error string.  No retries.

Environment variable:
    OPENAI_API_KEY: standard OpenAI env var consumed by the openai client.
"""
from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Optional

from journeymap.server.relay.prompts import (
    journey_document_prompt,
    storyboard_prompt,
    structured_scenario_prompt,
)

logger = logging.getLogger(__name__)

INVALID_JSON_REPLY = "[Invalid JSON in response. Please check the reply.]"
SERVICE_ERROR_REPLY = "[Error while calling OpenAI]"
EMPTY_REPLY = "[Empty response]"

# Sampling temperature for storyboard requests.
STORYBOARD_TEMPERATURE = 0.7

_FENCE_RE = re.compile(r"```json|```")


def strip_code_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw).strip()


def parse_json_reply(raw: str) -> str:
    """Pretty JSON text for a parsable reply, ``INVALID_JSON_REPLY`` otherwise."""
    try:
        parsed = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as exc:
        logger.warning("Completion is not valid JSON: %s", exc)
        return INVALID_JSON_REPLY
    return json.dumps(parsed, indent=2, ensure_ascii=False)


class CompletionService:
    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: Optional[str] = None,
        client: Any = None,
        temperature: Optional[float] = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        # Built lazily so the server starts without OPENAI_API_KEY.
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def chat(self, content: str, temperature: Optional[float] = None) -> str:
        kwargs = {}
        if temperature is None:
            temperature = self.temperature
        if temperature is not None:
            kwargs["temperature"] = temperature

        t0 = time.time()
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": content}],
            **kwargs,
        )
        duration = (time.time() - t0) * 1000
        logger.info("OpenAI %s replied in %.1f ms", self.model, duration)

        if not resp.choices:
            return EMPTY_REPLY
        return resp.choices[0].message.content or EMPTY_REPLY

    async def _complete_json(self, content: str, temperature: Optional[float] = None) -> str:
        try:
            raw = await self.chat(content, temperature)
        except Exception:
            logger.exception("OpenAI call failed")
            return SERVICE_ERROR_REPLY
        return parse_json_reply(raw)

    async def complete_document(self, scenario: str) -> str:
        """Scenario text -> Document JSON text (or an error literal)."""
        logger.info("initialPrompt received (%d chars)", len(scenario))
        return await self._complete_json(journey_document_prompt(scenario))

    async def structure_scenario(self, document_json: str) -> str:
        """Document JSON text -> context/artifact/userExperience JSON text."""
        return await self._complete_json(structured_scenario_prompt(document_json))

    async def storyboard(self, scenario: str) -> str:
        """Scenario text -> ``{"storyboards": [...]}`` JSON text (or an error literal)."""
        return await self._complete_json(storyboard_prompt(scenario), temperature=STORYBOARD_TEMPERATURE)
