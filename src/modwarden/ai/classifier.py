"""Message classification against an OpenAI-compatible chat completions API.

The classifier sends one message at a time to the configured model (Groq by
default) and asks for a JSON verdict. Errors never propagate to the caller:
a failed request or an unparseable answer is logged and the message is
treated as clean, so an outage of the model never blocks the chat.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from openai import AsyncOpenAI

from modwarden.configuration.ai_settings import AISettings
from modwarden.configuration.sections import LoggingSettings, ModerationSettings
from modwarden.datatypes.moderation_datatypes import DEFAULT_CONFIDENCE, DEFAULT_REASON, ClassificationResult
from modwarden.datatypes.warning_datatypes import Severity
from modwarden.errors import ClassificationFailure, ConfigurationError
from modwarden.util.logger import get_logger

logger = get_logger("classifier")

STRICT_MODE_CONFIDENCE = 0.4
STRICT_MODE_PREFIX = "[Strict mode] "

MODERATED_CATEGORIES = [
    "Hate speech or discrimination based on race, gender, sexuality, religion, etc.",
    "Explicit sexual content or excessive vulgarity",
    "Violent threats or glorification of violence",
    "Personal attacks, harassment, or bullying",
    "Spam, scams, or malicious links",
    "Self-harm or suicide content",
    "Personal information sharing (doxxing)",
]

PROMPT_TEMPLATE = """You are a content moderator for a Discord server. Your task is to detect inappropriate content.
The moderation sensitivity level is set to: {sensitivity}/10 (where 10 is extremely strict).

Analyze the following message and determine if it contains any of these categories:
{categories}

Message to analyze: "{content}"

Respond in JSON format only:
{{
  "isFlagged": true/false,
  "reason": "brief description of violation if flagged",
  "severity": "low/medium/high/none",
  "categories": ["list of violated categories if any"],
  "confidence": 0.0 to 1.0
}}

Only flag content that is clearly inappropriate. When in doubt, do not flag unless strict mode is enabled.
Strict mode is currently: {strict_mode}."""


class MessageClassifier:
    """Ask the moderation model whether a message breaks the rules.

    Args:
        ai_settings: Endpoint, model and sampling parameters.
        moderation: Sensitivity, strict mode and minimum message length.
        logging_settings: Controls per-decision logging.
        client: Optional pre-built client; one is created from ``ai_settings`` otherwise.

    Raises:
        ConfigurationError: If no client is given and the API key variable is unset.
    """

    def __init__(
        self,
        ai_settings: AISettings,
        moderation: ModerationSettings,
        logging_settings: LoggingSettings,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._ai_settings = ai_settings
        self._moderation = moderation
        self._logging = logging_settings
        if client is None and not ai_settings.api_key:
            raise ConfigurationError(f"'{ai_settings.api_key_env}' environment variable not set")
        self._client = client or AsyncOpenAI(
            api_key=ai_settings.api_key,
            base_url=ai_settings.base_url,
            timeout=ai_settings.request_timeout,
        )
        logger.info(
            "[CLASSIFIER] Initialized with base_url=%s, model=%s",
            ai_settings.base_url,
            ai_settings.model_name,
        )

    def build_prompt(self, content: str) -> str:
        sensitivity = round(self._moderation.sensitivity * 10, 1)
        return PROMPT_TEMPLATE.format(
            sensitivity=f"{sensitivity:g}",
            categories="\n".join(f"- {category}" for category in MODERATED_CATEGORIES),
            content=content,
            strict_mode="ENABLED" if self._moderation.strict_mode else "DISABLED",
        )

    async def classify(self, content: str) -> ClassificationResult:
        """Classify one message; never raises.

        Messages shorter than ``min_message_length`` after stripping are not
        sent to the model and count as clean.
        """
        if len(content.strip()) < self._moderation.min_message_length:
            return ClassificationResult.not_flagged()

        try:
            raw = await self._request(content)
            result = self.parse_response(raw)
        except ClassificationFailure as exc:
            logger.error("[CLASSIFIER] Classification failed, allowing message: %s", exc)
            return ClassificationResult.not_flagged()

        if self._logging.log_all_decisions:
            logger.info(
                "[CLASSIFIER] Decision for message %r: %s, reason: %s",
                content[:30],
                "FLAGGED" if result.flagged else "ALLOWED",
                result.reason or "N/A",
            )
        return result

    async def _request(self, content: str) -> str:
        settings = self._ai_settings
        messages: List[Dict[str, str]] = []
        if settings.system_prompt:
            messages.append({"role": "system", "content": settings.system_prompt})
        messages.append({"role": "user", "content": self.build_prompt(content)})

        try:
            response = await self._client.chat.completions.create(
                model=settings.model_name,
                messages=messages,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
                top_p=settings.top_p,
                response_format={"type": "json_object"},
            )
        except Exception as exc:
            raise ClassificationFailure(f"request to {settings.base_url} failed: {exc}") from exc

        if not response.choices:
            raise ClassificationFailure("response contained no choices")
        return response.choices[0].message.content or ""

    def parse_response(self, text: str) -> ClassificationResult:
        """Turn the model's JSON answer into a :class:`ClassificationResult`.

        Raises:
            ClassificationFailure: If ``text`` is not a JSON object.
        """
        try:
            data: Any = json.loads(text)
        except (TypeError, json.JSONDecodeError) as exc:
            raise ClassificationFailure(f"unparseable response: {exc}") from exc
        if not isinstance(data, dict):
            raise ClassificationFailure(f"response is {type(data).__name__}, expected object")

        flagged = bool(data.get("isFlagged", False))
        reason = str(data.get("reason") or "")
        raw_confidence = data.get("confidence")
        confidence = _as_confidence(raw_confidence)

        # Only a confidence the model actually reported can trigger the override.
        if (
            not flagged
            and self._moderation.strict_mode
            and _is_number(raw_confidence)
            and raw_confidence > STRICT_MODE_CONFIDENCE
        ):
            flagged = True
            reason = STRICT_MODE_PREFIX + (reason or "Potentially inappropriate content")

        categories = data.get("categories") or []
        if not isinstance(categories, list):
            categories = [categories]

        raw_severity = data.get("severity")
        return ClassificationResult(
            flagged=flagged,
            reason=reason or DEFAULT_REASON,
            severity=Severity.parse(raw_severity) if raw_severity else Severity.MEDIUM,
            categories=[str(category) for category in categories],
            confidence=confidence,
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_confidence(value: Any) -> float:
    if not _is_number(value) or not value:
        return DEFAULT_CONFIDENCE
    return float(value)
