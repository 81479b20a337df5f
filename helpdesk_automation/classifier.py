"""
Request classifier for the Helpdesk Automation System.

Maps free-text request content to a category, priority, intent and a
handful of tags using static keyword tables. The keyword classifier is
deterministic and never raises: unrecognised text degrades to defaults.

An optional LLM-assisted classifier uses an OpenAI-compatible API with
structured output and falls back to the keyword result whenever the API
is not configured or fails.
"""

import logging
from typing import Optional

from openai import OpenAI
from pydantic import BaseModel, Field
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import LLMConfig
from .keywords import DEFAULT_KEYWORD_TABLE, KeywordTable
from .models import Category, ClassificationResult, Intent, Priority


logger = logging.getLogger(__name__)


STOP_WORDS = frozenset({"with", "from", "that", "this", "have", "need"})
MAX_TAGS = 5
MIN_TAG_LENGTH = 4

# Confidence contributed by each matched category keyword
CONFIDENCE_PER_MATCH = 0.3
NO_MATCH_CONFIDENCE = 0.1


def extract_tags(text: str) -> list[str]:
    """
    Pick salient words from lower-cased text.

    Keeps whitespace-separated tokens longer than three characters that
    are not stop words, at most five, in the order they appear.
    """
    tags = []
    for word in text.split():
        if len(word) >= MIN_TAG_LENGTH and word not in STOP_WORDS:
            tags.append(word)
            if len(tags) == MAX_TAGS:
                break
    return tags


class RequestClassifier:
    """
    Keyword-based classifier for IT requests.

    Behaviour is fully determined by the keyword table:

    - Category: most matched keywords wins, ties go to the category
      listed first, no match means ``other``
    - Priority: first level (critical, high, medium, low) with any match,
      otherwise ``medium``
    - Intent: first intent (greeting, check_status) with any match,
      otherwise ``support_request``
    """

    DEFAULT_CATEGORY = Category.OTHER
    DEFAULT_PRIORITY = Priority.MEDIUM
    DEFAULT_INTENT = Intent.SUPPORT_REQUEST

    def __init__(self, table: KeywordTable = DEFAULT_KEYWORD_TABLE):
        """
        Initialize the classifier.

        Args:
            table: Keyword table shared read-only between calls.
        """
        self._table = table

    @property
    def table(self) -> KeywordTable:
        return self._table

    def _match_category(self, text: str) -> tuple[Category, int]:
        category = self.DEFAULT_CATEGORY
        max_matches = 0

        for candidate, keywords in self._table.categories:
            matches = sum(1 for keyword in keywords if keyword in text)
            # Strict comparison: on a tie the earlier category is kept
            if matches > max_matches:
                max_matches = matches
                category = candidate

        return category, max_matches

    def _match_priority(self, text: str) -> Priority:
        for priority, keywords in self._table.priorities:
            if any(keyword in text for keyword in keywords):
                return priority
        return self.DEFAULT_PRIORITY

    def _match_intent(self, text: str) -> Intent:
        for intent, keywords in self._table.intents:
            if any(keyword in text for keyword in keywords):
                return intent
        return self.DEFAULT_INTENT

    def analyze(self, text: Optional[str]) -> ClassificationResult:
        """
        Classify a free-text request.

        Args:
            text: Request description or chat message. ``None`` is
                treated as empty text.

        Returns:
            ClassificationResult with category, priority, intent, tags
            and confidence.
        """
        normalized = (text or "").lower()

        category, matches = self._match_category(normalized)
        confidence = (
            min(matches * CONFIDENCE_PER_MATCH, 1.0) if matches > 0 else NO_MATCH_CONFIDENCE
        )

        result = ClassificationResult(
            category=category,
            priority=self._match_priority(normalized),
            intent=self._match_intent(normalized),
            tags=extract_tags(normalized),
            confidence=confidence,
        )

        logger.debug(
            f"Analyzed request: {result.category.value} / {result.priority.value} / "
            f"{result.intent.value} (confidence: {result.confidence:.2f})"
        )
        return result


class LLMAnalysisResponse(BaseModel):
    """Structured output schema for LLM request analysis."""

    category: Category = Field(
        description="The IT issue category that best matches the request"
    )
    priority: Priority = Field(
        description="How urgent the request is"
    )
    intent: Intent = Field(
        description="Whether the message is a greeting, a status check or a support request"
    )
    confidence: float = Field(
        ge=0.0,
        le=1.0,
        description="Confidence score from 0 to 1"
    )


SYSTEM_PROMPT = """You are an IT Service Desk analyst triaging incoming support requests.

Classify each request into exactly one category:
- password_reset: forgotten passwords, locked accounts, login problems
- software_issue: application errors, crashes, installs and updates
- hardware_issue: computers, laptops, peripherals, printers
- network_issue: internet, wifi, VPN, slow or dropped connections
- account_provisioning: new users, new accounts, permissions
- other: anything that does not fit the categories above

Priority is one of: critical (outage, nothing works), high (blocking work),
medium (ordinary issue), low (question, no time pressure).

Intent is one of: greeting (hello, small talk), check_status (asking about an
existing ticket), support_request (everything else).

Use ONLY the values listed above."""


class LLMRequestClassifier:
    """
    LLM-assisted request classifier.

    Implements graceful degradation:
    - Uses the keyword classifier when no API key is configured
    - Retries transient API errors
    - Falls back to the keyword result when the API keeps failing
    """

    def __init__(
        self,
        config: LLMConfig,
        fallback: Optional[RequestClassifier] = None,
    ):
        """
        Initialize the classifier.

        Args:
            config: LLM configuration.
            fallback: Keyword classifier used for tags and as the fallback.
        """
        self._config = config
        self._fallback = fallback or RequestClassifier()
        self._client: Optional[OpenAI] = None

        if config.enabled:
            client_kwargs = {
                "api_key": config.api_key,
            }
            if config.api_base_url:
                client_kwargs["base_url"] = config.api_base_url

            self._client = OpenAI(**client_kwargs)
            logger.info(f"Initialized LLM classifier with model: {config.model}")
        else:
            logger.info("OPENAI_API_KEY not set, using keyword classification only")

    def _request_analysis(self, text: str) -> LLMAnalysisResponse:
        response = self._client.chat.completions.parse(
            model=self._config.model,
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            response_format=LLMAnalysisResponse,
        )

        parsed = response.choices[0].message.parsed
        if not parsed:
            raise ValueError("Empty structured response from LLM")
        return parsed

    def analyze(self, text: Optional[str]) -> ClassificationResult:
        """
        Classify a request with the LLM, falling back to keywords.

        Never raises. Tags always come from the keyword extractor.
        """
        baseline = self._fallback.analyze(text)

        if self._client is None or not (text or "").strip():
            return baseline

        retrying = Retrying(
            stop=stop_after_attempt(max(self._config.max_retries, 1)),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type((Exception,)),
            before_sleep=lambda retry_state: logger.warning(
                f"Retrying LLM analysis after error: {retry_state.outcome.exception()}"
            ),
        )

        try:
            parsed = retrying(self._request_analysis, text)
        except RetryError as e:
            logger.error(
                f"LLM analysis failed, using keyword result: {e.last_attempt.exception()}"
            )
            return baseline

        return ClassificationResult(
            category=parsed.category,
            priority=parsed.priority,
            intent=parsed.intent,
            tags=baseline.tags,
            confidence=parsed.confidence,
        )
