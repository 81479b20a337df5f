"""
Unit tests for the request classifiers.

Tests cover:
- Category scoring and tie-breaking
- Priority and intent precedence
- Tag extraction
- Confidence scoring
- LLM-assisted classification with keyword fallback
"""

import pytest
from unittest.mock import Mock, patch

from helpdesk_automation.classifier import (
    LLMAnalysisResponse,
    LLMRequestClassifier,
    RequestClassifier,
    SYSTEM_PROMPT,
    extract_tags,
)
from helpdesk_automation.config import LLMConfig
from helpdesk_automation.keywords import DEFAULT_KEYWORD_TABLE, KeywordTable
from helpdesk_automation.models import Category, Intent, Priority


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def classifier() -> RequestClassifier:
    """Keyword classifier with the built-in tables."""
    return RequestClassifier()


@pytest.fixture
def llm_config() -> LLMConfig:
    """LLM config with a single attempt so failures do not back off."""
    return LLMConfig(
        api_key="test-api-key",
        model="gpt-4o-mini",
        temperature=0.1,
        max_retries=1,
    )


def _parsed_response(parsed) -> Mock:
    response = Mock()
    response.choices = [Mock()]
    response.choices[0].message.parsed = parsed
    return response


# =============================================================================
# Defaults
# =============================================================================

class TestUnrecognisedText:
    """Text without any trigger keyword degrades to defaults."""

    @pytest.mark.parametrize("text", ["The weather is nice today", "", None, "   "])
    def test_defaults(self, classifier: RequestClassifier, text):
        """Test default category, priority, intent and confidence."""
        result = classifier.analyze(text)

        assert result.category == Category.OTHER
        assert result.priority == Priority.MEDIUM
        assert result.intent == Intent.SUPPORT_REQUEST
        assert result.confidence == pytest.approx(0.1)

    def test_tags_still_extracted(self, classifier: RequestClassifier):
        """Test tags do not depend on keyword matches."""
        result = classifier.analyze("The weather is nice today")
        assert result.tags == ["weather", "nice", "today"]


# =============================================================================
# Category
# =============================================================================

class TestCategory:
    """Tests for category scoring."""

    def test_single_keyword(self, classifier: RequestClassifier):
        """Test one password keyword selects password_reset."""
        result = classifier.analyze("password")
        assert result.category == Category.PASSWORD_RESET
        assert result.confidence == pytest.approx(0.3)

    def test_two_keywords_same_category(self, classifier: RequestClassifier):
        """Test two matched keywords give 0.6 confidence."""
        result = classifier.analyze("password reset")
        assert result.category == Category.PASSWORD_RESET
        assert result.confidence == pytest.approx(0.6)

    def test_case_insensitive(self, classifier: RequestClassifier):
        """Test matching ignores case."""
        result = classifier.analyze("PASSWORD RESET")
        assert result.category == Category.PASSWORD_RESET
        assert result.confidence == pytest.approx(0.6)

    def test_highest_count_wins(self, classifier: RequestClassifier):
        """Test the category with most matches is chosen."""
        result = classifier.analyze("new user account")
        assert result.category == Category.ACCOUNT_PROVISIONING
        assert result.confidence == pytest.approx(0.9)

    def test_tie_keeps_first_category(self, classifier: RequestClassifier):
        """Test equal counts resolve to the category listed first."""
        # "login" -> password_reset, "error" -> software_issue
        result = classifier.analyze("error on login")
        assert result.category == Category.PASSWORD_RESET

    def test_shared_keyword_tie(self, classifier: RequestClassifier):
        """Test a keyword in two categories goes to the earlier one."""
        result = classifier.analyze("access")
        assert result.category == Category.PASSWORD_RESET

    def test_tie_follows_table_order(self):
        """Test tie-breaking uses the injected table's order."""
        table = KeywordTable(
            categories=(
                (Category.SOFTWARE_ISSUE, ("error",)),
                (Category.PASSWORD_RESET, ("login",)),
            ),
            priorities=DEFAULT_KEYWORD_TABLE.priorities,
            intents=DEFAULT_KEYWORD_TABLE.intents,
        )
        result = RequestClassifier(table).analyze("error on login")
        assert result.category == Category.SOFTWARE_ISSUE

    def test_substring_matching(self, classifier: RequestClassifier):
        """Test keywords match inside longer words."""
        result = classifier.analyze("resetting")
        assert result.category == Category.PASSWORD_RESET

    def test_confidence_capped(self, classifier: RequestClassifier):
        """Test confidence never exceeds 1.0."""
        result = classifier.analyze("forgot password reset login locked unlock")
        assert result.confidence == pytest.approx(1.0)


# =============================================================================
# Priority
# =============================================================================

class TestPriority:
    """Tests for priority precedence."""

    def test_critical_first(self, classifier: RequestClassifier):
        """Test critical wins when several critical keywords appear."""
        result = classifier.analyze("critical and urgent")
        assert result.priority == Priority.CRITICAL

    def test_critical_beats_lower_levels(self, classifier: RequestClassifier):
        """Test critical outranks medium keywords in the same text."""
        result = classifier.analyze("urgent issue")
        assert result.priority == Priority.CRITICAL

    def test_high(self, classifier: RequestClassifier):
        """Test high priority keyword."""
        result = classifier.analyze("printer is blocking me")
        assert result.priority == Priority.HIGH

    def test_medium(self, classifier: RequestClassifier):
        """Test medium priority keyword."""
        result = classifier.analyze("a problem with my mouse")
        assert result.priority == Priority.MEDIUM

    def test_low(self, classifier: RequestClassifier):
        """Test low priority keyword."""
        result = classifier.analyze("question about printers")
        assert result.priority == Priority.LOW


# =============================================================================
# Intent
# =============================================================================

class TestIntent:
    """Tests for intent detection."""

    def test_greeting(self, classifier: RequestClassifier):
        """Test greeting keywords."""
        assert classifier.analyze("hello there").intent == Intent.GREETING

    def test_check_status(self, classifier: RequestClassifier):
        """Test status check keywords."""
        result = classifier.analyze("what is the status of my ticket")
        assert result.intent == Intent.CHECK_STATUS

    def test_greeting_checked_before_status(self, classifier: RequestClassifier):
        """Test greeting wins when both intents match."""
        result = classifier.analyze("hello, any progress on my ticket?")
        assert result.intent == Intent.GREETING


# =============================================================================
# Tags
# =============================================================================

class TestExtractTags:
    """Tests for tag extraction."""

    def test_example_sentence(self, classifier: RequestClassifier):
        """Test short words and stop words are dropped, order kept."""
        result = classifier.analyze("I need help resetting my password quickly")
        assert result.tags == ["help", "resetting", "password", "quickly"]

    def test_stop_words_removed(self):
        """Test every stop word is excluded."""
        tags = extract_tags("with from that this have need printer")
        assert tags == ["printer"]

    def test_capped_at_five(self):
        """Test no more than five tags are returned."""
        tags = extract_tags(
            "please help with this printer from that floor, have need asap extra words"
        )
        assert tags == ["please", "help", "printer", "floor,", "asap"]

    def test_three_letter_words_dropped(self):
        """Test tokens must be longer than three characters."""
        assert extract_tags("vpn app bug") == []

    def test_extra_whitespace(self):
        """Test runs of whitespace do not produce empty tags."""
        assert extract_tags("  laptop \n\t monitor  ") == ["laptop", "monitor"]


# =============================================================================
# Independence
# =============================================================================

class TestStatelessness:
    """Tests that calls do not influence each other."""

    def test_repeated_calls_identical(self, classifier: RequestClassifier):
        """Test the same text always yields the same result."""
        first = classifier.analyze("my laptop is broken")
        classifier.analyze("hello")
        second = classifier.analyze("my laptop is broken")
        assert first == second


# =============================================================================
# LLM-assisted classification
# =============================================================================

class TestLLMRequestClassifier:
    """Tests for the LLM classifier and its fallback."""

    def test_without_api_key_uses_keywords(self):
        """Test no OpenAI client is created without an API key."""
        with patch("helpdesk_automation.classifier.OpenAI") as mock_openai:
            classifier = LLMRequestClassifier(LLMConfig(api_key=""))
            result = classifier.analyze("password reset")

        mock_openai.assert_not_called()
        assert result.category == Category.PASSWORD_RESET
        assert result.confidence == pytest.approx(0.6)

    def test_uses_llm_response(self, llm_config: LLMConfig):
        """Test structured LLM output is used for the classification."""
        with patch("helpdesk_automation.classifier.OpenAI") as mock_openai:
            client = mock_openai.return_value
            client.chat.completions.parse.return_value = _parsed_response(
                LLMAnalysisResponse(
                    category=Category.NETWORK_ISSUE,
                    priority=Priority.HIGH,
                    intent=Intent.SUPPORT_REQUEST,
                    confidence=0.85,
                )
            )
            classifier = LLMRequestClassifier(llm_config)
            result = classifier.analyze("cannot reach the intranet from home")

        assert result.category == Category.NETWORK_ISSUE
        assert result.priority == Priority.HIGH
        assert result.confidence == pytest.approx(0.85)
        # Tags still come from the keyword extractor
        assert result.tags == ["cannot", "reach", "intranet", "home"]

    def test_passes_base_url(self):
        """Test a custom API base URL reaches the client."""
        config = LLMConfig(api_key="k", api_base_url="http://localhost:8080/v1")
        with patch("helpdesk_automation.classifier.OpenAI") as mock_openai:
            LLMRequestClassifier(config)

        mock_openai.assert_called_once_with(api_key="k", base_url="http://localhost:8080/v1")

    def test_api_error_falls_back(self, llm_config: LLMConfig):
        """Test API failures return the keyword result instead of raising."""
        with patch("helpdesk_automation.classifier.OpenAI") as mock_openai:
            client = mock_openai.return_value
            client.chat.completions.parse.side_effect = RuntimeError("rate limited")
            classifier = LLMRequestClassifier(llm_config)
            result = classifier.analyze("my laptop is broken")

        assert result.category == Category.HARDWARE_ISSUE
        assert result.priority == Priority.CRITICAL

    def test_empty_parsed_response_falls_back(self, llm_config: LLMConfig):
        """Test an empty structured response is treated as a failure."""
        with patch("helpdesk_automation.classifier.OpenAI") as mock_openai:
            client = mock_openai.return_value
            client.chat.completions.parse.return_value = _parsed_response(None)
            classifier = LLMRequestClassifier(llm_config)
            result = classifier.analyze("password")

        assert result.category == Category.PASSWORD_RESET

    def test_empty_text_skips_llm(self, llm_config: LLMConfig):
        """Test blank input never reaches the API."""
        with patch("helpdesk_automation.classifier.OpenAI") as mock_openai:
            classifier = LLMRequestClassifier(llm_config)
            result = classifier.analyze("  ")

        mock_openai.return_value.chat.completions.parse.assert_not_called()
        assert result.category == Category.OTHER

    def test_system_prompt_lists_categories(self):
        """Test the prompt names every category value."""
        for category in Category:
            assert category.value in SYSTEM_PROMPT
