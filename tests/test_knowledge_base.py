"""Tests for the knowledge base loader and search."""

import httpx
import pytest
from unittest.mock import MagicMock, Mock

from helpdesk_automation.config import KnowledgeBaseConfig
from helpdesk_automation.knowledge_base import (
    KnowledgeBaseClient,
    KnowledgeBaseError,
    find_article,
    load_articles,
    load_knowledge_base,
    parse_articles,
    record_feedback,
    record_view,
    search_articles,
)
from helpdesk_automation.models import ArticleStatus, Category, KnowledgeArticle


SAMPLE_YAML = """
articles:
  - id: "1"
    title: How to Reset Your Password
    category: password_reset
    content: Go to the login page and click Forgot Password.
    keywords: [password, reset]
    views: 150
  - id: "2"
    title: Setting Up VPN Connection
    category: network_issue
    content: Download the VPN client from the company portal.
    keywords: [vpn, remote]
    views: 89
  - id: "3"
    title: Old printer guide
    category: hardware_issue
    content: Replaced by the new print service.
    status: archived
    views: 500
"""


@pytest.fixture
def articles() -> list[KnowledgeArticle]:
    return parse_articles(SAMPLE_YAML)


@pytest.fixture
def url_config() -> KnowledgeBaseConfig:
    return KnowledgeBaseConfig(
        articles_path=None,
        articles_url="https://kb.example.com/articles.yaml",
        request_timeout=10,
    )


class TestParseArticles:
    """Tests for YAML parsing."""

    def test_parse_mapping(self, articles):
        """Test articles listed under an 'articles' key."""
        assert [a.id for a in articles] == ["1", "2", "3"]
        assert articles[0].category == Category.PASSWORD_RESET
        assert articles[2].status == ArticleStatus.ARCHIVED

    def test_parse_top_level_list(self):
        """Test a bare list of articles."""
        result = parse_articles("- {id: a, title: T, content: C}\n")
        assert len(result) == 1
        assert result[0].id == "a"

    def test_missing_id_uses_position(self):
        """Test entries without an id are numbered from one."""
        result = parse_articles("- {title: T, content: C}\n- {title: U, content: D}\n")
        assert [a.id for a in result] == ["1", "2"]

    def test_numeric_id_becomes_string(self):
        """Test YAML integers are accepted as ids."""
        assert parse_articles("- {id: 7, title: T, content: C}\n")[0].id == "7"

    def test_malformed_entries_skipped(self):
        """Test invalid entries are dropped and valid ones kept."""
        result = parse_articles(
            """
- not a mapping
- {id: "1", title: Missing content}
- {id: "2", title: T, content: C, category: printing}
- {id: "3", title: T, content: C}
"""
        )
        assert [a.id for a in result] == ["3"]

    def test_duplicate_ids_skipped(self):
        """Test only the first article with an id is kept."""
        result = parse_articles(
            "- {id: '1', title: First, content: C}\n- {id: '1', title: Second, content: C}\n"
        )
        assert len(result) == 1
        assert result[0].title == "First"

    def test_empty_document(self):
        """Test empty content yields no articles."""
        assert parse_articles("") == []

    def test_invalid_yaml(self):
        """Test invalid YAML raises."""
        with pytest.raises(KnowledgeBaseError, match="Invalid YAML"):
            parse_articles("articles: [unclosed")


class TestLoadArticles:
    """Tests for loading from disk."""

    def test_load_file(self, tmp_path):
        """Test articles are read from a file."""
        path = tmp_path / "kb.yaml"
        path.write_text(SAMPLE_YAML, encoding="utf-8")
        assert len(load_articles(path)) == 3

    def test_missing_file(self, tmp_path):
        """Test an unreadable file raises."""
        with pytest.raises(KnowledgeBaseError, match="Cannot read"):
            load_articles(tmp_path / "missing.yaml")


class TestKnowledgeBaseClient:
    """Tests for KnowledgeBaseClient."""

    def test_context_manager(self, url_config):
        """Test client works as context manager."""
        with KnowledgeBaseClient(url_config) as client:
            assert client._client is not None
        assert client._client is None

    def test_fetch_without_context_raises(self, url_config):
        """Test fetch raises if not in context manager."""
        client = KnowledgeBaseClient(url_config)
        with pytest.raises(RuntimeError, match="context manager"):
            client.fetch_articles()

    def test_fetch_success(self, url_config):
        """Test successful fetch."""
        mock_response = Mock()
        mock_response.text = SAMPLE_YAML
        mock_response.raise_for_status = Mock()

        mock_client = MagicMock()
        mock_client.get.return_value = mock_response

        with KnowledgeBaseClient(url_config) as client:
            client._client = mock_client
            result = client.fetch_articles()

        mock_client.get.assert_called_once_with("https://kb.example.com/articles.yaml")
        assert len(result) == 3

    def test_fetch_http_error(self, url_config):
        """Test HTTP status errors are wrapped."""
        mock_response = Mock()
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Not Found", request=Mock(), response=Mock(status_code=404)
        )

        mock_client = MagicMock()
        mock_client.get.return_value = mock_response

        with KnowledgeBaseClient(url_config) as client:
            client._client = mock_client
            with pytest.raises(KnowledgeBaseError, match="HTTP error: 404"):
                client.fetch_articles()

    def test_fetch_request_error(self, url_config):
        """Test connection errors are wrapped."""
        mock_client = MagicMock()
        mock_client.get.side_effect = httpx.ConnectError("connection refused")

        with KnowledgeBaseClient(url_config) as client:
            client._client = mock_client
            with pytest.raises(KnowledgeBaseError, match="Request failed"):
                client.fetch_articles()


class TestLoadKnowledgeBase:
    """Tests for source selection."""

    def test_nothing_configured(self):
        """Test an unconfigured knowledge base is empty."""
        config = KnowledgeBaseConfig(articles_path=None, articles_url="")
        assert load_knowledge_base(config) == []

    def test_path_preferred_over_url(self, tmp_path):
        """Test a local file wins when both sources are set."""
        path = tmp_path / "kb.yaml"
        path.write_text(SAMPLE_YAML, encoding="utf-8")
        config = KnowledgeBaseConfig(articles_path=path, articles_url="https://unused.example.com")

        assert len(load_knowledge_base(config)) == 3


class TestSearchArticles:
    """Tests for article search."""

    def test_excludes_unpublished(self, articles):
        """Test archived articles are never returned."""
        assert [a.id for a in search_articles(articles)] == ["1", "2"]

    def test_no_query_sorted_by_views(self, articles):
        """Test most viewed articles come first without a query."""
        results = search_articles(articles)
        assert results[0].views >= results[1].views

    def test_query_matches_title(self, articles):
        """Test case-insensitive title match."""
        assert [a.id for a in search_articles(articles, query="VPN")] == ["2"]

    def test_query_matches_keyword(self, articles):
        """Test keyword match."""
        assert [a.id for a in search_articles(articles, query="remote")] == ["2"]

    def test_category_filter(self, articles):
        """Test category filter."""
        results = search_articles(articles, category=Category.PASSWORD_RESET)
        assert [a.id for a in results] == ["1"]

    def test_limit(self, articles):
        """Test the result count is capped."""
        assert len(search_articles(articles, limit=1)) == 1

    def test_no_match(self, articles):
        """Test unmatched queries return nothing."""
        assert search_articles(articles, query="toner") == []


class TestArticleUpdates:
    """Tests for lookups and counters."""

    def test_find_article(self, articles):
        """Test lookup by id."""
        assert find_article(articles, "2").title == "Setting Up VPN Connection"
        assert find_article(articles, "99") is None

    def test_record_view(self, articles):
        """Test views are counted on a copy."""
        updated = record_view(articles[0])
        assert updated.views == 151
        assert articles[0].views == 150

    def test_record_feedback(self, articles):
        """Test helpful and not helpful votes."""
        helpful = record_feedback(articles[0], helpful=True)
        unhelpful = record_feedback(articles[0], helpful=False)

        assert helpful.helpful_count == 1
        assert helpful.not_helpful_count == 0
        assert unhelpful.not_helpful_count == 1
