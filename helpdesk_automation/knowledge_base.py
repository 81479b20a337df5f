"""
Knowledge base for the Helpdesk Automation System.

Loads self-service articles from a YAML file or URL and searches them
by category and free text.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml
from pydantic import ValidationError

from .config import KnowledgeBaseConfig
from .models import Category, KnowledgeArticle


logger = logging.getLogger(__name__)


class KnowledgeBaseError(Exception):
    """Error when loading knowledge base articles."""
    pass


def parse_articles(content: str) -> list[KnowledgeArticle]:
    """
    Parse YAML content into knowledge base articles.

    Accepts either a top-level list or a mapping with an ``articles`` list.
    Malformed entries are skipped with a warning.

    Raises:
        KnowledgeBaseError: If the YAML cannot be parsed.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise KnowledgeBaseError(f"Invalid YAML: {e}") from e

    if not data:
        logger.warning("Empty knowledge base received")
        return []

    entries: Any = data.get("articles", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        logger.warning("Could not find articles in knowledge base document")
        return []

    articles = []
    seen_ids: set[str] = set()

    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping knowledge base entry {idx}: not a mapping")
            continue

        entry = dict(entry)
        entry.setdefault("id", str(idx + 1))
        entry["id"] = str(entry["id"])

        if entry["id"] in seen_ids:
            logger.warning(f"Skipping duplicate article id '{entry['id']}'")
            continue

        try:
            article = KnowledgeArticle(**entry)
        except ValidationError as e:
            logger.warning(f"Skipping malformed article entry {idx}: {e.error_count()} error(s)")
            continue

        seen_ids.add(article.id)
        articles.append(article)

    logger.info(f"Parsed knowledge base: {len(articles)} articles")
    return articles


def load_articles(path: Path) -> list[KnowledgeArticle]:
    """
    Load articles from a local YAML file.

    Raises:
        KnowledgeBaseError: If the file cannot be read or parsed.
    """
    logger.info(f"Loading knowledge base from {path}")
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise KnowledgeBaseError(f"Cannot read knowledge base {path}: {e}") from e
    return parse_articles(content)


class KnowledgeBaseClient:
    """
    Client for a remotely hosted knowledge base.

    Fetches the YAML article list from the configured URL.
    """

    def __init__(self, config: KnowledgeBaseConfig):
        """
        Initialize the client.

        Args:
            config: Knowledge base configuration with the articles URL.
        """
        self._config = config
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> "KnowledgeBaseClient":
        """Context manager entry."""
        self._client = httpx.Client(timeout=self._config.request_timeout)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        if self._client:
            self._client.close()
            self._client = None

    def fetch_articles(self) -> list[KnowledgeArticle]:
        """
        Fetch and parse all articles.

        Raises:
            KnowledgeBaseError: If fetching or parsing fails.
        """
        if not self._client:
            raise RuntimeError("Client must be used within a context manager")

        logger.info(f"Fetching knowledge base from {self._config.articles_url}")

        try:
            response = self._client.get(self._config.articles_url)
            response.raise_for_status()
            return parse_articles(response.text)
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error fetching knowledge base: {e}")
            raise KnowledgeBaseError(f"HTTP error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Request error fetching knowledge base: {e}")
            raise KnowledgeBaseError(f"Request failed: {str(e)}") from e


def load_knowledge_base(config: KnowledgeBaseConfig) -> list[KnowledgeArticle]:
    """
    Load articles from whichever source is configured.

    A local file takes precedence over a URL. With neither configured the
    knowledge base is empty.
    """
    if config.articles_path is not None:
        return load_articles(config.articles_path)

    if config.articles_url:
        with KnowledgeBaseClient(config) as client:
            return client.fetch_articles()

    logger.info("No knowledge base configured")
    return []


def _matches_query(article: KnowledgeArticle, query: str) -> bool:
    return (
        query in article.title.lower()
        or query in article.content.lower()
        or any(query in keyword.lower() for keyword in article.keywords)
    )


def search_articles(
    articles: list[KnowledgeArticle],
    query: Optional[str] = None,
    category: Optional[Category] = None,
    limit: int = 10,
) -> list[KnowledgeArticle]:
    """
    Search published articles.

    Args:
        articles: Articles to search.
        query: Case-insensitive text matched against title, content and keywords.
        category: Only return articles in this category.
        limit: Maximum number of results.

    Returns:
        Matching articles. Without a query, the most viewed come first.
    """
    results = [a for a in articles if a.is_published()]

    if category is not None:
        results = [a for a in results if a.category == category]

    needle = (query or "").strip().lower()
    if needle:
        results = [a for a in results if _matches_query(a, needle)]
    else:
        results = sorted(results, key=lambda a: a.views, reverse=True)

    return results[:max(limit, 0)]


def find_article(articles: list[KnowledgeArticle], article_id: str) -> Optional[KnowledgeArticle]:
    for article in articles:
        if article.id == article_id:
            return article
    return None


def record_view(article: KnowledgeArticle) -> KnowledgeArticle:
    """Return a copy of the article with its view count incremented."""
    return article.model_copy(update={"views": article.views + 1})


def record_feedback(article: KnowledgeArticle, helpful: bool) -> KnowledgeArticle:
    """Return a copy of the article with a helpful/not helpful vote added."""
    if helpful:
        return article.model_copy(update={"helpful_count": article.helpful_count + 1})
    return article.model_copy(update={"not_helpful_count": article.not_helpful_count + 1})
