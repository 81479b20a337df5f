"""
IT support chatbot dialogue.

Branches on the classifier's intent and category: greets, asks for
ticket details, points at knowledge base articles, offers a password
reset, or proposes opening a ticket.
"""

import logging
from typing import Optional

from .classifier import RequestClassifier
from .models import (
    ArticleSuggestion,
    Category,
    ChatReply,
    ClassificationResult,
    Intent,
    KnowledgeArticle,
)


logger = logging.getLogger(__name__)


GREETING_MESSAGE = "Hello! I'm your IT support assistant. How can I help you today?"
GREETING_SUGGESTIONS = (
    "I need to reset my password",
    "I'm having software issues",
    "I need help with hardware",
    "I want to check my ticket status",
)
STATUS_MESSAGE = (
    "I can help you check your ticket status. "
    "Please provide your ticket ID or email address."
)
ARTICLES_MESSAGE = "I found some articles that might help:"
PASSWORD_RESET_MESSAGE = (
    "I can help you reset your password. Please confirm your email address "
    "and I'll send you reset instructions."
)
CREATE_TICKET_MESSAGE = (
    "I couldn't find a direct solution for your issue. "
    "Would you like me to create a support ticket for you?"
)

MAX_ARTICLE_SUGGESTIONS = 3
SUGGESTION_PREVIEW_LENGTH = 200


def _suggest(article: KnowledgeArticle) -> ArticleSuggestion:
    return ArticleSuggestion(
        id=article.id,
        title=article.title,
        content=article.content[:SUGGESTION_PREVIEW_LENGTH] + "...",
    )


class ChatAssistant:
    """Answers chat messages using the classifier and the knowledge base."""

    def __init__(
        self,
        classifier: RequestClassifier,
        articles: Optional[list[KnowledgeArticle]] = None,
    ):
        self._classifier = classifier
        self._articles = list(articles or [])

    def find_articles(self, message: str, analysis: ClassificationResult) -> list[KnowledgeArticle]:
        """
        Articles quoting the message or filed under the message's category.

        An empty message is contained in every article, so it matches them all.
        """
        needle = message.lower()
        found = [
            article for article in self._articles
            if article.is_published() and (
                needle in article.title.lower()
                or needle in article.content.lower()
                or article.category == analysis.category
            )
        ]
        return found[:MAX_ARTICLE_SUGGESTIONS]

    def respond(self, message: str) -> ChatReply:
        """
        Build the chatbot's reply to a user message.

        Args:
            message: Raw text typed by the user.

        Returns:
            ChatReply with the reply text, suggestions and follow-up actions.
        """
        analysis = self._classifier.analyze(message)
        logger.debug(f"Chat message intent: {analysis.intent.value}")

        if analysis.intent == Intent.GREETING:
            return ChatReply(
                message=GREETING_MESSAGE,
                suggestions=list(GREETING_SUGGESTIONS),
            )

        if analysis.intent == Intent.CHECK_STATUS:
            return ChatReply(
                message=STATUS_MESSAGE,
                actions=["request_ticket_info"],
            )

        articles = self.find_articles(message or "", analysis)
        if articles:
            return ChatReply(
                message=ARTICLES_MESSAGE,
                suggestions=[_suggest(article) for article in articles],
                actions=["show_articles", "create_ticket"],
            )

        if analysis.category == Category.PASSWORD_RESET:
            return ChatReply(
                message=PASSWORD_RESET_MESSAGE,
                actions=["password_reset"],
            )

        return ChatReply(
            message=CREATE_TICKET_MESSAGE,
            requires_ticket=True,
            actions=["create_ticket"],
        )
