"""
Data models for the Helpdesk Automation System.

Uses Pydantic for robust data validation and serialization.
Result models are immutable so they can be shared between callers.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Category(str, Enum):
    """IT issue types a request can be filed under."""

    PASSWORD_RESET = "password_reset"
    SOFTWARE_ISSUE = "software_issue"
    HARDWARE_ISSUE = "hardware_issue"
    ACCOUNT_PROVISIONING = "account_provisioning"
    NETWORK_ISSUE = "network_issue"
    OTHER = "other"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Intent(str, Enum):
    """Coarse purpose of a chat message."""

    GREETING = "greeting"
    CHECK_STATUS = "check_status"
    SUPPORT_REQUEST = "support_request"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ArticleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ClassificationResult(BaseModel):
    """
    Result of analyzing a free-text request.

    Produced fresh per call; the caller decides whether to store
    the values on a ticket.
    """

    category: Category = Field(default=Category.OTHER)
    priority: Priority = Field(default=Priority.MEDIUM)
    intent: Intent = Field(default=Intent.SUPPORT_REQUEST)
    tags: list[str] = Field(
        default_factory=list,
        max_length=5,
        description="Salient words from the request, in encounter order"
    )
    confidence: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Classification confidence (0-1)"
    )

    model_config = {"frozen": True}


class AutomationOutcome(BaseModel):
    """Whether an automation handler resolved a ticket, and how."""

    handled: bool = False
    resolution: Optional[str] = None

    model_config = {"frozen": True}


class ExternalTicketReference(BaseModel):
    """Identifier handed back by an external ticketing system."""

    external_id: str
    status: str = "created"

    model_config = {"frozen": True}


class Requester(BaseModel):
    """Person who raised the ticket."""

    name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None

    @field_validator("name", "email", "department")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank strings as missing values."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v is not None else None


class Assignee(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class Comment(BaseModel):
    """A note appended to a ticket by a person or by the system."""

    author: str
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    is_internal: bool = False


class IntegrationData(BaseModel):
    """IDs of mirrored tickets in external systems."""

    servicenow_id: Optional[str] = None
    jira_id: Optional[str] = None
    zendesk_id: Optional[str] = None


class TicketDraft(BaseModel):
    """
    Inbound ticket data before classification.

    Attributes:
        title: Short summary supplied by the requester
        description: Free text that drives classification
        requester: Contact details used by automation handlers
        assignee: Optional agent the ticket is routed to
    """

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    requester: Requester = Field(default_factory=Requester)
    assignee: Optional[Assignee] = None


class Ticket(BaseModel):
    """
    A helpdesk ticket as seen by the intake flow.

    Attributes:
        ticket_id: Human readable identifier (e.g. TKT-000001)
        title: Short summary
        description: Full request text
        category: Classified issue type
        priority: Classified urgency
        status: Lifecycle state
        requester: Person who raised the ticket
        assignee: Agent working the ticket, if any
        tags: Keywords extracted from the description
        comments: Conversation and system notes
        automated: True when an automation handler resolved the ticket
        integration_data: IDs of external mirrors
    """

    ticket_id: str
    title: str
    description: str
    category: Category = Category.OTHER
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN
    requester: Requester = Field(default_factory=Requester)
    assignee: Optional[Assignee] = None
    tags: list[str] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    automated: bool = False
    integration_data: IntegrationData = Field(default_factory=IntegrationData)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": False, "validate_assignment": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Timestamps without an offset are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_resolved(self) -> bool:
        """Check if the ticket no longer needs attention."""
        return self.status in (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class ArticleAuthor(BaseModel):
    name: str = ""
    email: str = ""


class KnowledgeArticle(BaseModel):
    """A self-service help article."""

    id: str
    title: str
    content: str
    category: Category = Category.OTHER
    keywords: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    helpful_count: int = Field(default=0, ge=0)
    not_helpful_count: int = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)
    author: Optional[ArticleAuthor] = None
    status: ArticleStatus = ArticleStatus.PUBLISHED

    model_config = {"frozen": True}

    def is_published(self) -> bool:
        return self.status == ArticleStatus.PUBLISHED


class ArticleSuggestion(BaseModel):
    """Shortened article reference offered by the chatbot."""

    id: str
    title: str
    content: str

    model_config = {"frozen": True}


class ChatReply(BaseModel):
    """What the chatbot says back, and which follow-up actions it offers."""

    message: str = ""
    suggestions: list[Union[str, ArticleSuggestion]] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)
    requires_ticket: bool = False

    model_config = {"frozen": True}


class DailyCount(BaseModel):
    date: str
    count: int

    model_config = {"frozen": True}


class DashboardSummary(BaseModel):
    """Aggregate ticket counts over a time window."""

    total_tickets: int = 0
    tickets_by_status: dict[str, int] = Field(default_factory=dict)
    tickets_by_category: dict[str, int] = Field(default_factory=dict)
    tickets_by_priority: dict[str, int] = Field(default_factory=dict)
    avg_resolution_time_hours: int = 0
    automation_rate: int = Field(default=0, ge=0, le=100)
    daily_trend: list[DailyCount] = Field(default_factory=list)

    model_config = {"frozen": True}


class PerformanceSummary(BaseModel):
    """Agent responsiveness figures over a time window."""

    avg_first_response_time_hours: int = 0
    tickets_resolved: int = 0
    tickets_escalated: int = 0

    model_config = {"frozen": True}
