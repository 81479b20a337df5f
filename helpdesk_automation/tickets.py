"""
Ticket intake for the Helpdesk Automation System.

Drives the classify -> attach -> automate -> resolve flow for new
tickets, the password reset shortcut, and ticket comments. Persisting
tickets and notifying clients is left to the caller.
"""

import itertools
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import yaml
from pydantic import ValidationError

from .automation import AutomationDispatcher
from .classifier import RequestClassifier
from .models import (
    Category,
    Comment,
    Priority,
    Requester,
    Ticket,
    TicketDraft,
    TicketStatus,
    utc_now,
)


logger = logging.getLogger(__name__)


SYSTEM_AUTHOR = "System"
PASSWORD_RESET_TITLE = "Password Reset Request"
PASSWORD_RESET_COMMENT = "Password reset email sent successfully. Please check your inbox."

# Integration action -> IntegrationData field
INTEGRATION_FIELDS = {
    "create_servicenow": "servicenow_id",
    "create_jira": "jira_id",
    "create_zendesk": "zendesk_id",
}


def format_ticket_id(number: int) -> str:
    """Format a sequence number as a ticket ID (e.g. TKT-000042)."""
    return f"TKT-{number:06d}"


class TicketIntake:
    """
    Creates and updates tickets.

    Classification and automation failures never block ticket creation:
    a ticket that cannot be automated simply stays open for a human.
    """

    def __init__(
        self,
        classifier: RequestClassifier,
        dispatcher: AutomationDispatcher,
        clock: Callable[[], datetime] = utc_now,
        start_number: int = 1,
    ):
        """
        Initialize the intake.

        Args:
            classifier: Analyzes ticket descriptions.
            dispatcher: Attempts automated resolution.
            clock: Source of timestamps.
            start_number: First ticket sequence number to hand out.
        """
        self._classifier = classifier
        self._dispatcher = dispatcher
        self._clock = clock
        self._numbers = itertools.count(start_number)

    def next_ticket_id(self) -> str:
        return format_ticket_id(next(self._numbers))

    def _resolve_with_comment(self, ticket: Ticket, content: str) -> None:
        now = self._clock()
        ticket.status = TicketStatus.RESOLVED
        ticket.automated = True
        ticket.comments.append(Comment(author=SYSTEM_AUTHOR, content=content, timestamp=now))
        ticket.updated_at = now

    def create_ticket(self, draft: TicketDraft) -> Ticket:
        """
        Create a ticket from inbound data.

        The description is classified to fill category, priority and tags,
        then automation is attempted. If it succeeds the ticket is resolved
        and the resolution is added as a system comment.

        Args:
            draft: Title, description and requester details.

        Returns:
            The new ticket.
        """
        analysis = self._classifier.analyze(draft.description)
        now = self._clock()

        ticket = Ticket(
            ticket_id=self.next_ticket_id(),
            title=draft.title,
            description=draft.description,
            category=analysis.category,
            priority=analysis.priority,
            tags=list(analysis.tags),
            requester=draft.requester,
            assignee=draft.assignee,
            created_at=now,
            updated_at=now,
        )
        logger.info(
            f"Created ticket {ticket.ticket_id}: {ticket.category.value} / "
            f"{ticket.priority.value}"
        )

        outcome = self._dispatcher.handle_ticket(ticket)
        if outcome.handled:
            self._resolve_with_comment(ticket, outcome.resolution or "")

        return ticket

    def request_password_reset(self, email: str) -> Ticket:
        """
        Run the password reset automation for an email address.

        A ticket is synthesized to record the request. It is resolved if
        the reset succeeds and left in progress otherwise.
        """
        now = self._clock()
        ticket = Ticket(
            ticket_id=self.next_ticket_id(),
            title=PASSWORD_RESET_TITLE,
            description=f"Automated password reset request for {email}",
            category=Category.PASSWORD_RESET,
            priority=Priority.MEDIUM,
            status=TicketStatus.IN_PROGRESS,
            requester=Requester(email=email),
            automated=True,
            created_at=now,
            updated_at=now,
        )

        outcome = self._dispatcher.handle_ticket(ticket)
        if outcome.handled:
            self._resolve_with_comment(ticket, PASSWORD_RESET_COMMENT)
        else:
            logger.warning(f"Password reset for ticket {ticket.ticket_id} needs a human")

        return ticket

    def add_comment(
        self,
        ticket: Ticket,
        author: str,
        content: str,
        is_internal: bool = False,
    ) -> Comment:
        """Append a comment to a ticket and return it."""
        now = self._clock()
        comment = Comment(author=author, content=content, is_internal=is_internal, timestamp=now)
        ticket.comments.append(comment)
        ticket.updated_at = now
        return comment

    def update_ticket(self, ticket: Ticket, **changes: Any) -> Ticket:
        """
        Apply field updates to a ticket.

        The whole change set is validated against the ticket model before
        anything is assigned, so a rejected update leaves the ticket as it was.

        Raises:
            ValueError: If a field is unknown or protected, or a value is invalid.
        """
        for name in changes:
            if name in ("ticket_id", "created_at") or name not in Ticket.model_fields:
                raise ValueError(f"Field '{name}' cannot be updated")

        validated = Ticket.model_validate({**ticket.model_dump(), **changes})

        for name in changes:
            setattr(ticket, name, getattr(validated, name))
        ticket.updated_at = self._clock()
        return ticket

    def mirror_ticket(self, ticket: Ticket, action: str) -> Optional[str]:
        """
        Create a copy of the ticket in an external system and record its ID.

        Returns:
            The external ID, or None if the integration failed.
        """
        reference = self._dispatcher.integrate_with_external_system(ticket, action)
        if reference is None:
            return None

        setattr(ticket.integration_data, INTEGRATION_FIELDS[action], reference.external_id)
        ticket.updated_at = self._clock()
        return reference.external_id


def filter_tickets(
    tickets: Iterable[Ticket],
    status: Optional[TicketStatus] = None,
    category: Optional[Category] = None,
    priority: Optional[Priority] = None,
    assignee_email: Optional[str] = None,
) -> list[Ticket]:
    """
    Select tickets matching every given filter, newest first.
    """
    selected = [
        t for t in tickets
        if (status is None or t.status == status)
        and (category is None or t.category == category)
        and (priority is None or t.priority == priority)
        and (assignee_email is None or (t.assignee is not None and t.assignee.email == assignee_email))
    ]
    return sorted(selected, key=lambda t: t.created_at, reverse=True)


class TicketLoadError(Exception):
    """Error when reading tickets from a file."""
    pass


def load_tickets(path: Path) -> list[Ticket]:
    """
    Read tickets from a YAML file.

    Accepts a top-level list or a mapping with a ``tickets`` list.
    Malformed entries are skipped with a warning.

    Raises:
        TicketLoadError: If the file cannot be read or is not valid YAML.
    """
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise TicketLoadError(f"Cannot read tickets file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise TicketLoadError(f"Invalid YAML in {path}: {e}") from e

    entries = data.get("tickets", []) if isinstance(data, dict) else (data or [])
    if not isinstance(entries, list):
        raise TicketLoadError(f"No ticket list found in {path}")

    tickets = []
    for idx, entry in enumerate(entries):
        try:
            tickets.append(Ticket(**entry))
        except (TypeError, ValidationError) as e:
            logger.warning(f"Skipping malformed ticket entry {idx}: {e}")

    logger.info(f"Loaded {len(tickets)} tickets from {path}")
    return tickets
