"""
Automation dispatcher for the Helpdesk Automation System.

Decides whether a ticket can be resolved without a human and, if so,
runs the category-specific handler. Automation never raises to the
caller: any handler failure is logged and reported as "not handled",
which leaves the ticket for a human.

Handlers only simulate the directory and mail work. The wait is
injected so callers (and tests) control wall-clock time.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from .config import AutomationConfig
from .models import (
    AutomationOutcome,
    Category,
    ExternalTicketReference,
    Ticket,
    utc_now,
)


logger = logging.getLogger(__name__)


Delay = Callable[[float], None]
Handler = Callable[[Ticket, Delay], str]


class AutomationValidationError(Exception):
    """Ticket is missing information a handler needs."""
    pass


class IntegrationError(Exception):
    """Unknown or failed external integration."""
    pass


@dataclass(frozen=True)
class CategoryRule:
    """Whether a category can be automated, and by which handler."""

    category: Category
    can_automate: bool
    handler: Optional[Handler] = None


def handle_password_reset(ticket: Ticket, delay: Delay, delay_seconds: float = 2.0) -> str:
    """
    Simulate sending a password reset email.

    Raises:
        AutomationValidationError: If the requester email is missing.
    """
    email = ticket.requester.email if ticket.requester else None
    if not email:
        raise AutomationValidationError("Email required for password reset")

    delay(delay_seconds)

    return (
        f"Password reset email sent to {email}. Please check your inbox and follow "
        "the instructions to reset your password. If you don't receive the email "
        "within 10 minutes, please check your spam folder or contact IT support."
    )


def handle_account_provisioning(
    ticket: Ticket,
    delay: Delay,
    delay_seconds: float = 5.0,
) -> str:
    """
    Simulate creating a user account.

    Raises:
        AutomationValidationError: If name, email or department is missing.
    """
    requester = ticket.requester
    if not requester or not requester.name or not requester.email or not requester.department:
        raise AutomationValidationError("Incomplete information for account provisioning")

    delay(delay_seconds)

    return (
        f"Account created for {requester.name} ({requester.email}) in "
        f"{requester.department} department. Welcome email with login credentials "
        "has been sent to the user's email address. The user will be prompted to "
        "change their password on first login."
    )


def build_default_rules(
    config: Optional[AutomationConfig] = None,
) -> Mapping[Category, CategoryRule]:
    """
    Build the read-only category rule table.

    Categories that are not listed (``other``) cannot be automated.
    """
    config = config or AutomationConfig()

    rules = {
        Category.PASSWORD_RESET: CategoryRule(
            Category.PASSWORD_RESET,
            can_automate=True,
            handler=partial(handle_password_reset, delay_seconds=config.password_reset_delay),
        ),
        Category.ACCOUNT_PROVISIONING: CategoryRule(
            Category.ACCOUNT_PROVISIONING,
            can_automate=True,
            handler=partial(
                handle_account_provisioning,
                delay_seconds=config.account_provisioning_delay,
            ),
        ),
        Category.SOFTWARE_ISSUE: CategoryRule(Category.SOFTWARE_ISSUE, can_automate=False),
        Category.HARDWARE_ISSUE: CategoryRule(Category.HARDWARE_ISSUE, can_automate=False),
        Category.NETWORK_ISSUE: CategoryRule(Category.NETWORK_ISSUE, can_automate=False),
    }
    return MappingProxyType(rules)


# Action name -> external ID prefix
EXTERNAL_SYSTEMS = MappingProxyType({
    "create_servicenow": "SNW-",
    "create_jira": "JIRA-",
    "create_zendesk": "ZD-",
})


class AutomationDispatcher:
    """
    Routes tickets to automation handlers.

    Stateless between calls: the rule table is read-only and each call
    is independent, so one dispatcher can serve concurrent callers.
    """

    def __init__(
        self,
        rules: Optional[Mapping[Category, CategoryRule]] = None,
        delay: Delay = time.sleep,
        config: Optional[AutomationConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the dispatcher.

        Args:
            rules: Category rule table; defaults to build_default_rules(config).
            delay: Called with the number of seconds to wait.
            config: Delay settings.
            clock: Source of the current time for external IDs.
        """
        self._config = config or AutomationConfig()
        self._rules = rules if rules is not None else build_default_rules(self._config)
        self._delay = delay
        self._clock = clock

    @property
    def rules(self) -> Mapping[Category, CategoryRule]:
        return self._rules

    def can_automate(self, category: Category) -> bool:
        """Check whether a category has an automation handler."""
        rule = self._rules.get(category)
        return bool(rule and rule.can_automate and rule.handler)

    def handle_ticket(self, ticket: Ticket) -> AutomationOutcome:
        """
        Try to resolve a ticket without human intervention.

        Args:
            ticket: Ticket with at least a category and requester details.

        Returns:
            AutomationOutcome; ``handled`` is False when the category cannot
            be automated or the handler failed.
        """
        rule = self._rules.get(ticket.category)

        if not rule or not rule.can_automate or rule.handler is None:
            logger.debug(f"No automation available for category {ticket.category}")
            return AutomationOutcome(handled=False)

        try:
            resolution = rule.handler(ticket, self._delay)
        except Exception as e:
            logger.error(f"Automation failed for ticket {ticket.ticket_id}: {e}")
            return AutomationOutcome(handled=False)

        logger.info(f"Ticket {ticket.ticket_id} resolved by {rule.category.value} automation")
        return AutomationOutcome(handled=True, resolution=resolution)

    def _create_external_ticket(self, prefix: str) -> ExternalTicketReference:
        self._delay(self._config.integration_delay)
        millis = int(self._clock().timestamp() * 1000)
        return ExternalTicketReference(external_id=f"{prefix}{millis}", status="created")

    def integrate_with_external_system(
        self,
        ticket: Ticket,
        action: str,
    ) -> Optional[ExternalTicketReference]:
        """
        Mirror a ticket into an external ticketing system.

        These are placeholders: nothing is sent, an external ID is made up
        after the integration delay.

        Args:
            ticket: Ticket to mirror.
            action: One of ``create_servicenow``, ``create_jira``, ``create_zendesk``.

        Returns:
            Reference to the external ticket, or None if the integration failed.
        """
        try:
            prefix = EXTERNAL_SYSTEMS.get(action)
            if prefix is None:
                raise IntegrationError(f"Unknown integration action: {action}")
            reference = self._create_external_ticket(prefix)
        except Exception as e:
            logger.error(f"External integration failed for ticket {ticket.ticket_id}: {e}")
            return None

        logger.info(f"Ticket {ticket.ticket_id} mirrored as {reference.external_id}")
        return reference

    def run_routine_maintenance(self) -> bool:
        """Hook for scheduled housekeeping jobs; currently only logs."""
        logger.info("Running routine maintenance tasks...")
        return True
