"""
Command-line entry point for the Helpdesk Automation System.

Exposes the request classifier, ticket intake with automation, the
chatbot, knowledge base search and the dashboard report.
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click

from .automation import AutomationDispatcher
from .chatbot import ChatAssistant
from .classifier import LLMRequestClassifier, RequestClassifier
from .config import AppConfig, OutputConfig, get_config
from .dashboard import build_dashboard, build_performance
from .keywords import KeywordTableError, load_keyword_table
from .knowledge_base import (
    KnowledgeBaseError,
    find_article,
    load_knowledge_base,
    record_view,
    search_articles,
)
from .models import Category, Requester, TicketDraft, utc_now
from .report_generator import ReportGeneratorError, generate_report
from .tickets import TicketIntake, TicketLoadError, load_tickets


def setup_logging(level: str) -> None:
    """
    Configure application logging.

    Logs go to stderr so command output on stdout stays machine readable.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def _no_delay(seconds: float) -> None:
    logger.debug(f"Skipping simulated delay of {seconds}s")


def build_classifier(config: AppConfig) -> RequestClassifier:
    """Keyword classifier using the configured keyword table."""
    return RequestClassifier(load_keyword_table(config.classifier.keyword_table_path))


def build_intake(config: AppConfig, simulate_delays: bool = True) -> TicketIntake:
    dispatcher = AutomationDispatcher(
        config=config.automation,
        delay=time.sleep if simulate_delays else _no_delay,
    )
    return TicketIntake(build_classifier(config), dispatcher)


def _echo_model(model) -> None:
    click.echo(model.model_dump_json(indent=2))


def _fail(message: str) -> None:
    click.echo(message, err=True)
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug logging",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """
    Helpdesk Automation System.

    Classifies IT requests, resolves routine tickets automatically and
    reports on ticket volumes.
    """
    config = get_config()
    setup_logging("DEBUG" if debug else config.log_level)
    ctx.obj = config


@cli.command()
@click.argument("text")
@click.option(
    "--llm",
    is_flag=True,
    default=False,
    help="Use the LLM classifier when OPENAI_API_KEY is set",
)
@click.pass_obj
def classify(config: AppConfig, text: str, llm: bool) -> None:
    """Classify a free-text request."""
    try:
        classifier = build_classifier(config)
    except KeywordTableError as e:
        _fail(f"Keyword table error: {e}")

    if llm:
        classifier = LLMRequestClassifier(config.llm, fallback=classifier)

    _echo_model(classifier.analyze(text))


@cli.command()
@click.option("--title", required=True, help="Short summary of the request")
@click.option("--description", required=True, help="Full request text")
@click.option("--name", default=None, help="Requester name")
@click.option("--email", default=None, help="Requester email")
@click.option("--department", default=None, help="Requester department")
@click.option(
    "--no-delay",
    is_flag=True,
    default=False,
    help="Skip simulated automation delays",
)
@click.pass_obj
def submit(
    config: AppConfig,
    title: str,
    description: str,
    name: Optional[str],
    email: Optional[str],
    department: Optional[str],
    no_delay: bool,
) -> None:
    """Create a ticket and try to resolve it automatically."""
    try:
        intake = build_intake(config, simulate_delays=not no_delay)
    except KeywordTableError as e:
        _fail(f"Keyword table error: {e}")

    draft = TicketDraft(
        title=title,
        description=description,
        requester=Requester(name=name, email=email, department=department),
    )
    _echo_model(intake.create_ticket(draft))


@cli.command("reset-password")
@click.argument("email")
@click.option("--no-delay", is_flag=True, default=False, help="Skip simulated delays")
@click.pass_obj
def reset_password(config: AppConfig, email: str, no_delay: bool) -> None:
    """Run the password reset automation for EMAIL."""
    try:
        intake = build_intake(config, simulate_delays=not no_delay)
    except KeywordTableError as e:
        _fail(f"Keyword table error: {e}")

    _echo_model(intake.request_password_reset(email))


@cli.command()
@click.argument("message")
@click.pass_obj
def chat(config: AppConfig, message: str) -> None:
    """Get the chatbot's reply to MESSAGE."""
    try:
        assistant = ChatAssistant(
            build_classifier(config),
            load_knowledge_base(config.knowledge_base),
        )
    except (KeywordTableError, KnowledgeBaseError) as e:
        _fail(f"Failed to start chatbot: {e}")

    _echo_model(assistant.respond(message))


@cli.command("kb-search")
@click.argument("query", required=False)
@click.option(
    "--category",
    type=click.Choice([c.value for c in Category]),
    default=None,
    help="Only show articles in this category",
)
@click.option("--limit", type=int, default=10, show_default=True)
@click.pass_obj
def kb_search(
    config: AppConfig,
    query: Optional[str],
    category: Optional[str],
    limit: int,
) -> None:
    """Search the knowledge base."""
    try:
        articles = load_knowledge_base(config.knowledge_base)
    except KnowledgeBaseError as e:
        _fail(f"Knowledge base error: {e}")

    results = search_articles(
        articles,
        query=query,
        category=Category(category) if category else None,
        limit=limit,
    )
    click.echo(json.dumps([a.model_dump(mode="json") for a in results], indent=2))


@cli.command("kb-show")
@click.argument("article_id")
@click.pass_obj
def kb_show(config: AppConfig, article_id: str) -> None:
    """Show one knowledge base article, counting the view."""
    try:
        articles = load_knowledge_base(config.knowledge_base)
    except KnowledgeBaseError as e:
        _fail(f"Knowledge base error: {e}")

    article = find_article(articles, article_id)
    if article is None:
        _fail(f"Article not found: {article_id}")

    _echo_model(record_view(article))


@cli.command()
@click.argument("tickets_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Custom output path for the report",
)
@click.option(
    "--days",
    type=int,
    default=None,
    help="Dashboard window in days (defaults to DASHBOARD_TIMEFRAME_DAYS)",
)
@click.pass_obj
def report(
    config: AppConfig,
    tickets_file: Path,
    output: Optional[Path],
    days: Optional[int],
) -> None:
    """Build the dashboard from TICKETS_FILE and write an Excel report."""
    output_config = config.output
    if output:
        output_config = OutputConfig(
            output_dir=output.parent,
            report_filename=output.name,
        )

    timeframe = days or config.dashboard_timeframe_days
    now = utc_now()

    try:
        tickets = load_tickets(tickets_file)
        summary = build_dashboard(tickets, now, timeframe)
        performance = build_performance(tickets, now, timeframe)
        report_path = generate_report(tickets, summary, output_config)
    except (TicketLoadError, ReportGeneratorError) as e:
        _fail(f"Report failed: {e}")

    logger.info(
        f"Dashboard: {summary.total_tickets} tickets, "
        f"{summary.automation_rate}% automated, "
        f"{performance.tickets_escalated} escalated"
    )
    click.echo(str(report_path))


@cli.command("validate-config")
@click.pass_obj
def validate_config(config: AppConfig) -> None:
    """Check the configuration and report problems."""
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        _fail(f"Configuration validation failed with {len(errors)} error(s)")

    click.echo("Configuration is valid!")


def main() -> None:
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
