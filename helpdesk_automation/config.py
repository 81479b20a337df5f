"""
Configuration module for the Helpdesk Automation System.

Handles all configuration through environment variables with safe defaults.
Never stores sensitive data directly in code.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


def _optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name, "").strip()
    return Path(value) if value else None


@dataclass(frozen=True)
class ClassifierConfig:
    """Configuration for the keyword classifier."""

    # Optional YAML file overriding the built-in keyword tables
    keyword_table_path: Optional[Path] = field(
        default_factory=lambda: _optional_path("KEYWORD_TABLE_PATH")
    )


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the optional LLM-assisted classifier (OpenAI compatible)."""

    api_key: str = field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY", "")
    )
    api_base_url: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENAI_API_BASE", None)
    )
    model: str = field(
        default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini")
    )
    temperature: float = field(
        default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.1"))
    )
    max_tokens: int = field(
        default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "300"))
    )
    max_retries: int = field(
        default_factory=lambda: int(os.getenv("LLM_MAX_RETRIES", "3"))
    )

    @property
    def enabled(self) -> bool:
        """LLM analysis is only attempted when an API key is present."""
        return bool(self.api_key)


@dataclass(frozen=True)
class AutomationConfig:
    """
    Simulated processing delays for automation handlers, in seconds.

    The handlers stand in for directory and mail integrations, so the
    delays only model how long a real call would take.
    """

    password_reset_delay: float = field(
        default_factory=lambda: float(os.getenv("AUTOMATION_PASSWORD_RESET_DELAY", "2.0"))
    )
    account_provisioning_delay: float = field(
        default_factory=lambda: float(
            os.getenv("AUTOMATION_ACCOUNT_PROVISIONING_DELAY", "5.0")
        )
    )
    integration_delay: float = field(
        default_factory=lambda: float(os.getenv("AUTOMATION_INTEGRATION_DELAY", "1.0"))
    )


@dataclass(frozen=True)
class KnowledgeBaseConfig:
    """Where knowledge base articles are loaded from."""

    articles_path: Optional[Path] = field(
        default_factory=lambda: _optional_path("KNOWLEDGE_BASE_PATH")
    )
    articles_url: str = field(
        default_factory=lambda: os.getenv("KNOWLEDGE_BASE_URL", "")
    )
    request_timeout: int = field(
        default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30"))
    )


@dataclass(frozen=True)
class OutputConfig:
    """Configuration for output files."""

    output_dir: Path = field(
        default_factory=lambda: Path(os.getenv("OUTPUT_DIR", "./output"))
    )
    report_filename: str = field(
        default_factory=lambda: os.getenv(
            "REPORT_FILENAME",
            "helpdesk_dashboard_report.xlsx"
        )
    )

    @property
    def report_path(self) -> Path:
        """Get full path to the report file."""
        return self.output_dir / self.report_filename


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration aggregating all config sections."""

    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    knowledge_base: KnowledgeBaseConfig = field(default_factory=KnowledgeBaseConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Logging level
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    # Window used by the dashboard aggregates
    dashboard_timeframe_days: int = field(
        default_factory=lambda: int(os.getenv("DASHBOARD_TIMEFRAME_DAYS", "30"))
    )

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of validation error messages (empty if valid).
        """
        errors = []

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"LOG_LEVEL '{self.log_level}' is not a valid logging level")

        path = self.classifier.keyword_table_path
        if path is not None and not path.is_file():
            errors.append(f"KEYWORD_TABLE_PATH '{path}' does not exist")

        kb_path = self.knowledge_base.articles_path
        if kb_path is not None and not kb_path.is_file():
            errors.append(f"KNOWLEDGE_BASE_PATH '{kb_path}' does not exist")

        for name, value in (
            ("AUTOMATION_PASSWORD_RESET_DELAY", self.automation.password_reset_delay),
            ("AUTOMATION_ACCOUNT_PROVISIONING_DELAY", self.automation.account_provisioning_delay),
            ("AUTOMATION_INTEGRATION_DELAY", self.automation.integration_delay),
        ):
            if value < 0:
                errors.append(f"{name} must not be negative")

        if self.dashboard_timeframe_days <= 0:
            errors.append("DASHBOARD_TIMEFRAME_DAYS must be positive")

        return errors


def get_config() -> AppConfig:
    """
    Get application configuration.

    Returns:
        AppConfig instance with all settings loaded from environment.
    """
    return AppConfig()
