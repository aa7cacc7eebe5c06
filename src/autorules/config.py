"""Runtime configuration for check runs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from autorules.orchestrator.backend.openrouter import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
)
from autorules.orchestrator.worker import DEFAULT_MODEL
from autorules.report import SUPPORTED_REPORT_FORMATS

DEFAULT_WORKERS = 3
DEFAULT_REPORT_PATH = Path("autorules-report.html")
SUPPORTED_DISPLAYS = ("live", "log", "none")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class LlmSettings:
    """Completion API settings."""

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    provider_only: str | None = None
    provider_sort: str | None = None


@dataclass(slots=True)
class RunSettings:
    """Scan and queue settings."""

    root_dir: Path = field(default_factory=Path.cwd)
    workers: int = DEFAULT_WORKERS
    display: str = "live"
    log_level: str = "WARNING"


@dataclass(slots=True)
class ReportSettings:
    """Report output settings."""

    report_format: str = "html"
    output_path: Path = DEFAULT_REPORT_PATH


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    llm: LlmSettings = field(default_factory=LlmSettings)
    run: RunSettings = field(default_factory=RunSettings)
    report: ReportSettings = field(default_factory=ReportSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local use."""

        return cls(
            llm=LlmSettings(
                api_key=_env_str("OPENROUTER_API_KEY"),
                model=os.getenv("AUTORULES_MODEL", DEFAULT_MODEL),
                base_url=os.getenv("AUTORULES_BASE_URL", DEFAULT_BASE_URL),
                request_timeout_seconds=float(
                    os.getenv("AUTORULES_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)),
                ),
                max_retries=int(os.getenv("AUTORULES_MAX_RETRIES", str(DEFAULT_MAX_RETRIES))),
                provider_only=_env_str("AUTORULES_PROVIDER"),
                provider_sort=_env_str("AUTORULES_PROVIDER_SORT"),
            ),
            run=RunSettings(
                root_dir=Path(os.getenv("AUTORULES_ROOT_DIR", "") or Path.cwd()),
                workers=int(os.getenv("AUTORULES_WORKERS", str(DEFAULT_WORKERS))),
                display=os.getenv("AUTORULES_DISPLAY", "live").strip().lower(),
                log_level=os.getenv("AUTORULES_LOG_LEVEL", "WARNING").strip().upper(),
            ),
            report=ReportSettings(
                report_format=os.getenv("AUTORULES_REPORT", "html").strip().lower(),
                output_path=Path(os.getenv("AUTORULES_OUTPUT", str(DEFAULT_REPORT_PATH))),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for missing or out-of-range settings."""

        if not self.llm.api_key:
            raise ValueError(
                "API key is required. Set OPENROUTER_API_KEY environment variable "
                "or use --api-key option.",
            )
        if not self.llm.model.strip():
            raise ValueError("Model id must not be empty.")
        _validate_base_url(self.llm.base_url)
        if self.llm.request_timeout_seconds <= 0:
            raise ValueError("AUTORULES_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.llm.max_retries < 0:
            raise ValueError("AUTORULES_MAX_RETRIES must be >= 0.")
        if self.run.workers <= 0:
            raise ValueError(f"Number of workers must be > 0, got {self.run.workers}.")
        if self.run.display not in SUPPORTED_DISPLAYS:
            raise ValueError(
                f"Unsupported display {self.run.display!r}. "
                f"Valid options: {', '.join(SUPPORTED_DISPLAYS)}.",
            )
        if self.run.log_level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level {self.run.log_level!r}.")
        if not self.run.root_dir.is_dir():
            raise ValueError(f"Root directory does not exist: {self.run.root_dir}")
        if self.report.report_format not in SUPPORTED_REPORT_FORMATS:
            raise ValueError(
                f"Unsupported report format {self.report.report_format!r}. "
                f"Valid options: {', '.join(SUPPORTED_REPORT_FORMATS)}.",
            )


def _env_str(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _validate_base_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid AUTORULES_BASE_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )
