"""Shared error classes for the analysis pipeline."""

from __future__ import annotations


class AnalysisError(RuntimeError):
    """Base exception raised by the analysis pipeline."""

    def __init__(self, message: str, code: str = "ANALYSIS_ERROR") -> None:
        super().__init__(message)
        self.code = code


class JudgmentProviderError(AnalysisError):
    """Raised when the upstream AI provider fails."""


class JudgmentValidationError(AnalysisError):
    """Raised when an AI judgment cannot be parsed or does not fit its schema."""


class InvalidGitHubUrlError(AnalysisError):
    """Raised when a repository URL does not point at github.com/<owner>/<repo>."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid GitHub URL: {url}", code="422_INVALID_GITHUB_URL")
        self.url = url
