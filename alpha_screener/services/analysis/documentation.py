from __future__ import annotations

import logging
from typing import Protocol

from alpha_screener.models.documentation import DocumentationAnalysis, DocumentationContent
from alpha_screener.services.analysis.judgment import JudgmentClient, judge
from alpha_screener.services.analysis.prompts import DOCUMENTATION_ANALYSIS_PROMPT

logger = logging.getLogger(__name__)

TRUNCATION_SUFFIX = "\n\n[Content truncated...]"


class DocumentationPort(Protocol):
    async def fetch_documentation(self, url: str) -> DocumentationContent:
        ...

    async def fetch_website_content(self, url: str) -> str:
        ...


class DocumentationAnalysisService:
    def __init__(
        self,
        documentation_port: DocumentationPort,
        judgment_client: JudgmentClient,
        *,
        max_chars: int = 50_000,
    ) -> None:
        self._port = documentation_port
        self._judgment = judgment_client
        self._max_chars = max_chars

    async def fetch_content(self, *, docs_url: str | None, website: str | None) -> str:
        """Docs take precedence over the website; neither yields an empty string."""
        if docs_url:
            documentation = await self._port.fetch_documentation(docs_url)
            return documentation.content
        if website:
            return await self._port.fetch_website_content(website)
        return ""

    async def analyze(self, docs_url: str) -> DocumentationAnalysis:
        documentation = await self._port.fetch_documentation(docs_url)
        return await self.analyze_from_content(documentation.content)

    async def analyze_from_content(self, content: str) -> DocumentationAnalysis:
        prompt = DOCUMENTATION_ANALYSIS_PROMPT.format(content=truncate_content(content, self._max_chars))
        analysis = await judge(self._judgment, prompt, DocumentationAnalysis, stage="documentation")
        logger.info(
            "documentation.analyzed",
            extra={
                "narrative": analysis.narrative.value,
                "has_funding_signal": analysis.has_funding_signal,
            },
        )
        return analysis


def truncate_content(content: str, max_length: int) -> str:
    if len(content) <= max_length:
        return content
    return content[:max_length] + TRUNCATION_SUFFIX
