"""Fetches project documentation pages and reduces them to plain text."""

from __future__ import annotations

import copy
import logging

import httpx
from lxml import etree, html as lxml_html

from alpha_screener.config import settings
from alpha_screener.models.documentation import DocumentationContent, DocumentationSection

logger = logging.getLogger(__name__)

USER_AGENT = "Alpha-Screener/1.0"
_BOILERPLATE_TAGS = ("script", "style", "noscript", "nav", "footer", "header")
_HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")


class DocumentationFetchError(RuntimeError):
    def __init__(self, message: str, code: str = "502_DOCUMENTATION_UPSTREAM") -> None:
        super().__init__(message)
        self.code = code


class DocumentationClient:
    def __init__(
        self,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @classmethod
    def from_settings(cls) -> "DocumentationClient":
        return cls(timeout=settings.documentation_timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def fetch_documentation(self, url: str) -> DocumentationContent:
        markup = await self._fetch(
            url,
            accept="text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        )
        document = parse_html(markup)
        if document is None:
            return DocumentationContent(url=url, title="Unknown", content="")
        content = DocumentationContent(
            url=url,
            title=extract_title(document),
            sections=extract_sections(document),
            content=extract_text(document),
        )
        logger.info(
            "documentation.fetched",
            extra={"url": url, "chars": len(content.content), "sections": len(content.sections)},
        )
        return content

    async def fetch_website_content(self, url: str) -> str:
        document = parse_html(await self._fetch(url))
        if document is None:
            return ""
        return extract_text(document)

    async def _fetch(self, url: str, *, accept: str | None = None) -> str:
        headers = {"User-Agent": USER_AGENT}
        if accept:
            headers["Accept"] = accept
        try:
            response = await self._http.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise DocumentationFetchError(
                f"Timed out fetching {url}", code="504_DOCUMENTATION_TIMEOUT"
            ) from exc
        except httpx.HTTPError as exc:
            raise DocumentationFetchError(f"HTTP error fetching {url}: {exc}") from exc
        if response.status_code >= 400:
            raise DocumentationFetchError(f"Fetching {url} failed: {response.status_code}")
        return response.text


def parse_html(markup: str) -> lxml_html.HtmlElement | None:
    if not markup or not markup.strip():
        return None
    try:
        return lxml_html.fromstring(markup)
    except (etree.ParserError, ValueError):
        logger.warning("documentation.unparseable", extra={"length": len(markup)})
        return None


def extract_title(document: lxml_html.HtmlElement) -> str:
    title = document.findtext(".//title")
    return title.strip() if title and title.strip() else "Unknown"


def extract_sections(document: lxml_html.HtmlElement) -> list[DocumentationSection]:
    sections = []
    for element in document.iter(*_HEADING_TAGS):
        heading = _collapse(element.text_content())
        if heading:
            sections.append(DocumentationSection(heading=heading, level=int(element.tag[1])))
    return sections


def extract_text(document: lxml_html.HtmlElement) -> str:
    """Visible text with navigation chrome and scripts removed, whitespace collapsed."""
    body = copy.deepcopy(document)
    etree.strip_elements(body, *_BOILERPLATE_TAGS, with_tail=False)
    return _collapse(body.text_content())


def _collapse(text: str) -> str:
    return " ".join(text.split())
