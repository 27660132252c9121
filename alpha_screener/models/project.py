"""Domain models identifying the project under analysis."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ProjectNarrative(str, Enum):
    INFRASTRUCTURE = "Infrastructure"
    DEFI = "DeFi"
    MODULAR = "Modular"
    STABLECOIN = "Stablecoin"
    AI = "AI"
    RWA = "RWA"
    GAMING = "Gaming"
    SOCIAL = "Social"
    PRIVACY = "Privacy"
    L1 = "L1"
    L2 = "L2"
    INTEROPERABILITY = "Interoperability"
    ORACLE = "Oracle"
    STORAGE = "Storage"
    UNKNOWN = "Unknown"


class ProjectIdentifier(BaseModel):
    """Name plus the optional source URLs that decide which stages run."""

    name: str = Field(..., min_length=1)
    symbol: str | None = None
    website: str | None = None
    docs_url: str | None = None
    github_url: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Project name must not be blank.")
        return stripped

    @property
    def fingerprint(self) -> str:
        """Cache key identifying this analysis request."""
        return analysis_cache_key(self.name)


def analysis_cache_key(name: str) -> str:
    return f"analysis:{name.strip()}"
