from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from alpha_screener.models.analysis import FullAnalysis, RatingJudgment
from alpha_screener.models.code import CodeAnalysis
from alpha_screener.models.documentation import DocumentationAnalysis
from alpha_screener.models.funding import FundingAnalysis
from alpha_screener.models.market import MarketAnalysis
from alpha_screener.models.team import TeamAnalysis
from alpha_screener.services.analysis.output_formatter import OutputFormatter, format_number
from alpha_screener.services.analysis.rating import compose_rating
from tests.helpers.fakes import (
    code_payload,
    documentation_payload,
    market_payload,
    rating_payload,
    team_payload,
)


def _analysis(*, funding: FundingAnalysis | None = None, **rating_overrides) -> FullAnalysis:
    return FullAnalysis(
        project_id="Lendr",
        documentation=DocumentationAnalysis.model_validate(documentation_payload()),
        funding=funding,
        market=MarketAnalysis.model_validate({**market_payload(), "market_cap": 25_000_000}),
        team=TeamAnalysis.model_validate(team_payload()),
        code=CodeAnalysis.model_validate({**code_payload(), "total_commits": 250, "total_contributors": 2}),
        rating=compose_rating(RatingJudgment.model_validate(rating_payload(**rating_overrides))),
        analyzed_at=datetime(2025, 2, 1, 12, 0, tzinfo=timezone.utc),
    )


def _funding() -> FundingAnalysis:
    return FundingAnalysis.model_validate(
        {
            "stage": "Seed",
            "total_raised_usd": 3_000_000,
            "rounds": [
                {
                    "stage": "Seed",
                    "amount_usd": 3_000_000,
                    "date": "2022-01-10T00:00:00+00:00",
                    "investors": ["Paradigm", "Coinbase Ventures", "Angel A", "Angel B"],
                }
            ],
            "investor_quality": "Strategic",
            "timeline_consistency": 100,
        }
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (999, "999.00"),
        (1_500, "1.50K"),
        (25_000_000, "25.00M"),
        (1_200_000_000, "1.20B"),
    ],
)
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_json_report_contains_composite_and_null_funding():
    report = json.loads(OutputFormatter().format_as_json(_analysis()))

    assert report["project_id"] == "Lendr"
    assert report["composite_score"] == 70
    assert report["funding"] is None
    assert report["rating"]["final_grade"] == "B"
    assert report["code"]["total_commits"] == 250
    assert report["analyzed_at"] == "2025-02-01T12:00:00+00:00"


def test_markdown_report_sections():
    markdown = OutputFormatter().format_as_markdown(_analysis(funding=_funding(), red_flags=["Anonymous team"]))

    assert markdown.startswith("# Project Analysis: Lendr")
    assert "| **Final Grade** | **B** |" in markdown
    assert "| Composite | 70/100 |" in markdown
    assert "### Red Flags\n- Anonymous team" in markdown
    assert "**Total Raised:** $3.00M" in markdown
    assert "| Seed | $3.00M | 2022-01-10 | Paradigm, Coinbase Ventures, Angel A |" in markdown
    assert "**Market Cap:** $25.00M" in markdown
    assert "- **Ada** - CEO" in markdown
    assert "**Commit Frequency:** 12.5 commits/week" in markdown
    assert markdown.endswith("*Generated by Alpha Screener*")


def test_markdown_report_without_funding_or_red_flags():
    markdown = OutputFormatter().format_as_markdown(_analysis())

    assert "*No funding data available*" in markdown
    assert "### Red Flags" not in markdown
