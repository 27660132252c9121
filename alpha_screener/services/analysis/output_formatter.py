"""Renders a FullAnalysis as JSON and Markdown reports."""

from __future__ import annotations

import json
from datetime import datetime

from alpha_screener.models.analysis import FullAnalysis


class OutputFormatter:
    def format_as_json(self, analysis: FullAnalysis) -> str:
        funding = analysis.funding
        payload = {
            "project_id": analysis.project_id,
            "analyzed_at": analysis.analyzed_at.isoformat(),
            "composite_score": analysis.rating.composite_score,
            "documentation": analysis.documentation.model_dump(
                mode="json",
                include={"narrative", "writing_quality", "has_funding_signal", "summary"},
            ),
            "funding": funding.model_dump(
                mode="json",
                include={"stage", "total_raised_usd", "rounds", "investor_quality", "timeline_consistency"},
            )
            if funding
            else None,
            "market": analysis.market.model_dump(mode="json", exclude={"price_change_7d"}),
            "team": analysis.team.model_dump(mode="json", exclude={"previous_outcomes"}),
            "code": analysis.code.model_dump(
                mode="json",
                include={
                    "commit_frequency",
                    "activity_level",
                    "contributor_diversity",
                    "architecture_clarity",
                    "mechanism_originality",
                    "total_commits",
                    "total_contributors",
                },
            ),
            "rating": analysis.rating.model_dump(mode="json"),
        }
        return json.dumps(payload, indent=2)

    def format_as_markdown(self, analysis: FullAnalysis) -> str:
        rating = analysis.rating
        lines: list[str] = [
            f"# Project Analysis: {analysis.project_id}",
            "",
            f"**Analyzed:** {analysis.analyzed_at.isoformat()}",
            "",
            "## Executive Summary",
            "",
            rating.executive_summary,
            "",
            "## Final Rating",
            "",
            "| Metric | Score |",
            "|--------|-------|",
            f"| **Final Grade** | **{rating.final_grade}** |",
            f"| Composite | {rating.composite_score}/100 |",
            f"| Consistency | {_score(rating.consistency_score)}/100 |",
            f"| Opportunity | {_score(rating.opportunity_score)}/100 |",
            f"| Execution Credibility | {_score(rating.execution_credibility_score)}/100 |",
            "",
        ]
        lines += _bullets("### Strengths", rating.strengths)
        lines += _bullets("### Risks", rating.risks)
        if rating.red_flags:
            lines += _bullets("### Red Flags", rating.red_flags)
        lines += ["### Asymmetric Upside", rating.asymmetric_upside, "", "---", ""]

        documentation = analysis.documentation
        quality = documentation.writing_quality
        lines += [
            "## Documentation Analysis",
            "",
            f"**Narrative:** {documentation.narrative.value}",
            "",
            f"**Summary:** {documentation.summary}",
            "",
            "### Writing Quality",
            f"- Context Consistency: {_score(quality.context_consistency)}/100",
            f"- Logical Flow: {_score(quality.logical_flow)}/100",
            f"- Marketing Language Density: {_score(quality.marketing_language_density)}/100",
            f"- Human vs AI Score: {_score(quality.human_vs_ai_score)}/100",
            "",
            "## Funding Analysis",
            "",
        ]
        lines += self._funding_section(analysis)
        lines += self._market_section(analysis)
        lines += self._team_section(analysis)
        lines += self._code_section(analysis)
        lines += ["---", "", "*Generated by Alpha Screener*"]
        return "\n".join(lines)

    @staticmethod
    def _funding_section(analysis: FullAnalysis) -> list[str]:
        funding = analysis.funding
        if funding is None:
            return ["*No funding data available*", ""]
        lines = [
            f"**Stage:** {funding.stage.value}",
            f"**Total Raised:** ${format_number(funding.total_raised_usd)}",
            f"**Investor Quality:** {funding.investor_quality.value}",
            f"**Timeline Consistency:** {_score(funding.timeline_consistency)}/100",
            "",
        ]
        if funding.rounds:
            lines += [
                "### Funding Rounds",
                "",
                "| Stage | Amount | Date | Key Investors |",
                "|-------|--------|------|---------------|",
            ]
            for funding_round in funding.rounds:
                investors = ", ".join(funding_round.investors[:3])
                lines.append(
                    f"| {funding_round.stage} | ${format_number(funding_round.amount_usd)} "
                    f"| {format_date(funding_round.date)} | {investors} |"
                )
            lines.append("")
        return lines

    @staticmethod
    def _market_section(analysis: FullAnalysis) -> list[str]:
        market = analysis.market
        lines = [
            "## Market Analysis",
            "",
            f"**Problem Type:** {market.problem_type}",
            f"**Differentiation Clarity:** {_score(market.differentiation_clarity)}/100",
            f"**Market Saturation:** {_score(market.market_saturation)}/100",
            f"**Narrative Cycle Timing:** {market.narrative_cycle_timing}",
        ]
        if market.market_cap:
            lines.append(f"**Market Cap:** ${format_number(market.market_cap)}")
        if market.volume_24h:
            lines.append(f"**24h Volume:** ${format_number(market.volume_24h)}")
        lines.append("")
        if market.competitors:
            lines += [
                "### Competitors",
                "",
                "| Project | Market Cap | Similarity |",
                "|---------|------------|------------|",
            ]
            for competitor in market.competitors:
                market_cap = f"${format_number(competitor.market_cap)}" if competitor.market_cap else "N/A"
                lines.append(f"| {competitor.name} | {market_cap} | {_score(competitor.similarity)}% |")
            lines.append("")
        return lines

    @staticmethod
    def _team_section(analysis: FullAnalysis) -> list[str]:
        team = analysis.team
        lines = [
            "## Team Analysis",
            "",
            f"**Builder Portfolio Strength:** {_score(team.builder_portfolio_strength)}/100",
            f"**Years in Crypto:** {_score(team.years_in_crypto)}",
            f"**Skillset Alignment:** {_score(team.skillset_alignment)}/100",
            "",
        ]
        if team.members:
            lines += ["### Team Members", ""]
            for member in team.members:
                lines.append(f"- **{member.name}** - {member.role or 'Unknown Role'}")
                if member.previous_projects:
                    lines.append(f"  - Previous: {', '.join(member.previous_projects)}")
            lines.append("")
        return lines

    @staticmethod
    def _code_section(analysis: FullAnalysis) -> list[str]:
        code = analysis.code
        lines = [
            "## Code Analysis",
            "",
            f"**Activity Level:** {code.activity_level}",
            f"**Commit Frequency:** {code.commit_frequency:.1f} commits/week",
            f"**Total Commits:** {code.total_commits}",
            f"**Total Contributors:** {code.total_contributors}",
            f"**Contributor Diversity:** {_score(code.contributor_diversity)}/100",
            f"**Architecture Clarity:** {_score(code.architecture_clarity)}/100",
            f"**Mechanism Originality:** {code.mechanism_originality}",
        ]
        if code.last_commit_date:
            lines.append(f"**Last Commit:** {format_date(code.last_commit_date)}")
        lines.append("")
        return lines


def format_number(value: float) -> str:
    if value >= 1_000_000_000:
        return f"{value / 1_000_000_000:.2f}B"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"{value / 1_000:.2f}K"
    return f"{value:.2f}"


def format_date(value: datetime) -> str:
    return value.date().isoformat()


def _score(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def _bullets(heading: str, items: list[str]) -> list[str]:
    return [heading, *(f"- {item}" for item in items), ""]
