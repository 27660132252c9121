from __future__ import annotations

import logging

from alpha_screener.models.team import (
    TeamAnalysis,
    TeamDataSource,
    TeamExtraction,
    TeamJudgment,
    TeamMember,
)
from alpha_screener.services.analysis.judgment import JudgmentClient, judge, to_prompt_json
from alpha_screener.services.analysis.prompts import TEAM_ANALYSIS_PROMPT, TEAM_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)


class TeamAnalysisService:
    def __init__(self, judgment_client: JudgmentClient, *, max_chars: int = 20_000) -> None:
        self._judgment = judgment_client
        self._max_chars = max_chars

    async def analyze(self, project_name: str, team_data: TeamDataSource) -> TeamAnalysis:
        prompt = TEAM_ANALYSIS_PROMPT.format(
            project_name=project_name,
            team_data=to_prompt_json(team_data),
        )
        judgment = await judge(self._judgment, prompt, TeamJudgment, stage="team")
        sources = {member.name: member for member in team_data.members}
        members = []
        for member in judgment.members:
            source = sources.get(member.name)
            members.append(
                TeamMember(
                    name=member.name,
                    role=member.role,
                    linkedin=source.linkedin if source else None,
                    twitter=source.twitter if source else None,
                    previous_projects=member.previous_projects,
                )
            )
        return TeamAnalysis(
            members=members,
            builder_portfolio_strength=judgment.builder_portfolio_strength,
            previous_outcomes=judgment.previous_outcomes,
            years_in_crypto=judgment.years_in_crypto,
            skillset_alignment=judgment.skillset_alignment,
        )

    async def analyze_from_documentation(self, project_name: str, content: str) -> TeamAnalysis:
        """Extract members from documentation first; no members means an empty analysis."""
        prompt = TEAM_EXTRACTION_PROMPT.format(
            project_name=project_name,
            content=content[: self._max_chars],
        )
        extracted = await judge(self._judgment, prompt, TeamExtraction, stage="team_extraction")
        if not extracted.members:
            logger.info("team.no_members", extra={"project": project_name})
            return TeamAnalysis.empty()
        return await self.analyze(
            project_name,
            TeamDataSource(members=extracted.members, source="documentation"),
        )
