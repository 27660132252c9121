"""Final rating: AI judgment plus the deterministic composite score."""

from __future__ import annotations

import math
from typing import Final

from alpha_screener.models.analysis import FinalRating, RatingJudgment
from alpha_screener.models.code import CodeAnalysis
from alpha_screener.models.documentation import DocumentationAnalysis
from alpha_screener.models.funding import FundingAnalysis
from alpha_screener.models.market import MarketAnalysis
from alpha_screener.models.team import TeamAnalysis
from alpha_screener.services.analysis.judgment import JudgmentClient, judge, to_prompt_json
from alpha_screener.services.analysis.prompts import FINAL_RATING_PROMPT

CONSISTENCY_WEIGHT: Final = 0.30
OPPORTUNITY_WEIGHT: Final = 0.35
EXECUTION_WEIGHT: Final = 0.35
NO_FUNDING_PLACEHOLDER: Final = "No funding data available"


def calculate_composite_score(consistency: float, opportunity: float, execution: float) -> int:
    """Weighted sum rounded half-up to the nearest integer."""
    weighted = (
        consistency * CONSISTENCY_WEIGHT
        + opportunity * OPPORTUNITY_WEIGHT
        + execution * EXECUTION_WEIGHT
    )
    # Guard against 79.99999999 style float noise before rounding.
    return int(math.floor(round(weighted, 9) + 0.5))


class RatingService:
    def __init__(self, judgment_client: JudgmentClient) -> None:
        self._judgment = judgment_client

    async def generate_rating(
        self,
        project_name: str,
        documentation: DocumentationAnalysis,
        funding: FundingAnalysis | None,
        market: MarketAnalysis,
        team: TeamAnalysis,
        code: CodeAnalysis,
    ) -> FinalRating:
        prompt = FINAL_RATING_PROMPT.format(
            project_name=project_name,
            documentation_analysis=to_prompt_json(documentation),
            funding_analysis=to_prompt_json(funding) if funding else NO_FUNDING_PLACEHOLDER,
            market_analysis=to_prompt_json(market),
            team_analysis=to_prompt_json(team),
            code_analysis=to_prompt_json(code),
        )
        judgment = await judge(self._judgment, prompt, RatingJudgment, stage="rating")
        return compose_rating(judgment)


def compose_rating(judgment: RatingJudgment) -> FinalRating:
    return FinalRating(
        **judgment.model_dump(),
        composite_score=calculate_composite_score(
            judgment.consistency_score,
            judgment.opportunity_score,
            judgment.execution_credibility_score,
        ),
    )
