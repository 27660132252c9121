"""Prompt templates for each AI judgment stage.

Templates use ``str.format`` placeholders; literal braces in the JSON examples
are doubled.
"""

from __future__ import annotations

DOCUMENTATION_ANALYSIS_PROMPT = """You are an expert crypto/Web3 analyst. Analyze the following project documentation and provide a structured assessment.

DOCUMENTATION CONTENT:
{content}

Analyze and return a JSON object with the following structure:
{{
  "narrative": "Infrastructure|DeFi|Modular|Stablecoin|AI|RWA|Gaming|Social|Privacy|L1|L2|Interoperability|Oracle|Storage|Unknown",
  "writing_quality": {{
    "context_consistency": 0-100,
    "logical_flow": 0-100,
    "marketing_language_density": 0-100,
    "ai_writing_signals": {{
      "emoji_overuse": true|false,
      "long_dash_usage": number,
      "repetitive_phrases": ["phrase1", "phrase2"],
      "generic_phrase_count": number
    }},
    "human_vs_ai_score": 0-100 (100 = definitely human)
  }},
  "has_funding_signal": true|false,
  "funding_signals": ["signal1", "signal2"],
  "summary": "2-3 sentence summary of the project"
}}

Look for funding signals such as:
- Mentions of investors, VCs, or funding rounds
- References to "backed by", "raised", "Series A/B/C", "seed round"
- Investor logos or partnership announcements with investment firms
- Token sale or ICO references

Be decisive. Return only valid JSON."""

TEAM_EXTRACTION_PROMPT = """Extract team member information from this documentation.

PROJECT: {project_name}

DOCUMENTATION:
{content}

Return a JSON object listing the team members found:
{{
  "members": [
    {{
      "name": "string",
      "role": "string or null",
      "bio": "string or null"
    }}
  ]
}}

If no team information is found, return {{"members": []}}"""

TEAM_ANALYSIS_PROMPT = """Analyze the following team information for a crypto/Web3 project.

PROJECT: {project_name}
TEAM DATA:
{team_data}

Return a JSON object:
{{
  "members": [
    {{
      "name": "string",
      "role": "string",
      "previous_projects": ["project1", "project2"]
    }}
  ],
  "builder_portfolio_strength": 0-100,
  "previous_outcomes": ["outcome1", "outcome2"],
  "years_in_crypto": number,
  "skillset_alignment": 0-100
}}

Be decisive. Return only valid JSON."""

CODE_ANALYSIS_PROMPT = """Analyze the following repository data for a crypto/Web3 project.

REPOSITORY DATA:
{repo_data}

Return a JSON object:
{{
  "commit_frequency": number (commits per week average),
  "commit_consistency": 0-100,
  "prefers_many_small_commits": true|false,
  "activity_level": "High|Medium|Low|Inactive",
  "contributor_diversity": 0-100,
  "architecture_clarity": 0-100,
  "mechanism_originality": "Common|Iterative|Pioneering",
  "similar_projects_count": number,
  "assessment": "1-2 sentence technical assessment"
}}

Be decisive. Return only valid JSON."""

MARKET_ANALYSIS_PROMPT = """Analyze the market opportunity for this crypto/Web3 project.

PROJECT: {project_name}
NARRATIVE: {narrative}
MARKET DATA:
{market_data}

KNOWN COMPETITORS IN SPACE:
{competitors}

Return a JSON object:
{{
  "problem_type": "Niche|Broad",
  "competitors": [
    {{
      "name": "string",
      "market_cap": number|null,
      "similarity": 0-100
    }}
  ],
  "differentiation_clarity": 0-100,
  "market_saturation": 0-100,
  "narrative_cycle_timing": "Early|Mid|Late|Post-Peak",
  "assessment": "1-2 sentence market assessment"
}}

Be decisive. Return only valid JSON."""

FINAL_RATING_PROMPT = """Generate a final rating for this crypto/Web3 project based on all analyses.

PROJECT: {project_name}

DOCUMENTATION ANALYSIS:
{documentation_analysis}

FUNDING ANALYSIS:
{funding_analysis}

MARKET ANALYSIS:
{market_analysis}

TEAM ANALYSIS:
{team_analysis}

CODE ANALYSIS:
{code_analysis}

Generate a decisive final rating. Return a JSON object:
{{
  "consistency_score": 0-100,
  "opportunity_score": 0-100,
  "execution_credibility_score": 0-100,
  "final_grade": "A|B|C|D",
  "strengths": ["strength1", "strength2", "strength3"],
  "risks": ["risk1", "risk2", "risk3"],
  "red_flags": ["flag1", "flag2"] or [],
  "asymmetric_upside": "1-2 sentence description of potential upside",
  "executive_summary": "3-4 sentence executive summary"
}}

Grading criteria:
- A: Exceptional project with strong fundamentals across all dimensions
- B: Good project with minor weaknesses
- C: Average project with notable concerns
- D: Weak project with significant red flags

Be decisive. Return only valid JSON."""
