from __future__ import annotations

SCORING_FUNCTION_NAME = "score_career_card"

SCORING_SYSTEM_PROMPT = """
You are an expert career advisor and recruiter. Analyze how well a candidate's career card aligns with a specific company and role.

Your analysis should be thorough, fair, and constructive. Consider:
- Technical skills match
- Experience relevance
- Cultural fit based on work styles and values
- Project alignment with company needs
- Overall qualifications

Be specific and provide actionable feedback.
""".strip()

SCORING_USER_PROMPT = """
Analyze this career card for alignment with the company and role:

COMPANY DESCRIPTION:
{company_description}

ROLE DESCRIPTION:
{role_description}

CAREER CARD:
{career_card_json}

Provide a comprehensive scoring and feedback.
""".strip()


def _category_schema() -> dict:
    return {
        "type": "object",
        "properties": {
            "score": {"type": "number"},
            "feedback": {"type": "string"},
        },
        "required": ["score", "feedback"],
    }


SCORING_PARAMETERS_SCHEMA = {
    "type": "object",
    "properties": {
        "overallScore": {
            "type": "number",
            "description": "Overall alignment score from 0-100",
        },
        "categoryScores": {
            "type": "object",
            "properties": {
                "technicalSkills": _category_schema(),
                "experience": _category_schema(),
                "culturalFit": _category_schema(),
                "projectAlignment": _category_schema(),
            },
            "required": ["technicalSkills", "experience", "culturalFit", "projectAlignment"],
        },
        "strengths": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Key strengths for this role",
        },
        "improvements": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Areas for improvement or gaps",
        },
        "overallFeedback": {
            "type": "string",
            "description": "Comprehensive summary feedback",
        },
    },
    "required": ["overallScore", "categoryScores", "strengths", "improvements", "overallFeedback"],
}

SCORING_FUNCTION_DESCRIPTION = "Provide a detailed score and feedback for career card alignment"
