"""
Prompt templates for admin-side LLM analysis.
"""

INSIGHTS_SYSTEM_PROMPT = (
    "You are a product research analyst reviewing aggregate parent survey data about "
    "children's phone usage for BetterPhone. Provide deep analytical insights. "
    "Return ONLY valid JSON matching the exact schema provided."
)

INSIGHTS_USER_TEMPLATE = """Analyze this aggregate survey data and return JSON with this exact schema:
{{
  "sentiment": {{
    "overall": "positive" | "negative" | "neutral",
    "distribution": {{ "positive": <number 0-100>, "negative": <number 0-100>, "neutral": <number 0-100> }},
    "timeline": []
  }},
  "themes": [
    {{ "theme": "<theme name>", "count": <estimated frequency>, "relatedQuotes": ["<quote 1>", "<quote 2>", "<quote 3>"] }}
  ],
  "executiveSummary": "<2-3 paragraphs analyzing the overall findings, key patterns, and actionable takeaways>",
  "urgencyDistribution": {{ "low": <count>, "medium": <count>, "high": <count>, "critical": <count>, "dominant": "<level>", "dominantPct": <number> }},
  "recommendations": [
    {{ "recommendation": "<specific actionable recommendation>", "confidence": <0.0-1.0>, "supportingData": "<brief evidence>" }}
  ],
  "keyMetrics": {{
    "avgUrgency": <number 1-10>,
    "topConcern": "<most common concern>",
    "avgCompletionTime": 0,
    "totalVoiceMinutes": {voice_minutes},
    "responseRate": {response_rate}
  }}
}}

Return 5-8 themes, 4-6 recommendations. Make the executive summary insightful and data-driven.

Data:
{context}"""

SUMMARY_SYSTEM_PROMPT = (
    "You are analyzing a parent survey response about children's phone usage for BetterPhone. "
    "Return ONLY valid JSON matching the exact schema provided."
)

SUMMARY_USER_TEMPLATE = """Analyze this survey response and return JSON with these fields:
{{
  "summary": "1-2 paragraph summary of this parent's situation, concerns, and needs",
  "urgencyScore": <1-10 number, how urgently they need a solution>,
  "emotionalTone": "<one of: frustrated, worried, hopeful, resigned, angry, overwhelmed, calm>",
  "primaryConcerns": ["<top 3-5 specific concerns>"],
  "productFitScore": <1-10 number, how good a fit BetterPhone would be for them>
}}

Survey Data:
{context}"""

PROFILE_SYSTEM_PROMPT = "You are an expert behavioral psychologist and sales profiler."

PROFILE_USER_TEMPLATE = """Analyze this parent's survey response regarding their child's phone usage.

SURVEY DATA:
{form_data}

VOICE TRANSCRIPTS:
{transcripts}

Generate a JSON psychological profile with the following fields:
- emotional_state: (String) e.g., "Desperate", "Anxious", "Resigned"
- sales_angle: (String) The best approach to sell a solution (e.g., "Focus on Safety")
- summary: (String) A 2-sentence summary of their situation.
- urgency_score: (Number 1-10)
- key_pain_points: (Array of Strings)

Return ONLY valid JSON."""
