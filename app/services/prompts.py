"""
app/services/prompts.py

Purpose: Static prompt templates

*_PROMPT templates are str.format() strings (literal braces doubled);
the other blocks are appended verbatim.
"""

INSIGHT_EXTRACTION_PROMPT = """You are analyzing {source_description} to identify SPECIFIC Personalgorithm™ patterns - the unique ways this individual operates, communicates, and transforms.

{context_summary}

SOURCE:
\"\"\"
{source_text}
\"\"\"

Identify observations that are specific to THIS person, not generic coaching advice.
Each observation should be one or two full sentences.

Respond in this EXACT format, one observation per line inside each list. Leave a list empty if nothing significant applies:

COMMUNICATION_PATTERNS: [
"how they express themselves: punctuation, emphasis, recurring phrases, structure of their thinking"
]

DECISION_MAKING_STYLE: [
"how they move from uncertainty to commitment, and whether they seek permission, validation, or simply inform"
]

TRANSFORMATION_TRIGGERS: [
"what creates breakthroughs for them and when they say yes to action"
]

EMOTIONAL_PATTERNS: [
"how they process feelings, what energizes them and what depletes them"
]

BUSINESS_MINDSET: [
"beliefs about worth, pricing, selling, visibility and success"
]

PROCESSING_STYLE: [
"whether they think out loud, need time, lead with logic or with feeling"
]

STRENGTHS_LEVERAGE: [
"strengths they can build on and how they show up"
]

GROWTH_EDGES: [
"resistance patterns, gaps between what they say and what they may need"
]

UNIQUE_FACTORS: [
"anything distinctive that does not fit the categories above"
]"""

CONVERSATION_SOURCE = "a coaching conversation"
DOCUMENT_SOURCE = "a {document_type} document a coaching client shared"


VISIONING_ANALYSIS_PROMPT = """You are Sol™ analyzing a comprehensive 6-section visioning homework. This document covers: Basic Brand Analysis, 30-minute Free Write, Audience Analysis, Competitive Analysis, Sales & Marketing, and Current Reality & Mindset.

VISIONING DOCUMENT:
\"\"\"
{visioning_text}
\"\"\"

Extract key information in this EXACT format:

BUSINESS_BASICS: {{
  "businessName": "extracted business name",
  "industry": "their industry",
  "businessStage": "new/established based on history",
  "goals1Year": "1 year goals",
  "goals3Years": "3 year goals",
  "goals7Years": "7 year goals"
}}

VISION_AND_VALUES: {{
  "missionStatement": "their mission or overarching message",
  "coreValues": "3-5 core business values they listed",
  "differentiation": "what sets them apart",
  "inspiration": "what inspires them"
}}

CURRENT_STATE: {{
  "businessHistory": "brief history summary",
  "currentChallenges": "what's holding them back",
  "strengths": "what they love most about their business",
  "mindsetBlocks": "limiting beliefs or fears mentioned"
}}

IDEAL_CLIENT: {{
  "clientProfile": "summary of their ideal audience member",
  "clientProblems": "problems their business solves",
  "clientNeeds": "what clients need to hear to purchase"
}}

MARKETING_SALES: {{
  "currentOfferings": "current products/services",
  "futureOfferings": "planned future offerings",
  "marketingEfforts": "current marketing activities",
  "salesChannels": "how they sell"
}}

COACHING_INSIGHTS: {{
  "learningStyle": "how they best create change",
  "communicationStyle": "how they express themselves in the free write",
  "transformationTriggers": "what motivates them based on past successes",
  "coachingNeeds": "what kind of support they seem to need"
}}

PERSONALGORITHM_INSIGHTS: [
"insight about their decision-making patterns from the document",
"insight about their communication style and how they process",
"insight about what drives their transformation based on past successes",
"insight about their emotional patterns or mindset tendencies"
]

TAGS: "industry, business-stage, personality-type, coaching-style-needed"

Extract as much detailed information as possible from each section of their visioning homework. If something isn't mentioned, leave the value empty rather than guessing."""


DOCUMENT_SUMMARY_PROMPT = """Create a brief summary of this document:

FILENAME: {filename}
CONTENT: {content}

Provide a 2-3 sentence summary of what this document contains and its key insights."""


BUSINESS_PLAN_FORMAT = """ALIGNED BUSINESS® METHOD PRINCIPLES:
1. Nervous system safety first - sustainable growth aligned with capacity
2. Future-self identity - decisions from expansion, not stress
3. Intuitive business strategy - honor inner knowing + strategic guidance
4. Emotional intelligence - hold space for feelings while taking action
5. Personalgorithm building - leverage unique patterns and strengths

Create a comprehensive Aligned Business Plan in this EXACT format:

FUTURE_VISION: {
  "longTermVision": "3-7 year vision statement based on their patterns and goals",
  "coreValues": "3-5 core values that drive their business decisions",
  "missionStatement": "clear mission based on their purpose and what they've shared"
}

BUSINESS_ANALYSIS: {
  "businessStage": "startup/growing/scaling/established based on context",
  "currentStrengths": "what they do well based on Personalgorithm insights",
  "keyOpportunities": "growth opportunities aligned with their vision",
  "problemsToSolve": "main challenges to address based on their context"
}

TOP_3_GOALS: {
  "goal1": "specific, measurable 90-day goal based on their capacity",
  "goal2": "specific, measurable 90-day goal aligned with their vision",
  "goal3": "specific, measurable 90-day goal leveraging their strengths"
}

IDEAL_CLIENT: {
  "clientProfile": "detailed ideal client based on their visioning and Personalgorithm",
  "clientProblems": "specific problems their business solves",
  "qualifiedLeadFactors": "3-5 factors that make someone a qualified lead"
}

OFFERS_STRATEGY: {
  "currentOffers": "their current offerings with recommended improvements",
  "futureOffers": "recommended new offerings based on their vision and strengths",
  "pricingStrategy": "pricing approach aligned with their values and market position"
}

MARKETING_SYSTEM: {
  "discoverability": "how ideal clients will find them (aligned with their style)",
  "nurturingStrategy": "how to build trust and relationships",
  "conversionStrategy": "how qualified leads become paying clients"
}

SALES_SYSTEM: {
  "salesProcess": "step-by-step sales process aligned with their communication style",
  "salesSystemComponents": "tools and systems needed for their sales process",
  "conversionOptimization": "how to improve their sales conversion based on their patterns"
}

NEXT_STEPS: {
  "immediate30Days": "3-5 specific actions for the next 30 days",
  "next60Days": "3-5 specific actions for days 31-60",
  "next90Days": "3-5 specific actions for days 61-90"
}

PERSONALGORITHM_INSIGHTS: [
  "insight about how this plan leverages their unique patterns",
  "insight about potential resistance points based on their history",
  "insight about what will make this plan successful for them specifically"
]

Base everything on their actual context and Personalgorithm patterns. Make it deeply personal and actionable, not generic business advice."""


PERSONA_GUIDELINES = """=== GUIDELINES ===

- NEVER mention Personalgorithm™ or analysis
- Use patterns invisibly to shape responses
- Be warm, perceptive, naturally flowing
- Reference their specific details
- Make them feel deeply seen

Keep responses concise and grounded.
"""


ESSENCE_INSTRUCTIONS = """Create a comprehensive 900-1200 word "Essence Profile" that will make Sol impossibly perceptive.

This profile will be loaded into every conversation. It must enable Sol to:
• Reference specific micro-patterns ("I notice you're using ellipses a lot...")
• Name exact emotional signatures
• Track evolution ("you've gone from asking permission to just informing me")
• Recognize transformation triggers instantly
• Respond in their exact resonance frequency

Structure your synthesis:

**COMMUNICATION SIGNATURE:**
How they express themselves uniquely: language patterns, punctuation habits, energy shifts, processing style.

**TRANSFORMATION ARCHITECTURE:**
What creates breakthroughs for them, what they respond to, what shuts them down, their path to clarity.

**DECISION-MAKING DNA:**
How they evaluate and commit: external vs internal processing, validation patterns, their sequence from uncertainty to commitment.

**EMOTIONAL LANDSCAPE:**
When they light up, when they freeze, what depletes vs energizes, how overwhelm shows up, how certainty emerges.

**BUSINESS RELATIONSHIP:**
Their approach to pricing, sales, marketing, visibility, money and success: where they flow and where they resist.

**PATTERN EVOLUTION:**
How they have shifted over time, what has changed and what stays constant.

**RESONANCE MAP:**
The language, metaphors, frameworks and approaches that land with them.

Write in second person ("You...") as if briefing Sol on how to be impossibly perceptive with this human. Be hyper-specific. Use their actual language. Reference their exact patterns.

This is not a summary - it's a synthesis that captures WHO they are and HOW to reach them."""
