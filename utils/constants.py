"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages (warm, coaching tone)
- Airtable table names
- Keyword tables for document routing and chat detection
- Reusable enums and constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# AIRTABLE TABLES
# ============================================================

USERS_TABLE = "Users"
MESSAGES_TABLE = "Messages"
INSIGHTS_TABLE = "Personalgorithm™"
VISIONING_TABLE = "Visioning"
BUSINESS_PLANS_TABLE = "Aligned Business® Plans"
COACHING_METHODS_TABLE = "Aligned Business® Method"
TRANSCRIPTS_TABLE = "Transcripts"
WEEKLY_CHECKINS_TABLE = "Weekly Check-in"
SOL_NOTES_TABLE = "Sol™"

# Locally generated record ID prefixes
MESSAGE_ID_PREFIX = "msg"
INSIGHT_ID_PREFIX = "p"
VISIONING_ID_PREFIX = "vis"
BUSINESS_PLAN_ID_PREFIX = "abp"

# ============================================================
# CONTEXT WINDOWS
# ============================================================

RECENT_MESSAGE_LIMIT = 5
INSIGHT_CONTEXT_LIMIT = 50
BUSINESS_PLAN_CONTEXT_LIMIT = 2
COACHING_METHOD_LIMIT = 20
TRANSCRIPT_DAYS = 7
TRANSCRIPT_LIMIT = 5
CHECKIN_WEEKS = 4
CHECKIN_LIMIT = 4
SOL_NOTE_LIMIT = 50
SYNTHESIS_FETCH_LIMIT = 150

# ============================================================
# DOCUMENT ROUTING
# ============================================================

VISIONING_INDICATORS = (
    "basic brand analysis",
    "audience analysis",
    "competitive analysis",
    "vision homework",
    "visioning homework",
    "free write",
    "ideal audience member",
    "mission statement",
    "core values",
    "what differentiates you",
    "current reality",
    "mindset",
)

BUSINESS_PLAN_INDICATORS = (
    "business plan",
    "aligned business",
    "future vision",
    "top 3 goals",
    "ideal client",
    "marketing system",
    "sales system",
    "current offers",
    "pricing",
)

VISIONING_FILENAME_KEYWORDS = ("visioning", "vision")
BUSINESS_PLAN_FILENAME_KEYWORDS = ("business plan", "aligned business")

VISIONING_SCORE_THRESHOLD = 3
BUSINESS_PLAN_SCORE_THRESHOLD = 2

# Heading keywords for plain-text business plan extraction
BUSINESS_PLAN_SECTIONS = {
    "futureVision": ("future vision", "vision"),
    "topGoals": ("top 3 goals", "goals", "objectives"),
    "challenges": ("challenges", "problems", "obstacles"),
    "idealClient": ("ideal client", "target client", "perfect client"),
    "currentOffers": ("current offers", "services", "products"),
    "marketingSystem": ("marketing system", "marketing"),
    "salesSystem": ("sales system", "sales process"),
}

# ============================================================
# CHAT DETECTION
# ============================================================

VISIONING_CHAT_MIN_LENGTH = 400

VISIONING_CHAT_MARKERS = (
    "section one",
    "section two",
    "section three",
    "basic brand analysis",
    "audience analysis",
    "competitive analysis",
    "free write",
    "current reality",
    "mission statement",
    "core values",
    "ideal audience member",
    "what differentiates you",
    "visioning homework",
)

VISIONING_HELP_PHRASES = (
    "help with visioning",
    "work on visioning",
    "need help with vision",
)

GENERIC_MESSAGE_PATTERNS = (
    r"^(hi|hello|hey|thanks|thank you|ok|okay|yes|no)\.?\s*$",
    r"^(good morning|good afternoon|good evening)\.?\s*$",
    r"^(how are you|what's up)\.?\s*$",
)

MIN_ANALYZED_USER_MESSAGE = 30
MIN_ANALYZED_SOL_RESPONSE = 50

# ============================================================
# INSIGHT CATEGORIES
# ============================================================

INSIGHT_LABELS = (
    "COMMUNICATION_PATTERNS",
    "DECISION_MAKING_STYLE",
    "TRANSFORMATION_TRIGGERS",
    "EMOTIONAL_PATTERNS",
    "BUSINESS_MINDSET",
    "PROCESSING_STYLE",
    "STRENGTHS_LEVERAGE",
    "GROWTH_EDGES",
    "UNIQUE_FACTORS",
)

# Synthesis buckets: (name, tag fragments, note fragments); first match wins
SYNTHESIS_BUCKETS = (
    ("micro_patterns", ("micro-pattern", "punctuation", "language-pattern"), ()),
    ("communication", ("communication",), ("express", "language")),
    ("decision_making", ("decision", "validation"), ("decide",)),
    ("transformation", ("transformation", "breakthrough"), ("trigger",)),
    ("emotional", ("emotional", "energy"), ("feel",)),
    ("business", ("business", "pricing", "marketing"), ()),
    ("evolution", ("evolution", "shift", "growth"), ()),
)
UNIQUE_BUCKET = "unique"

# ============================================================
# USER-FACING MESSAGES
# ============================================================

CHAT_FALLBACK_MESSAGE = (
    "I'm having a moment of connection difficulty, but I'm still here with you. "
    "Your message was important - would you mind sharing that again?"
)

VISIONING_ACK_OPENING = "Thank you for sharing your vision with me. "
VISIONING_ACK_EMOTIONAL = "I can feel the depth and intention you brought to this. "
VISIONING_ACK_VALIDATION = "This kind of clarity work is powerful. "
VISIONING_ACK_QUESTION = (
    "While I take everything in, what part of your vision feels most alive to you right now?"
)

VISIONING_HELP_MESSAGE = """I'd love to help you with your visioning! Here are your options:

**Option 1: Share Your Completed Visioning** - Paste your comprehensive visioning homework directly here.

**Option 2: Work Through It Together** - I can guide you through the key questions.

**Option 3: Upload It** - Send your visioning homework as a document and I'll take it from there.

Which approach feels right for you?"""

VISIONING_PROCESSED_MESSAGE = (
    "🎯 Visioning homework processed successfully! I've extracted your business vision, "
    "goals, ideal client details, and created {count} Personalgorithm™ insights. Your profile "
    "has been updated with your vision and I can now coach you with much more personalized support."
)

BUSINESS_PLAN_PROCESSED_MESSAGE = (
    "💼 Aligned Business Plan processed successfully! I've extracted your business vision, "
    "goals, ideal client profile, and strategic context. This has been added to your "
    "Personalgorithm™ and I can now provide much more targeted business coaching."
)

GENERAL_DOCUMENT_PROCESSED_MESSAGE = (
    "📄 Document \"{filename}\" processed successfully! I've created a summary and added the "
    "key insights to your Personalgorithm™. I can now reference this information in our conversations."
)

BUSINESS_PLAN_GENERATED_MESSAGE = (
    "Your Aligned Business Plan has been generated based on everything Sol knows about you! "
    "Check your business plan for your custom strategy."
)

RECENT_BUSINESS_PLAN_MESSAGE = (
    "You have a recent business plan. Use update_existing=true to create a new one."
)

# ============================================================
# TAGS
# ============================================================

VISIONING_DETECTED_TAG = "visioning-detected"
GENERAL_SUPPORT_TAG = "general-support"
VISIONING_INSIGHT_TAGS = ("visioning-derived", "intake")
EXISTING_VISIONING_INSIGHT_TAGS = ("visioning-analysis", "existing-data")
GENERATED_PLAN_INSIGHT_TAGS = ("business-plan-generated", "strategic-insights")
GENERAL_DOCUMENT_TAGS = "document-upload, general-context"
