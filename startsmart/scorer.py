"""Scripted assistant engines: chat replies, canvas drafts, and pitch-answer scoring.

Architecture
------------
Nothing here calls a language model. Each engine is a pure function over a
small fixed input:

- **Chat responder**: lower-cases the message and walks ``CHAT_TOPICS`` in
  declaration order; the first topic with any keyword contained in the text
  wins.  Order of ``CHAT_TOPICS`` is part of the contract.
- **Canvas generator**: fills the nine ``CANVAS_BLOCKS`` with boilerplate;
  only the value proposition mentions the idea's title.
- **Pitch scorer**: additive rubric over length, digits, and concrete-detail
  markers:

  ========================  =====
  base                       50
  more than 50 words        +15
  more than 100 words       +10
  contains a digit          +15
  "specifically"/"example"  +10
  more than 200 characters  +10
  ========================  =====

  capped at 100, then mapped to a feedback tier (85 / 70 / 55 thresholds).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from startsmart.utils import word_count

# ---------------------------------------------------------------------------
# Chat responder
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChatTopic:
    name: str
    keywords: tuple[str, ...]
    response: str


CHAT_TOPICS: tuple[ChatTopic, ...] = (
    ChatTopic(
        "idea", ("idea", "startup", "business"),
        "That sounds like an interesting concept! Let me help you develop it further. "
        "What problem does your idea solve? Who is your target audience?",
    ),
    ChatTopic(
        "market", ("market", "competition", "competitors"),
        "Great question about market analysis! To understand your competitive landscape, "
        "I'd suggest: 1) Identify direct and indirect competitors, 2) Analyze their strengths "
        "and weaknesses, 3) Find your unique value proposition. What makes your solution different?",
    ),
    ChatTopic(
        "revenue", ("revenue", "monetization", "money"),
        "Revenue models are crucial! Consider these options: 1) Subscription/SaaS, "
        "2) Transaction fees, 3) Freemium model, 4) Advertisement, 5) One-time purchase. "
        "Which aligns best with your business model?",
    ),
    ChatTopic(
        "customer", ("customer", "user", "target"),
        "Understanding your customers is key! Try creating user personas by defining: "
        "demographics, pain points, behaviors, and needs. Have you validated your "
        "assumptions with potential customers?",
    ),
    ChatTopic(
        "help", ("help", "guidance", "advice"),
        "I'm here to help! I can assist with: business model development, market validation, "
        "pitch preparation, competitive analysis, and growth strategies. What specific area "
        "would you like to focus on?",
    ),
)

FALLBACK_RESPONSE = (
    "That's an interesting point! Could you tell me more about your specific goals? "
    "I'm here to help you develop your startup idea, validate your market, or prepare "
    "your pitch. What would you like to work on today?"
)

WELCOME_MESSAGE = (
    "Hello! I'm your AI mentor. I'm here to help you develop and validate your startup "
    "ideas. What would you like to work on today?"
)


def match_topic(message: str) -> ChatTopic | None:
    lowered = message.lower()
    for topic in CHAT_TOPICS:
        if any(keyword in lowered for keyword in topic.keywords):
            return topic
    return None


def chat_response(message: str) -> str:
    """Return the canned reply for *message*, or the generic fallback."""
    topic = match_topic(message)
    return topic.response if topic else FALLBACK_RESPONSE


# ---------------------------------------------------------------------------
# Canvas generator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CanvasBlock:
    key: str
    title: str
    prompt: str


CANVAS_BLOCKS: tuple[CanvasBlock, ...] = (
    CanvasBlock("key_partners", "Key Partners", "Who are your key partners and suppliers?"),
    CanvasBlock("key_activities", "Key Activities", "What key activities does your value proposition require?"),
    CanvasBlock("key_resources", "Key Resources", "What key resources does your value proposition require?"),
    CanvasBlock("value_proposition", "Value Proposition", "What value do you deliver to customers?"),
    CanvasBlock("customer_relationships", "Customer Relationships", "What type of relationship do you establish?"),
    CanvasBlock("channels", "Channels", "Through which channels do you reach customers?"),
    CanvasBlock("customer_segments", "Customer Segments", "For whom are you creating value?"),
    CanvasBlock("cost_structure", "Cost Structure", "What are the most important costs?"),
    CanvasBlock("revenue_streams", "Revenue Streams", "For what value are customers willing to pay?"),
)

CANVAS_BOILERPLATE: dict[str, str] = {
    "key_partners": "Technology providers, strategic advisors, key suppliers, distribution partners",
    "key_activities": "Platform development, customer acquisition, content creation, data analysis",
    "key_resources": "Technical team, intellectual property, brand, customer data",
    "customer_relationships": "Personal assistance, self-service platform, community building",
    "channels": "Digital marketing, direct sales, partnerships, social media",
    "customer_segments": "Early adopters, tech-savvy users, businesses seeking efficiency",
    "cost_structure": "Development costs, marketing expenses, operational overhead, talent acquisition",
    "revenue_streams": "Subscription fees, transaction fees, premium features, partnerships",
}

_VALUE_PROPOSITION = "{title} - Solving key problems for customers through innovative solutions"


def generate_canvas(title: str, description: str) -> dict[str, str]:
    """Draft all nine canvas blocks for an idea.

    *description* is accepted for signature symmetry with the idea form but
    does not influence the draft.
    """
    canvas: dict[str, str] = {}
    for block in CANVAS_BLOCKS:
        if block.key == "value_proposition":
            canvas[block.key] = _VALUE_PROPOSITION.format(title=title)
        else:
            canvas[block.key] = CANVAS_BOILERPLATE[block.key]
    return canvas


# ---------------------------------------------------------------------------
# Pitch scorer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PitchQuestion:
    number: int
    question: str
    tips: str


PITCH_QUESTIONS: tuple[PitchQuestion, ...] = (
    PitchQuestion(
        1, "What problem does your startup solve and how big is this problem?",
        "Focus on a real, painful problem that affects many people. Quantify the market size and impact.",
    ),
    PitchQuestion(
        2, "What is your unique value proposition and competitive advantage?",
        "Explain what makes you different and why customers would choose you over competitors.",
    ),
    PitchQuestion(
        3, "Who is your target customer and how will you reach them?",
        "Be specific about your customer segments and demonstrate understanding of their needs.",
    ),
    PitchQuestion(
        4, "What is your revenue model and how will you make money?",
        "Show clear paths to profitability and sustainable business model.",
    ),
    PitchQuestion(
        5, "What traction do you have and what are your key metrics?",
        "Present concrete evidence of progress: users, revenue, partnerships, etc.",
    ),
    PitchQuestion(
        6, "How much funding do you need and how will you use it?",
        "Be specific about funding amount and provide detailed breakdown of usage.",
    ),
)


class FeedbackTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    DECENT = "decent"
    NEEDS_DETAIL = "needs_detail"


TIER_MESSAGES: dict[FeedbackTier, str] = {
    FeedbackTier.EXCELLENT: "Excellent answer! You provided comprehensive details with specific examples and metrics.",
    FeedbackTier.GOOD: "Good answer! Consider adding more specific examples or quantifiable metrics.",
    FeedbackTier.DECENT: "Decent answer! Try to be more specific and provide concrete evidence.",
    FeedbackTier.NEEDS_DETAIL: "Your answer needs more detail. Include specific examples, metrics, and clearer explanations.",
}

BASE_SCORE = 50
MAX_SCORE = 100

_DIGIT_RE = re.compile(r"[0-9]")
_SPECIFICS = ("specifically", "example")


@dataclass(frozen=True)
class AnswerScore:
    score: int
    tier: FeedbackTier

    @property
    def feedback(self) -> str:
        return TIER_MESSAGES[self.tier]


def tier_for(score: int) -> FeedbackTier:
    if score >= 85:
        return FeedbackTier.EXCELLENT
    if score >= 70:
        return FeedbackTier.GOOD
    if score >= 55:
        return FeedbackTier.DECENT
    return FeedbackTier.NEEDS_DETAIL


def score_answer(answer: str) -> AnswerScore:
    """Score one pitch answer with the additive rubric described above."""
    words = word_count(answer)
    lowered = answer.lower()

    score = BASE_SCORE
    if words > 50:
        score += 15
    if words > 100:
        score += 10
    if _DIGIT_RE.search(answer):
        score += 15
    if any(marker in lowered for marker in _SPECIFICS):
        score += 10
    if len(answer) > 200:
        score += 10

    score = min(score, MAX_SCORE)
    return AnswerScore(score=score, tier=tier_for(score))
