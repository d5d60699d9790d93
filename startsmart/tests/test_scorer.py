"""Tests for the scripted engines: chat responder, canvas generator, pitch scorer."""
from __future__ import annotations

import pytest

from startsmart.scorer import (
    CANVAS_BLOCKS,
    CANVAS_BOILERPLATE,
    CHAT_TOPICS,
    FALLBACK_RESPONSE,
    PITCH_QUESTIONS,
    TIER_MESSAGES,
    FeedbackTier,
    chat_response,
    generate_canvas,
    match_topic,
    score_answer,
    tier_for,
)


def words(n: int, word: str = "w") -> str:
    return " ".join([word] * n)


class TestChatResponder:
    def test_revenue_question(self):
        reply = chat_response("What is a good revenue model?")
        assert reply.startswith("Revenue models are crucial")

    def test_repeatable(self):
        replies = {chat_response("What is a good revenue model?") for _ in range(5)}
        assert len(replies) == 1

    def test_case_insensitive(self):
        assert match_topic("MARKET sizing").name == "market"

    def test_substring_match(self):
        # "users" contains "user"
        assert match_topic("our users love it").name == "customer"

    def test_first_declared_topic_wins(self):
        # "business" (idea topic) and "revenue" both present; idea is declared first
        assert match_topic("business revenue").name == "idea"
        assert match_topic("revenue from customers").name == "revenue"

    def test_fallback(self):
        assert chat_response("hello there") == FALLBACK_RESPONSE

    def test_empty_message_falls_back(self):
        assert chat_response("") == FALLBACK_RESPONSE

    def test_topic_order(self):
        assert [t.name for t in CHAT_TOPICS] == ["idea", "market", "revenue", "customer", "help"]


class TestCanvasGenerator:
    def test_all_nine_blocks(self):
        canvas = generate_canvas("Foo", "...")
        assert list(canvas) == [b.key for b in CANVAS_BLOCKS]
        assert len(canvas) == 9

    def test_value_proposition_mentions_title(self):
        assert "Foo" in generate_canvas("Foo", "...")["value_proposition"]

    def test_other_blocks_are_boilerplate(self):
        a = generate_canvas("Foo", "first description")
        b = generate_canvas("Something else", "another description")
        for key, text in CANVAS_BOILERPLATE.items():
            assert a[key] == text
            assert b[key] == text

    def test_description_does_not_matter(self):
        assert generate_canvas("Foo", "a") == generate_canvas("Foo", "b")


class TestPitchScorer:
    def test_short_answer_base_score(self):
        result = score_answer("We sell shoes.")
        assert result.score == 50
        assert result.tier is FeedbackTier.NEEDS_DETAIL

    def test_sixty_words_is_decent(self):
        result = score_answer(words(60))
        assert result.score == 65
        assert result.tier is FeedbackTier.DECENT

    def test_sixty_words_with_digit_is_good(self):
        result = score_answer(words(59) + " 7")
        assert result.score == 80
        assert result.tier is FeedbackTier.GOOD

    def test_length_bonuses_are_cumulative(self):
        # 101 one-letter words: 201 characters, so the length bonus applies too
        assert score_answer(words(101)).score == 50 + 15 + 10 + 10

    def test_character_length_bonus(self):
        assert score_answer("x" * 201).score == 60

    @pytest.mark.parametrize("marker", ["specifically", "For EXAMPLE"])
    def test_specifics_bonus(self, marker):
        assert score_answer(f"We target bakeries, {marker}").score == 60

    def test_capped_at_100(self):
        answer = words(120, "example") + " 42"
        result = score_answer(answer)
        assert result.score == 100
        assert result.tier is FeedbackTier.EXCELLENT

    @pytest.mark.parametrize("score, tier", [
        (100, FeedbackTier.EXCELLENT), (85, FeedbackTier.EXCELLENT),
        (84, FeedbackTier.GOOD), (70, FeedbackTier.GOOD),
        (69, FeedbackTier.DECENT), (55, FeedbackTier.DECENT),
        (54, FeedbackTier.NEEDS_DETAIL), (50, FeedbackTier.NEEDS_DETAIL),
    ])
    def test_tier_thresholds(self, score, tier):
        assert tier_for(score) is tier

    def test_feedback_text(self):
        assert score_answer("short").feedback == TIER_MESSAGES[FeedbackTier.NEEDS_DETAIL]

    def test_six_questions(self):
        assert [q.number for q in PITCH_QUESTIONS] == [1, 2, 3, 4, 5, 6]
