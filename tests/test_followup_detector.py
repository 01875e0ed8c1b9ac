"""
Tests for the lexical follow-up detector.
"""
import pytest

from pyq_retrieval.models.context_schemas import ConversationContext
from pyq_retrieval.models.schemas import FollowUpKind, SearchIntent
from pyq_retrieval.services.followup_detector import FollowUpDetector


@pytest.fixture
def detector():
    return FollowUpDetector()


@pytest.fixture
def stored():
    return ConversationContext(conversation_key="chat-1", intent=SearchIntent(topic="polity", offset=30))


@pytest.mark.parametrize("message", ["more", "show more", "next", "next page", "more pyqs please", "aur", "continue"])
def test_more(detector, stored, message):
    assert detector.detect(message, stored) == FollowUpKind.MORE


@pytest.mark.parametrize("message", ["solve these", "give answers", "explain them", "hal karo"])
def test_solve(detector, stored, message):
    assert detector.detect(message, stored) == FollowUpKind.SOLVE


@pytest.mark.parametrize("message", [
    "more questions on geography",
    "next 2019",
    "what is the difference between lok sabha and rajya sabha",
    "PYQ on ethics",
    "PYQ on economy with answers",
    "questions with solutions on economy",
    "economy pyqs with answers",
    "aur economy ke questions",
])
def test_new(detector, stored, message):
    assert detector.detect(message, stored) == FollowUpKind.NEW


def test_no_context_is_always_new(detector):
    assert detector.detect("more", None) == FollowUpKind.NEW
    assert detector.detect("solve these", None) == FollowUpKind.NEW


def test_hindi_request_for_another_topic_is_new(detector):
    geography = ConversationContext(conversation_key="chat-1", intent=SearchIntent(topic="Geography"))

    assert detector.detect("aur polity ke questions", geography) == FollowUpKind.NEW
    assert detector.detect("aur geography ke questions", geography) == FollowUpKind.MORE


def test_same_topic_with_more_is_pagination(detector, stored):
    assert detector.detect("more questions on polity", stored) == FollowUpKind.MORE


def test_own_topic_ignores_follow_up_words(detector):
    assert detector.own_topic("solve these please") == ""
    assert detector.own_topic("PYQ on economy with answers") == "economy"
