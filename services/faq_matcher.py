"""
FAQ matcher used by the auto-reply step of the inbound pipeline.

Scores every FAQ against an incoming message and picks the best answer:

    100  normalized question equals the normalized message
     80  one contains the other
  20*n  n keywords occur in the message

Normalization is lowercase plus strip. A FAQ only displaces the current
best with a strictly higher score, so among equal scores the first FAQ in
input order wins. The caller supplies FAQs in a stable order.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

EXACT_MATCH_SCORE = 100
CONTAINMENT_SCORE = 80
KEYWORD_SCORE = 20

DEFAULT_REPLY_TEXT = 'Gracias por tu mensaje. Te responderemos pronto.'


@dataclass(frozen=True)
class FAQMatch:
    """Outcome of matching one message against a set of FAQs"""
    answer: Optional[str]
    score: int
    faq: Any = None

    @property
    def matched(self) -> bool:
        return self.score > 0


NO_MATCH = FAQMatch(answer=None, score=0)


def normalize_text(text: Optional[str]) -> str:
    return (text or '').strip().lower()


def _normalized_keywords(keywords: Optional[Iterable[str]]) -> List[str]:
    if not keywords:
        return []
    cleaned = (normalize_text(keyword) for keyword in keywords if isinstance(keyword, str))
    return [keyword for keyword in cleaned if keyword]


def score_faq(normalized_message: str, question: Optional[str],
              keywords: Optional[Sequence[str]]) -> int:
    """
    Score a single FAQ against an already normalized message.

    An empty message never matches anything, and an empty question is
    never treated as an exact or containment match.
    """
    if not normalized_message:
        return 0

    normalized_question = normalize_text(question)
    if normalized_question:
        if normalized_question == normalized_message:
            return EXACT_MATCH_SCORE
        if normalized_question in normalized_message or normalized_message in normalized_question:
            return CONTAINMENT_SCORE

    hits = sum(1 for keyword in _normalized_keywords(keywords) if keyword in normalized_message)
    return KEYWORD_SCORE * hits


def match_faq(message_body: Optional[str], faqs: Iterable[Any]) -> FAQMatch:
    """
    Pick the best answering FAQ for a message.

    Args:
        message_body: Raw inbound text, may be empty or whitespace
        faqs: Active FAQs exposing ``question``, ``answer`` and ``keywords``

    Returns:
        FAQMatch with the winning answer, or NO_MATCH when nothing scored
    """
    normalized_message = normalize_text(message_body)
    best = NO_MATCH

    for faq in faqs:
        score = score_faq(normalized_message, faq.question, faq.keywords)
        if score > best.score:
            best = FAQMatch(answer=faq.answer, score=score, faq=faq)

    return best


def resolve_reply_text(match: FAQMatch, fallback_message: Optional[str] = None) -> str:
    """
    Text to send back: the matched answer, else the account fallback,
    else the built-in default.
    """
    if match.matched and match.answer:
        return match.answer
    if fallback_message and fallback_message.strip():
        return fallback_message
    return DEFAULT_REPLY_TEXT
