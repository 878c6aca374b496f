"""
Detection of section-transition and interview-end cues in interviewer text.

Matching is fuzzy on purpose: the interviewer model is told to use one of
several paraphrases, so these are case-insensitive phrase searches, not
equality checks. A message can match neither (missed cue) or both.
"""
import re
from dataclasses import dataclass

from ..config import SUBSTANTIVE_REPLY_MIN_CHARS

TRANSITION_REGEX = re.compile(
    r"(let'?s (move|continue|proceed|advance)[^\n]*next (section|part|step)"
    r"|moving (on )?to the next"
    r"|let'?s move on"
    r"|let'?s continue to"
    r"|are you ready to (continue|move on|proceed)"
    r"|shall we (move on|continue|proceed)"
    r"|now,? for the next part)",
    re.IGNORECASE,
)

END_REGEX = re.compile(
    r"(thank you for your time"
    r"|we'?ll be in touch"
    r"|interview (is |has been )?(now )?(complete|completed|finished|over)"
    r"|have a great day"
    r"|this concludes"
    r"|final thoughts"
    r"|best of luck)",
    re.IGNORECASE,
)

_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "`": "'"})
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, straighten apostrophes and collapse whitespace."""
    return _WHITESPACE.sub(" ", (text or "").translate(_APOSTROPHES)).strip().lower()


@dataclass(frozen=True)
class PhraseMatch:
    """Which cue classes a message matched."""
    transition: bool
    end: bool

    @property
    def matched(self) -> bool:
        return self.transition or self.end


def detect_transition(text: str) -> bool:
    return bool(TRANSITION_REGEX.search(normalize_text(text)))


def detect_end(text: str) -> bool:
    return bool(END_REGEX.search(normalize_text(text)))


def classify_message(text: str) -> PhraseMatch:
    """Classify a finalized assistant message against both cue classes."""
    normalized = normalize_text(text)
    return PhraseMatch(
        transition=bool(TRANSITION_REGEX.search(normalized)),
        end=bool(END_REGEX.search(normalized)),
    )


def is_substantive_reply(text: str, min_chars: int = SUBSTANTIVE_REPLY_MIN_CHARS) -> bool:
    """True for a candidate reply with real content, not just a readiness ping."""
    stripped = (text or "").strip()
    if len(stripped) <= min_chars:
        return False
    return "i'm ready" not in normalize_text(stripped)
