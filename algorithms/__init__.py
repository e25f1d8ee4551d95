from .session_matcher import MATCH_TIERS, match_session, matched_tier
from .set_normalizer import (
    SetKind,
    normalize,
    format_weight,
    format_reps,
    format_difficulty,
    format_duration,
)

__all__ = [
    "MATCH_TIERS",
    "match_session",
    "matched_tier",
    "SetKind",
    "normalize",
    "format_weight",
    "format_reps",
    "format_difficulty",
    "format_duration",
]
