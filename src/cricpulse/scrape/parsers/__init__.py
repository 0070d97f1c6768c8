"""
Parsing utilities shared by the scrapers.

- rules: declarative markup rules and ranked strategy evaluation
- inference: match type, schedule, status, score and result inference
- merge: cross-source match reconciliation
"""

from cricpulse.scrape.parsers.inference import (
    derive_status_flags,
    extract_result,
    find_text_matches,
    infer_match_type,
    infer_schedule,
    is_excluded,
    is_plausible_team,
    parse_innings_score,
)
from cricpulse.scrape.parsers.merge import (
    dedupe_matches,
    is_same_match,
    merge_matches,
    normalize_team_name,
    same_team,
)
from cricpulse.scrape.parsers.rules import (
    FieldRule,
    MarkupRule,
    apply_markup_rules,
    run_strategies,
)

__all__ = [
    "FieldRule",
    "MarkupRule",
    "apply_markup_rules",
    "run_strategies",
    "derive_status_flags",
    "extract_result",
    "find_text_matches",
    "infer_match_type",
    "infer_schedule",
    "is_excluded",
    "is_plausible_team",
    "parse_innings_score",
    "dedupe_matches",
    "is_same_match",
    "merge_matches",
    "normalize_team_name",
    "same_team",
]
