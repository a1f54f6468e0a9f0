"""
Preference Matcher
==================
Scores every active itinerary template for a city against a traveler's
stated preferences and returns them ranked by relevance.

Scoring (additive, fixed weights):
  persona    25 per matching persona
  vibe       20 per matching vibe
  budget     15 flat, exact tier match only
  interest   10 per matching interest
  duration   10 exact, 5 when one day off, 0 otherwise

The raw score is normalized against the best attainable score for the
query and reported as an integer percentage in [0, 100]. With the default
"parity" policy an empty persona, vibe or interest set still counts as one
slot in the denominator, so sparse queries score lower.

Pure and stateless: no I/O, safe to call concurrently.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, List, Optional, Sequence, Tuple
import math

WEIGHTS = MappingProxyType({
    "persona": 25,
    "vibe": 20,
    "budget": 15,
    "interest": 10,
    "duration_exact": 10,
    "duration_near": 5,
})

DENOMINATOR_POLICIES = ("parity", "applicable")

DEFAULT_CITY = "Danang"


def normalize_city(city: Optional[str], default: str = DEFAULT_CITY) -> str:
    """
    Capitalize the first letter and lowercase the rest.

    Multi-word names are flattened too ("Hoi An" -> "Hoi an"); stored
    cities go through the same function so lookups stay consistent.
    """
    city = city or default
    return city[:1].upper() + city[1:].lower()


def parse_csv(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated query parameter, dropping blank entries."""
    if not value:
        return ()
    return _unique(part.strip() for part in value.split(","))


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    # A repeated tag counts once, in the numerator and the denominator alike.
    seen = set()
    ordered = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            ordered.append(v)
    return tuple(ordered)


@dataclass(frozen=True)
class PreferenceQuery:
    """Transient matcher input; built fresh per request."""
    city: str = DEFAULT_CITY
    personas: Tuple[str, ...] = ()
    vibes: Tuple[str, ...] = ()
    budget: Optional[str] = None
    interests: Tuple[str, ...] = ()
    duration: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "city", normalize_city(self.city))
        object.__setattr__(self, "personas", _unique(self.personas))
        object.__setattr__(self, "vibes", _unique(self.vibes))
        object.__setattr__(self, "interests", _unique(self.interests))
        object.__setattr__(self, "budget", self.budget or None)
        object.__setattr__(self, "duration", self.duration or None)

    @classmethod
    def from_params(
        cls,
        city: Optional[str] = None,
        personas: Optional[str] = None,
        vibes: Optional[str] = None,
        budget: Optional[str] = None,
        interests: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> "PreferenceQuery":
        return cls(
            city=city or DEFAULT_CITY,
            personas=parse_csv(personas),
            vibes=parse_csv(vibes),
            budget=budget,
            interests=parse_csv(interests),
            duration=duration,
        )


@dataclass
class ScoredTemplate:
    template: Any
    match_score: int
    raw_score: int
    matched_criteria: List[str] = field(default_factory=list)


def _matches(query_tags: Sequence[str], target_tags: Optional[Iterable[str]]) -> List[str]:
    targets = set(target_tags or ())
    return [t for t in query_tags if t in targets]


def max_possible_score(query: PreferenceQuery, policy: str = "parity") -> int:
    if policy not in DENOMINATOR_POLICIES:
        raise ValueError(f"Unknown denominator policy: {policy}")

    if policy == "parity":
        return (
            max(1, len(query.personas)) * WEIGHTS["persona"]
            + max(1, len(query.vibes)) * WEIGHTS["vibe"]
            + WEIGHTS["budget"]
            + max(1, len(query.interests)) * WEIGHTS["interest"]
            + WEIGHTS["duration_exact"]
        )

    total = (
        len(query.personas) * WEIGHTS["persona"]
        + len(query.vibes) * WEIGHTS["vibe"]
        + len(query.interests) * WEIGHTS["interest"]
    )
    if query.budget:
        total += WEIGHTS["budget"]
    if query.duration:
        total += WEIGHTS["duration_exact"]
    return total


def raw_score(template: Any, query: PreferenceQuery) -> Tuple[int, List[str]]:
    """Return (points, matched criteria labels) for one template."""
    score = 0
    criteria: List[str] = []

    personas = _matches(query.personas, template.target_personas)
    if personas:
        score += len(personas) * WEIGHTS["persona"]
        criteria.append(f"persona: {', '.join(personas)}")

    vibes = _matches(query.vibes, template.target_vibes)
    if vibes:
        score += len(vibes) * WEIGHTS["vibe"]
        criteria.append(f"vibe: {', '.join(vibes)}")

    if query.budget and template.target_budget and query.budget == template.target_budget:
        score += WEIGHTS["budget"]
        criteria.append(f"budget: {query.budget}")

    interests = _matches(query.interests, template.target_interests)
    if interests:
        score += len(interests) * WEIGHTS["interest"]
        criteria.append(f"interests: {', '.join(interests)}")

    if query.duration and template.duration_days:
        diff = abs(template.duration_days - query.duration)
        if diff == 0:
            score += WEIGHTS["duration_exact"]
            criteria.append(f"duration: {query.duration} days")
        elif diff == 1:
            score += WEIGHTS["duration_near"]

    return score, criteria


def score_template(template: Any, query: PreferenceQuery, policy: str = "parity") -> ScoredTemplate:
    points, criteria = raw_score(template, query)
    denominator = max_possible_score(query, policy)
    if denominator <= 0:
        percentage = 0
    else:
        # round half up (12.5 -> 13)
        percentage = int(math.floor(100 * points / denominator + 0.5))
    return ScoredTemplate(
        template=template,
        match_score=max(0, min(100, percentage)),
        raw_score=points,
        matched_criteria=criteria,
    )


def rank_templates(
    templates: Iterable[Any],
    query: PreferenceQuery,
    policy: str = "parity",
) -> List[ScoredTemplate]:
    """
    Score every template and sort by score descending, then display_order
    ascending. Nothing is filtered out for a zero score.
    """
    scored = [score_template(t, query, policy) for t in templates]
    scored.sort(key=lambda s: (-s.match_score, s.template.display_order or 0))
    return scored
