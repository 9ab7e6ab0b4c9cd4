"""
Product matching service: core deduplication logic.

Scores how likely a parsed product is to be the same as an existing
catalog entry, and picks the best catalog entry above a threshold.

Scoring:
    base  = matched keywords / max(|K1|, |K2|)
    boost = +0.2 (capped at 1.0) when both brands are given and their
            own keyword similarity exceeds 0.5

A keyword matches when one contains the other ("mleko" / "mlekowita"),
which tolerates plural and truncated receipt spellings.

Everything here is pure: no I/O, no shared state.
"""

from typing import Optional, Sequence
import structlog

from config import settings
from models.product import CatalogEntry, ParsedItem
from models.matching import MatchCandidate
from utils.text_utils import normalize_keywords

logger = structlog.get_logger(__name__)


DEFAULT_MATCH_THRESHOLD = 0.6
DEFAULT_BRAND_BOOST = 0.2
DEFAULT_BRAND_THRESHOLD = 0.5


# ===================
# SCORING
# ===================

def _keywords_related(a: str, b: str) -> bool:
    return a in b or b in a


def _count_matching(source: set[str], target: set[str]) -> int:
    """Count keywords in source that contain or are contained by a target keyword."""
    return sum(
        1 for keyword in source
        if any(_keywords_related(keyword, other) for other in target)
    )


def keyword_set_similarity(k1: set[str], k2: set[str]) -> float:
    """
    Similarity of two keyword sets, 0..1.

    Counted from both sides and the smaller count is used, so the score
    is symmetric: {"ser", "serek"} vs {"serek"} scores 1/2, not 2/2.

    Returns:
        0.0 when either set is empty
    """
    if not k1 or not k2:
        return 0.0

    matches = min(_count_matching(k1, k2), _count_matching(k2, k1))

    return matches / max(len(k1), len(k2))


def keyword_similarity(text_a: Optional[str], text_b: Optional[str]) -> float:
    """Keyword-set similarity of two raw strings."""
    return keyword_set_similarity(normalize_keywords(text_a), normalize_keywords(text_b))


def similarity(
    name_a: Optional[str],
    name_b: Optional[str],
    brand_a: Optional[str] = None,
    brand_b: Optional[str] = None,
    brand_boost: float = DEFAULT_BRAND_BOOST,
    brand_threshold: float = DEFAULT_BRAND_THRESHOLD
) -> float:
    """
    Similarity of two product descriptions, 0..1.

    Args:
        name_a: First product name
        name_b: Second product name
        brand_a: First brand (optional)
        brand_b: Second brand (optional)
        brand_boost: Added to the name score when brands agree
        brand_threshold: Brand similarity that must be exceeded for the boost

    Returns:
        Name score, boosted when both brands are present and similar.
        0.0 when either name has no comparable keywords.
    """
    name_keywords_a = normalize_keywords(name_a)
    name_keywords_b = normalize_keywords(name_b)

    # Nothing to compare, brands cannot rescue it
    if not name_keywords_a or not name_keywords_b:
        return 0.0

    score = keyword_set_similarity(name_keywords_a, name_keywords_b)

    # Boost only when both sides actually name a brand
    if brand_a and brand_a.strip() and brand_b and brand_b.strip():
        if keyword_similarity(brand_a, brand_b) > brand_threshold:
            score = min(1.0, score + brand_boost)

    return score


# ===================
# RANKING
# ===================

def score_candidates(
    item: ParsedItem,
    candidates: Sequence[CatalogEntry],
    brand_boost: float = DEFAULT_BRAND_BOOST,
    brand_threshold: float = DEFAULT_BRAND_THRESHOLD
) -> list[MatchCandidate]:
    """
    Score every candidate against the item, keeping input order.
    """
    return [
        MatchCandidate(
            entry=entry,
            score=similarity(
                item.name,
                entry.name,
                item.brand,
                entry.brand,
                brand_boost=brand_boost,
                brand_threshold=brand_threshold
            )
        )
        for entry in candidates
    ]


def best_scored(
    scored: Sequence[MatchCandidate],
    threshold: float = DEFAULT_MATCH_THRESHOLD
) -> Optional[MatchCandidate]:
    """
    Pick the highest-scoring candidate that exceeds the threshold.

    Ties keep the earlier candidate (search returns names ascending,
    so ties resolve alphabetically).
    """
    best: Optional[MatchCandidate] = None

    for candidate in scored:
        if candidate.score <= threshold:
            continue
        if best is None or candidate.score > best.score:
            best = candidate

    return best


def top_candidates(
    scored: Sequence[MatchCandidate],
    limit: int,
    pinned_id: Optional[str] = None
) -> list[MatchCandidate]:
    """
    Keep the `limit` highest-scoring candidates, in their original order.

    The candidate with `pinned_id` (the chosen match) is always kept;
    equal scores keep the earlier candidate.
    """
    if len(scored) <= limit:
        return list(scored)

    ranked = sorted(
        range(len(scored)),
        key=lambda i: (scored[i].entry.id != pinned_id, -scored[i].score, i)
    )
    keep = sorted(ranked[:limit])

    return [scored[i] for i in keep]


def find_best_match(
    item: ParsedItem,
    candidates: Sequence[CatalogEntry],
    threshold: float = DEFAULT_MATCH_THRESHOLD
) -> Optional[str]:
    """
    Find the catalog entry the item most likely duplicates.

    Candidates are expected to be pre-filtered by the catalog keyword
    search; this only does the fine ranking.

    Args:
        item: Parsed product to place
        candidates: Catalog entries from the keyword prefilter
        threshold: Score a candidate must exceed

    Returns:
        Catalog entry id, or None when nothing is confident enough
        (caller should default to creating a new entry)
    """
    best = best_scored(score_candidates(item, candidates), threshold)
    return best.entry.id if best else None


# Name used by import and UI callers
rank_candidates = find_best_match


# ===================
# SERVICE
# ===================

class MatchingService:
    """
    Settings-aware wrapper around the pure scoring functions.

    Thresholds come from configuration so they can be tuned per deployment.
    """

    def __init__(
        self,
        threshold: Optional[float] = None,
        brand_boost: Optional[float] = None,
        brand_threshold: Optional[float] = None,
        candidate_limit: Optional[int] = None
    ):
        self.threshold = settings.match_threshold if threshold is None else threshold
        self.brand_boost = settings.match_brand_boost if brand_boost is None else brand_boost
        self.brand_threshold = (
            settings.match_brand_threshold if brand_threshold is None else brand_threshold
        )
        self.candidate_limit = (
            settings.match_candidate_limit if candidate_limit is None else candidate_limit
        )

    def score_candidates(
        self,
        item: ParsedItem,
        candidates: Sequence[CatalogEntry]
    ) -> list[MatchCandidate]:
        """Score candidates with the configured brand rule."""
        return score_candidates(
            item,
            candidates,
            brand_boost=self.brand_boost,
            brand_threshold=self.brand_threshold
        )

    def best_match(self, scored: Sequence[MatchCandidate]) -> Optional[MatchCandidate]:
        """Best already-scored candidate above the configured threshold."""
        return best_scored(scored, self.threshold)

    def shown_candidates(
        self,
        scored: Sequence[MatchCandidate],
        pinned_id: Optional[str] = None
    ) -> list[MatchCandidate]:
        """Highest-scoring candidates up to the configured limit."""
        return top_candidates(scored, self.candidate_limit, pinned_id)

    def rank_candidates(
        self,
        item: ParsedItem,
        candidates: Sequence[CatalogEntry]
    ) -> Optional[str]:
        """
        Return the id of the best candidate above threshold, or None.

        Args:
            item: Parsed product to place
            candidates: Catalog entries from the keyword prefilter

        Returns:
            Catalog entry id or None
        """
        best = self.best_match(self.score_candidates(item, candidates))

        if best:
            logger.debug(
                "match_found",
                name=item.name,
                catalog_entry_id=best.entry.id,
                matched_name=best.entry.name,
                score=round(best.score, 3)
            )
            return best.entry.id

        logger.debug(
            "no_match_above_threshold",
            name=item.name,
            candidates=len(candidates),
            threshold=self.threshold
        )
        return None


# Singleton instance
_matching_service: Optional[MatchingService] = None


def get_matching_service() -> MatchingService:
    """Get or create MatchingService instance."""
    global _matching_service
    if _matching_service is None:
        _matching_service = MatchingService()
    return _matching_service
