"""
Match resolution service.

Turns a ranking result into a decision a caller can act on:

    PENDING --propose(candidates)--> PROPOSED(default) --resolve(override?)--> RESOLVED

The default is UseExisting(best id) when the ranker found a confident
match, otherwise CreateNew. Interactive callers may override it with
any offered candidate, CreateNew or Skip. Batch callers accept the
default as-is so unattended imports stay deterministic.
"""

from typing import Optional, Sequence
import structlog

from models.product import CatalogEntry, ParsedItem
from models.matching import (
    CreateNew,
    MatchCandidate,
    MatchDecision,
    MatchProposal,
    MatchState,
    UseExisting,
)
from services.matching_service import MatchingService, get_matching_service
from services.product_service import get_product_service
from exceptions import InconsistentOverrideError, InvalidMatchTransitionError

logger = structlog.get_logger(__name__)


# ===================
# DECISION RULES
# ===================

def default_decision(best_match_id: Optional[str]) -> MatchDecision:
    """UseExisting for a confident match, CreateNew otherwise."""
    if best_match_id:
        return UseExisting(catalog_entry_id=best_match_id)
    return CreateNew()


def validate_override(
    override: MatchDecision,
    candidates: Sequence[CatalogEntry]
) -> MatchDecision:
    """
    Check an override against the offered candidates.

    Raises:
        InconsistentOverrideError: If UseExisting names an id that was not offered
    """
    if isinstance(override, UseExisting):
        offered_ids = [c.id for c in candidates]
        if override.catalog_entry_id not in offered_ids:
            raise InconsistentOverrideError(override.catalog_entry_id, offered_ids)
    return override


def _barcode_match(
    item: ParsedItem,
    scored: Sequence[MatchCandidate]
) -> Optional[MatchCandidate]:
    if not item.barcode:
        return None
    for candidate in scored:
        if candidate.entry.barcode and candidate.entry.barcode == item.barcode:
            return candidate
    return None


def build_proposal(
    item: ParsedItem,
    candidates: Sequence[CatalogEntry],
    matching: Optional[MatchingService] = None
) -> MatchProposal:
    """
    Score candidates and pick the default decision.

    A candidate with the item's barcode wins outright; otherwise the
    ranker's best match above threshold is used. Ranking sees every
    candidate; only the list shown to the caller is capped.
    """
    matching = matching or get_matching_service()

    scored = matching.score_candidates(item, candidates)

    best = _barcode_match(item, scored)
    if best is not None:
        best = MatchCandidate(entry=best.entry, score=1.0)
        scored = [best if c.entry.id == best.entry.id else c for c in scored]
    else:
        best = matching.best_match(scored)

    best_id = best.entry.id if best else None

    return MatchProposal(
        item=item,
        candidates=matching.shown_candidates(scored, best_id),
        best_match_id=best_id,
        default=default_decision(best_id)
    )


def resolve(
    item: ParsedItem,
    candidates: Sequence[CatalogEntry],
    override: Optional[MatchDecision] = None,
    matching: Optional[MatchingService] = None
) -> MatchDecision:
    """
    Decide what to do with one parsed item.

    Args:
        item: Parsed product
        candidates: Catalog entries offered for this item
        override: Caller's explicit choice (interactive only)
        matching: Matching service (defaults to the shared one)

    Returns:
        The override when given and valid, else the default decision.
        Identical inputs always give an identical decision.

    Raises:
        InconsistentOverrideError: If the override names an id not in candidates
    """
    if override is not None:
        return validate_override(override, candidates)

    return build_proposal(item, candidates, matching).default


# ===================
# PER-ITEM STATE MACHINE
# ===================

class MatchResolution:
    """
    Tracks one parsed item from PENDING to RESOLVED.

    RESOLVED is terminal. Resolving again with the same decision returns
    it unchanged, so a retried persistence write can replay the step.
    """

    def __init__(self, item: ParsedItem, matching: Optional[MatchingService] = None):
        self.item = item
        self.matching = matching or get_matching_service()
        self.state = MatchState.PENDING
        self.proposal: Optional[MatchProposal] = None
        self.decision: Optional[MatchDecision] = None
        self._candidates: list[CatalogEntry] = []

    def propose(self, candidates: Sequence[CatalogEntry]) -> MatchProposal:
        """Score fetched candidates and offer the default decision."""
        if self.state != MatchState.PENDING:
            raise InvalidMatchTransitionError(self.state.value, "propose")

        self._candidates = list(candidates)
        self.proposal = build_proposal(self.item, self._candidates, self.matching)
        self.state = MatchState.PROPOSED

        logger.debug(
            "match_proposed",
            name=self.item.name,
            candidates=len(self._candidates),
            default=self.proposal.default.action
        )

        return self.proposal

    def resolve(self, override: Optional[MatchDecision] = None) -> MatchDecision:
        """
        Fix the decision.

        Args:
            override: Explicit user choice; None accepts the default

        Raises:
            InvalidMatchTransitionError: If nothing was proposed yet, or the item
                was already resolved to a different decision
            InconsistentOverrideError: If the override names an id not offered
        """
        if self.state == MatchState.PENDING:
            raise InvalidMatchTransitionError(self.state.value, "resolve")

        if self.state == MatchState.RESOLVED:
            if override is None or override == self.decision:
                return self.decision
            raise InvalidMatchTransitionError(self.state.value, "resolve")

        if override is not None:
            decision = validate_override(override, self._candidates)
        else:
            decision = self.proposal.default

        self.decision = decision
        self.state = MatchState.RESOLVED

        logger.info(
            "match_resolved",
            name=self.item.name,
            action=decision.action,
            catalog_entry_id=getattr(decision, "catalog_entry_id", None),
            overridden=override is not None
        )

        return decision

    def accept_default(self) -> MatchDecision:
        """Non-interactive resolution: take the default verbatim."""
        return self.resolve(None)

    @property
    def is_resolved(self) -> bool:
        return self.state == MatchState.RESOLVED


# ===================
# SERVICE
# ===================

class MatchResolutionService:
    """
    Fetches candidates from the catalog and resolves items against them.

    Catalog failures propagate unchanged; nothing here retries.
    """

    def __init__(self, catalog=None, matching: Optional[MatchingService] = None):
        self.catalog = catalog or get_product_service()
        self.matching = matching or get_matching_service()

    def fetch_candidates(self, item: ParsedItem) -> list[CatalogEntry]:
        """
        Catalog entries to offer for an item.

        A barcode hit is the only candidate; otherwise the keyword
        prefilter results, ordered by name.
        """
        if item.barcode:
            entry = self.catalog.get_by_barcode(item.barcode)
            if entry is not None:
                logger.debug("barcode_match", barcode=item.barcode, entry_id=entry.id)
                return [entry]

        return self.catalog.search_similar(item.name, item.brand)

    def propose(self, item: ParsedItem) -> MatchProposal:
        """Fetch candidates and build the proposal for an interactive caller."""
        return self.start(item).proposal

    def start(self, item: ParsedItem) -> MatchResolution:
        """Fetch candidates and return a PROPOSED resolution."""
        resolution = MatchResolution(item, self.matching)
        resolution.propose(self.fetch_candidates(item))
        return resolution

    def resolve(
        self,
        item: ParsedItem,
        override: Optional[MatchDecision] = None
    ) -> MatchDecision:
        """Fetch candidates and resolve, honoring an optional override."""
        return self.start(item).resolve(override)


# Singleton instance
_match_resolution_service: Optional[MatchResolutionService] = None


def get_match_resolution_service() -> MatchResolutionService:
    """Get or create MatchResolutionService instance."""
    global _match_resolution_service
    if _match_resolution_service is None:
        _match_resolution_service = MatchResolutionService()
    return _match_resolution_service
