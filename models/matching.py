"""
Match resolution schemas.

MatchDecision is a tagged union on ``action``: use an existing catalog
entry, create a new one, or skip the item entirely.
"""

from pydantic import Field
from typing import Annotated, Literal, Optional, Union
from enum import Enum

from models.base import BaseSchema
from models.product import CatalogEntry, ParsedItem


class MatchState(str, Enum):
    """Lifecycle of a single item's match."""
    PENDING = "PENDING"      # Nothing fetched yet
    PROPOSED = "PROPOSED"    # Candidates scored, default decision offered
    RESOLVED = "RESOLVED"    # Decision fixed (terminal)


class UseExisting(BaseSchema):
    """Attach inventory to an existing catalog entry."""

    action: Literal["use_existing"] = "use_existing"
    catalog_entry_id: str = Field(..., min_length=1, description="Offered candidate id")


class CreateNew(BaseSchema):
    """Create a new catalog entry, then attach inventory to it."""

    action: Literal["create_new"] = "create_new"


class Skip(BaseSchema):
    """Do nothing for this item."""

    action: Literal["skip"] = "skip"


MatchDecision = Annotated[
    Union[UseExisting, CreateNew, Skip],
    Field(discriminator="action")
]


class MatchCandidate(BaseSchema):
    """A catalog entry scored against one parsed item."""

    entry: CatalogEntry
    score: float = Field(..., ge=0, le=1, description="Similarity 0..1")


class MatchProposal(BaseSchema):
    """
    What an interactive caller renders.
    
    Candidates keep the search order (name ascending). The default is
    pre-selected; "create new" and "skip" are always available.
    """

    item: ParsedItem
    candidates: list[MatchCandidate] = Field(default_factory=list)
    best_match_id: Optional[str] = Field(None, description="Ranker result, if above threshold")
    default: MatchDecision

    @property
    def has_candidates(self) -> bool:
        """True when the catalog search found anything worth showing."""
        return bool(self.candidates)

    @property
    def candidate_ids(self) -> list[str]:
        return [c.entry.id for c in self.candidates]


class MatchResolveRequest(BaseSchema):
    """Interactive resolve request: the item plus the user's choice, if any."""

    item: ParsedItem
    override: Optional[MatchDecision] = None
