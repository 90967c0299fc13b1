"""Input models for analysis and optimization calls."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .types import Archetype, OptimizationGoal


class MetaShare(BaseModel):
    """One archetype's presence in the current competitive field."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    archetype: Archetype
    share_of_field: float = Field(ge=0, le=1, alias="shareOfField")
    key_card_ids: list[str] = Field(default_factory=list, alias="keyCardIds")


class Constraint(BaseModel):
    """Limits an optimization run must respect."""

    model_config = ConfigDict(populate_by_name=True)

    format: str = Field(default="standard", description="Format the result must be legal in")
    max_budget: Decimal | None = Field(
        default=None, ge=0, alias="maxBudget", description="Cap on cumulative cost delta"
    )
    only_owned_cards: bool = Field(
        default=False, alias="onlyOwnedCards", description="Only add cards the user owns"
    )
    user_id: str | None = Field(
        default=None, alias="userId", description="Owner for ownership checks"
    )
    must_include_card_ids: list[str] = Field(default_factory=list, alias="mustIncludeCardIds")
    must_exclude_card_ids: list[str] = Field(default_factory=list, alias="mustExcludeCardIds")
    acceptable_changes: int | None = Field(
        default=None,
        ge=0,
        alias="acceptableChanges",
        description="Cap on substitutions (None = settings default)",
    )


class BuildPreferences(BaseModel):
    """Preferences for building a deck from scratch."""

    model_config = ConfigDict(populate_by_name=True)

    archetype: Archetype | None = Field(
        default=None, description="Seed archetype (default midrange)"
    )
    elemental_types: list[str] = Field(
        default_factory=list, alias="elementalTypes", description="Preferred creature types"
    )
    goal: OptimizationGoal = Field(default="consistency", description="Refinement objective")
