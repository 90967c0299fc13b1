"""Card-related models."""

from __future__ import annotations

import re
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import Supertype

STAGE_SUBTYPES = {"Stage1": 1, "Stage2": 2}

_LEADING_NUMBER = re.compile(r"\d+")


class Attack(BaseModel):
    """An attack printed on a creature card."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    cost: list[str] = Field(default_factory=list)  # element tags, one per resource
    damage: int = Field(default=0, ge=0)
    text: str = Field(default="", alias="textEffect")

    @field_validator("damage", mode="before")
    @classmethod
    def parse_damage(cls, v: int | str | None) -> int:
        """Keep the printed number of damage strings like "120+" or "30x"."""
        if v is None:
            return 0
        if isinstance(v, str):
            match = _LEADING_NUMBER.search(v)
            return int(match.group()) if match else 0
        return v

    @property
    def cost_count(self) -> int:
        return len(self.cost)


class Ability(BaseModel):
    """A named ability on a card."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    text: str = Field(default="", alias="textEffect")


class Card(BaseModel):
    """A card as supplied by the catalog."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    supertype: Supertype
    subtypes: list[str] = Field(default_factory=list)
    elemental_types: list[str] = Field(default_factory=list, alias="elementalTypes")
    hp: int | None = Field(default=None, ge=0)
    attacks: list[Attack] = Field(default_factory=list)
    abilities: list[Ability] = Field(default_factory=list)
    rarity: str | None = None
    legality_by_format: dict[str, bool] = Field(default_factory=dict, alias="legalityByFormat")
    market_price: Decimal | None = Field(default=None, alias="marketPrice", ge=0)

    # Evolution and matchup data
    evolves_from: str | None = Field(default=None, alias="evolvesFrom")
    weaknesses: list[str] = Field(default_factory=list)
    resistances: list[str] = Field(default_factory=list)

    @property
    def is_creature(self) -> bool:
        return self.supertype == "Creature"

    @property
    def is_support(self) -> bool:
        return self.supertype == "Support"

    @property
    def is_resource(self) -> bool:
        return self.supertype == "Resource"

    @property
    def is_basic_resource(self) -> bool:
        """Basic resources are exempt from the copy limit."""
        return self.is_resource and "Basic" in self.subtypes

    @property
    def is_basic_creature(self) -> bool:
        return self.is_creature and self.stage == 0

    @property
    def stage(self) -> int:
        """Evolution stage: 0 for basics, 1 or 2 for evolved creatures."""
        for subtype, stage in STAGE_SUBTYPES.items():
            if subtype in self.subtypes:
                return stage
        return 1 if self.evolves_from else 0

    @property
    def max_damage(self) -> int:
        return max((a.damage for a in self.attacks), default=0)

    @property
    def best_attack(self) -> Attack | None:
        """Highest-damage attack, cheaper attack first on ties."""
        if not self.attacks:
            return None
        return max(self.attacks, key=lambda a: (a.damage, -a.cost_count))

    @property
    def effect_text(self) -> str:
        """Lowercased text of every attack and ability, for pattern matching."""
        parts = [a.text for a in self.attacks] + [a.text for a in self.abilities]
        return " ".join(p for p in parts if p).lower()

    def is_legal_in(self, format_name: str) -> bool:
        """Cards without an entry for a format are not legal in it."""
        return self.legality_by_format.get(format_name.lower(), False)
