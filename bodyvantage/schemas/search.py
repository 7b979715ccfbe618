from typing import Optional

from pydantic import BaseModel, ConfigDict


class HighlightRun(BaseModel):
    """One run of display text, tagged for rendering."""

    model_config = ConfigDict(frozen=True)

    text: str
    matched: bool = False


class ProfileCard(BaseModel):
    """Search result card view model (home view)."""

    id: str
    name_runs: list[HighlightRun] = []
    description: str = ""
    specialisations: list[str] = []  # always SPECIALISATION_SLOTS entries
    rating: float = 0.0
    num_reviews: int = 0
    image_url: Optional[str] = None


class SearchResults(BaseModel):
    query: str
    cards: list[ProfileCard] = []

    @property
    def count(self) -> int:
        return len(self.cards)
