from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bodyvantage.core.constants import MAX_RATING, MIN_RATING, SPECIALISATION_SLOTS

_SPECIALISATION_FIELDS = (
    "specialisationOne",
    "specialisationTwo",
    "specialisationThree",
    "specialisationFour",
)
_KEYWORD_FIELDS = (
    "keyWordSearch",
    "keyWordSearchOne",
    "keyWordSearchTwo",
    "keyWordSearchThree",
    "keyWordSearchFour",
    "keyWordSearchFive",
)


def _as_str_list(value: Any) -> list[str]:
    """Accept a list of strings or a comma-separated string; drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    out: list[str] = []
    for x in items:
        if not isinstance(x, str):
            continue
        s = x.strip()
        if s:
            out.append(s)
    return out


class Profile(BaseModel):
    """Read-only projection of a directory profile as returned by the backend."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str = Field(alias="_id")
    name: str = ""
    description: str = ""
    location: str = ""
    specialisations: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    telephone_number: Optional[str] = Field(default=None, alias="telephoneNumber")
    email: Optional[str] = None
    rating: float = 0.0
    num_reviews: int = Field(default=0, alias="numReviews")
    profile_image: Optional[str] = Field(default=None, alias="profileImage")
    profile_click_counter: int = Field(default=0, alias="profileClickCounter")

    @model_validator(mode="before")
    @classmethod
    def _collect_wire_fields(cls, data: Any) -> Any:
        # Backend sends specialisationOne..Four and keyWordSearch* as separate fields
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "specialisations" not in data:
            slots: list[str] = []
            for name in _SPECIALISATION_FIELDS:
                slots.extend(_as_str_list(data.get(name)))
            data["specialisations"] = slots
        if "keywords" not in data:
            kws: list[str] = []
            for name in _KEYWORD_FIELDS:
                kws.extend(_as_str_list(data.get(name)))
            data["keywords"] = kws
        for name in _SPECIALISATION_FIELDS + _KEYWORD_FIELDS:
            data.pop(name, None)
        # Mongo bookkeeping (__v etc.) is not part of the projection
        for key in [k for k in data if k.startswith("_") and k != "_id"]:
            data.pop(key)
        location = data.get("location")
        if isinstance(location, (list, tuple)):
            data["location"] = " ".join(str(x) for x in location if x)
        for key in ("name", "description", "location"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @field_validator("specialisations", mode="before")
    @classmethod
    def _limit_specialisations(cls, v: Any) -> tuple[str, ...]:
        return tuple(_as_str_list(v)[:SPECIALISATION_SLOTS])

    @field_validator("keywords", mode="before")
    @classmethod
    def _normalize_keywords(cls, v: Any) -> tuple[str, ...]:
        return tuple(_as_str_list(v))

    @field_validator("rating", mode="before")
    @classmethod
    def _clamp_rating(cls, v: Any) -> float:
        try:
            r = float(v) if v is not None else MIN_RATING
        except (TypeError, ValueError):
            return MIN_RATING
        return max(MIN_RATING, min(MAX_RATING, r))

    @field_validator("num_reviews", "profile_click_counter", mode="before")
    @classmethod
    def _non_negative_int(cls, v: Any) -> int:
        try:
            n = int(v) if v is not None else 0
        except (TypeError, ValueError):
            return 0
        return max(0, n)


class ProfileListResponse(BaseModel):
    """GET /api/profiles page."""

    profiles: list[Profile] = []
    page: int = 1
    pages: int = 0
    total: int = 0

    @classmethod
    def from_payload(cls, data: Any) -> "ProfileListResponse":
        """Accept the paged envelope or a bare list (treated as one page)."""
        if isinstance(data, list):
            profiles = [Profile.model_validate(p) for p in data]
            return cls(profiles=profiles, page=1, pages=1 if profiles else 0, total=len(profiles))
        return cls.model_validate(data or {})


class ClickCounterResponse(BaseModel):
    """PUT /api/profile-clicks response; the server owns the count."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    click_count: int = Field(default=0, alias="clickCount")
