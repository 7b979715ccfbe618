from pydantic import BaseModel, ConfigDict, Field, model_validator


class Pagination(BaseModel):
    """Current page window for a paged listing."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=0, ge=0)
    total_pages: int = Field(default=0, ge=0)
    total_items: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _validate_page_bounds(self) -> "Pagination":
        if self.total_pages > 0 and self.page > self.total_pages:
            raise ValueError("page must be <= total_pages")
        return self

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
