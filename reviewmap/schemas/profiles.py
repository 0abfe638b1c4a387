from __future__ import annotations

from pydantic import BaseModel, ConfigDict, computed_field


class Author(BaseModel):
    """Profile projection embedded in reviews and comments."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_name(self) -> str:
        return self.full_name or self.username or "User"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def initial(self) -> str:
        # Handles are stored with a leading "@".
        seed = (self.full_name or self.username or "U").lstrip("@")
        return seed[:1].upper() or "U"


class RankInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier_label: str
    threshold: int
    badge_asset: str | None = None


class AuthorRankResponse(BaseModel):
    author_id: str
    total_likes: int
    rank: RankInfo
