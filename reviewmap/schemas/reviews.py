from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from reviewmap.schemas.places import Place
from reviewmap.schemas.profiles import Author, RankInfo


class VoteType(str, Enum):
    like = "like"
    dislike = "dislike"


class VoteState(str, Enum):
    none = "none"
    liked = "liked"
    disliked = "disliked"


class Vote(BaseModel):
    model_config = ConfigDict(frozen=True)

    # The feed projection only selects the vote type.
    id: str | None = None
    review_id: str | None = None
    user_id: str | None = None
    type: VoteType


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    review_id: str | None = None
    user_id: str | None = None
    content: str
    created_at: datetime | None = None
    author: Author | None = None


class Review(BaseModel):
    """Immutable review snapshot.

    Mutations (votes, comments, resolved media) produce a new snapshot with
    ``model_copy(update=...)``; nobody edits one in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    content: str = ""
    rating: float = Field(default=0.0, ge=0, le=5)
    created_at: datetime | None = None
    author: Author | None = None
    place: Place | None = None
    hashtags: list[str] = []
    images: list[str] = []
    votes: list[Vote] = []
    comments: list[Comment] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def like_count(self) -> int:
        return sum(1 for v in self.votes if v.type is VoteType.like)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dislike_count(self) -> int:
        return sum(1 for v in self.votes if v.type is VoteType.dislike)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def comment_count(self) -> int:
        return len(self.comments)

    @property
    def cover_image(self) -> str | None:
        return self.images[0] if self.images else None

    def vote_of(self, user_id: str | None) -> Vote | None:
        if not user_id:
            return None
        for vote in self.votes:
            if vote.user_id == user_id:
                return vote
        return None


class EnrichedReview(Review):
    """Review whose cover image and author avatar are ready to render."""


class VoteRequest(BaseModel):
    type: VoteType


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class SearchItem(BaseModel):
    review: EnrichedReview
    author_rank: RankInfo


class SearchResponse(BaseModel):
    query: str
    status: Literal["no_query", "no_matches", "ok"]
    items: list[SearchItem]
    total: int


class ReviewDetailResponse(BaseModel):
    review: Review
    my_vote: VoteState


class ReviewListResponse(BaseModel):
    items: list[Review]
    total: int
