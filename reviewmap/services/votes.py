"""Per-review reactions and comments.

Each acting user holds at most one vote per review, in one of three states:

    none --like--> liked          none --dislike--> disliked
    liked --like--> none          disliked --dislike--> none
    liked --dislike--> disliked   disliked --like--> liked

Re-selecting the current reaction clears it; switching reaction updates the
existing vote in place. Commands return a fresh ``Review`` snapshot built
from what Supabase answered, never from local counters.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Protocol

from reviewmap.core.errors import (
    BackendError,
    EmptyCommentError,
    MutationInFlightError,
    RemoteWriteError,
    UnauthenticatedActionError,
)
from reviewmap.schemas.reviews import Comment, Review, Vote, VoteState, VoteType
from reviewmap.services.media import MediaResolver

logger = logging.getLogger(__name__)


class VoteStore(Protocol):
    async def find_vote(self, review_id: str, user_id: str) -> Vote | None: ...

    async def insert_vote(self, review_id: str, user_id: str, vote_type: VoteType) -> Vote: ...

    async def update_vote(self, vote_id: str, vote_type: VoteType) -> Vote: ...

    async def delete_vote(self, vote_id: str) -> None: ...

    async def insert_comment(self, review_id: str, user_id: str, content: str) -> Comment: ...


_STATE_OF = {VoteType.like: VoteState.liked, VoteType.dislike: VoteState.disliked}


def state_of(vote: Vote | None) -> VoteState:
    return VoteState.none if vote is None else _STATE_OF[vote.type]


def next_state(current: VoteState, reaction: VoteType) -> VoteState:
    target = _STATE_OF[reaction]
    return VoteState.none if current == target else target


def vote_state_for(review: Review, user_id: str | None) -> VoteState:
    return state_of(review.vote_of(user_id))


@dataclass(frozen=True)
class ToggleVote:
    review: Review
    user_id: str
    reaction: VoteType

    async def execute(self, store: VoteStore) -> Review:
        try:
            existing = await store.find_vote(self.review.id, self.user_id)
            target = next_state(state_of(existing), self.reaction)

            if existing is not None and target == VoteState.none:
                await store.delete_vote(existing.id)
                confirmed = None
            elif existing is not None:
                confirmed = await store.update_vote(existing.id, self.reaction)
            else:
                confirmed = await store.insert_vote(self.review.id, self.user_id, self.reaction)
        except BackendError as e:
            raise RemoteWriteError("Could not save your reaction.") from e

        votes = [
            v
            for v in self.review.votes
            if v.user_id != self.user_id and (existing is None or v.id != existing.id)
        ]
        if confirmed is not None:
            votes.append(confirmed)

        logger.info(
            "Vote on review %s by %s: %s -> %s",
            self.review.id,
            self.user_id,
            state_of(existing).value,
            target.value,
        )
        return self.review.model_copy(update={"votes": votes})


@dataclass(frozen=True)
class PostComment:
    review: Review
    user_id: str
    content: str

    async def execute(self, store: VoteStore, resolver: MediaResolver) -> Review:
        text = self.content.strip()
        if not text:
            raise EmptyCommentError()

        try:
            comment = await store.insert_comment(self.review.id, self.user_id, text)
        except BackendError as e:
            raise RemoteWriteError("Could not publish your comment.") from e

        if comment.author is not None and comment.author.avatar_url:
            avatar = await resolver.resolve(comment.author.avatar_url)
            comment = comment.model_copy(
                update={"author": comment.author.model_copy(update={"avatar_url": avatar})}
            )

        return self.review.model_copy(update={"comments": [comment, *self.review.comments]})


class InFlightGate:
    """Allows one pending mutation per (review, user) pair."""

    def __init__(self) -> None:
        self._busy: set[tuple[str, str]] = set()

    def is_busy(self, review_id: str, user_id: str) -> bool:
        return (review_id, user_id) in self._busy

    @contextmanager
    def hold(self, review_id: str, user_id: str) -> Iterator[None]:
        key = (review_id, user_id)
        if key in self._busy:
            raise MutationInFlightError(review_id)
        self._busy.add(key)
        try:
            yield
        finally:
            self._busy.discard(key)


class VoteStateMachine:
    def __init__(self, store: VoteStore, resolver: MediaResolver, gate: InFlightGate) -> None:
        self.store = store
        self.resolver = resolver
        self.gate = gate

    async def toggle(self, review: Review, user_id: str | None, reaction: VoteType) -> Review:
        if not user_id:
            raise UnauthenticatedActionError("react")
        with self.gate.hold(review.id, user_id):
            return await ToggleVote(review, user_id, reaction).execute(self.store)

    async def comment(self, review: Review, user_id: str | None, content: str) -> Review:
        if not user_id:
            raise UnauthenticatedActionError("comment")
        with self.gate.hold(review.id, user_id):
            return await PostComment(review, user_id, content).execute(self.store, self.resolver)
