from types import SimpleNamespace

import pytest

from conftest import make_review
from reviewmap.core.errors import BackendError, RemoteWriteError
from reviewmap.db.crud import SupabaseStore
from reviewmap.schemas.reviews import VoteState, VoteType
from reviewmap.services.votes import ToggleVote, vote_state_for


class RecordingQuery:
    """Chainable stand-in for a supabase query builder."""

    def __init__(self, client: "RecordingClient", table: str) -> None:
        self.client = client
        self.table = table
        self.steps: list[tuple] = []

    def _step(self, name: str, *args, **kwargs) -> "RecordingQuery":
        self.steps.append((name, *args, *kwargs.values()))
        return self

    def select(self, *args, **kwargs):
        return self._step("select", *args, **kwargs)

    def insert(self, *args, **kwargs):
        return self._step("insert", *args, **kwargs)

    def update(self, *args, **kwargs):
        return self._step("update", *args, **kwargs)

    def delete(self, *args, **kwargs):
        return self._step("delete", *args, **kwargs)

    def eq(self, *args, **kwargs):
        return self._step("eq", *args, **kwargs)

    def limit(self, *args, **kwargs):
        return self._step("limit", *args, **kwargs)

    def order(self, *args, **kwargs):
        return self._step("order", *args, **kwargs)

    def is_(self, *args, **kwargs):
        return self._step("is_", *args, **kwargs)

    @property
    def not_(self):
        return self._step("not_")

    async def execute(self):
        self.client.executed.append((self.table, self.steps))
        rows = self.client.responses.pop(0) if self.client.responses else []
        return SimpleNamespace(data=rows)


class RecordingClient:
    def __init__(self, *responses: list) -> None:
        self.responses = list(responses)
        self.executed: list[tuple[str, list[tuple]]] = []

    def table(self, name: str) -> RecordingQuery:
        return RecordingQuery(self, name)

    def verbs(self) -> list[str]:
        return [steps[0][0] for _, steps in self.executed]


def _store(client: RecordingClient) -> SupabaseStore:
    return SupabaseStore(client, url="https://proj.supabase.co", key="anon-key")


VOTE_ROW = {"id": "v1", "review_id": "r1", "user_id": "member-1", "type": "like"}


@pytest.mark.asyncio
async def test_find_vote_filters_by_review_and_user():
    client = RecordingClient([VOTE_ROW])

    vote = await _store(client).find_vote("r1", "member-1")

    assert vote.id == "v1"
    assert vote.type == VoteType.like
    table, steps = client.executed[0]
    assert table == "votes"
    assert ("eq", "review_id", "r1") in steps
    assert ("eq", "user_id", "member-1") in steps


@pytest.mark.asyncio
async def test_find_vote_without_row_is_none():
    assert await _store(RecordingClient([])).find_vote("r1", "member-1") is None


@pytest.mark.asyncio
async def test_insert_vote_returns_confirmed_row():
    client = RecordingClient([VOTE_ROW])

    vote = await _store(client).insert_vote("r1", "member-1", VoteType.like)

    assert vote.id == "v1"
    _, steps = client.executed[0]
    assert steps[0] == ("insert", {"review_id": "r1", "user_id": "member-1", "type": "like"})


@pytest.mark.asyncio
async def test_update_vote_without_row_fails():
    with pytest.raises(BackendError):
        await _store(RecordingClient([])).update_vote("v1", VoteType.dislike)


@pytest.mark.asyncio
async def test_delete_vote_targets_one_row():
    client = RecordingClient([VOTE_ROW])

    await _store(client).delete_vote("v1")

    table, steps = client.executed[0]
    assert table == "votes"
    assert steps == [("delete",), ("eq", "id", "v1")]


@pytest.mark.asyncio
async def test_delete_vote_without_row_fails():
    with pytest.raises(BackendError):
        await _store(RecordingClient([])).delete_vote("v1")


@pytest.mark.asyncio
async def test_silently_refused_delete_keeps_existing_like():
    review = make_review("r1", likes=1)
    mine = review.votes[0]
    existing = {"id": mine.id, "review_id": "r1", "user_id": mine.user_id, "type": "like"}
    # The vote read finds the like; the delete answers with no rows.
    client = RecordingClient([existing], [])

    with pytest.raises(RemoteWriteError):
        await ToggleVote(review, mine.user_id, VoteType.like).execute(_store(client))

    assert client.verbs() == ["select", "delete"]
    assert vote_state_for(review, mine.user_id) == VoteState.liked
    assert review.like_count == 1
