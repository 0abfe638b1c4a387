import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

_tmpdir = Path(tempfile.mkdtemp(prefix="reviewmap_test_"))

os.environ.setdefault("ENV", "test")
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("LOG_DIR", str(_tmpdir / "logs"))
os.environ.setdefault("ROUTING_URL", "http://127.0.0.1:9/route/v1/driving")
os.environ.setdefault("ROUTE_TIMEOUT_SECONDS", "2")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from reviewmap.core.deps import get_route_resolver, get_store
from reviewmap.core.errors import BackendError
from reviewmap.main import create_app
from reviewmap.schemas.places import Place
from reviewmap.schemas.profiles import Author
from reviewmap.schemas.reviews import Comment, Review, Vote, VoteType
from reviewmap.schemas.routes import Coordinate, RouteResult
from reviewmap.services.routing import RouteResolver

STORAGE = "https://proj.supabase.co/storage/v1/object/public/"
T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeStore:
    """In-memory stand-in for SupabaseStore that records every remote call."""

    def __init__(self) -> None:
        self.reviews: dict[str, Review] = {}
        self.places: list[Place] = []
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.unsignable: set[str] = set()
        self._next_id = 100

    def _call(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise BackendError(f"{name} failed")

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def as_user(self, access_token: str) -> "FakeStore":
        return self

    async def aclose(self) -> None:
        return None

    async def fetch_feed_reviews(self) -> list[Review]:
        self._call("fetch_feed_reviews")
        return sorted(self.reviews.values(), key=lambda r: r.created_at or T0, reverse=True)

    async def fetch_review(self, review_id: str) -> Review | None:
        self._call("fetch_review", review_id)
        return self.reviews.get(review_id)

    async def fetch_place_reviews(self, place_id: str) -> list[Review]:
        self._call("fetch_place_reviews", place_id)
        return [r for r in self.reviews.values() if r.place and r.place.id == place_id]

    async def fetch_places(self) -> list[Place]:
        self._call("fetch_places")
        return list(self.places)

    async def fetch_reviewed_place_ids(self) -> set[str]:
        self._call("fetch_reviewed_place_ids")
        return {r.place.id for r in self.reviews.values() if r.place}

    async def find_vote(self, review_id: str, user_id: str) -> Vote | None:
        self._call("find_vote", review_id, user_id)
        return self.reviews[review_id].vote_of(user_id)

    def _replace_votes(self, review_id: str, votes: list[Vote]) -> None:
        self.reviews[review_id] = self.reviews[review_id].model_copy(update={"votes": votes})

    async def insert_vote(self, review_id: str, user_id: str, vote_type: VoteType) -> Vote:
        self._call("insert_vote", review_id, user_id, vote_type)
        vote = Vote(id=self._new_id(), review_id=review_id, user_id=user_id, type=vote_type)
        self._replace_votes(review_id, [*self.reviews[review_id].votes, vote])
        return vote

    async def update_vote(self, vote_id: str, vote_type: VoteType) -> Vote:
        self._call("update_vote", vote_id, vote_type)
        for review in self.reviews.values():
            for vote in review.votes:
                if vote.id == vote_id:
                    updated = vote.model_copy(update={"type": vote_type})
                    self._replace_votes(review.id, [updated if v.id == vote_id else v for v in review.votes])
                    return updated
        raise BackendError("vote update matched no row")

    async def delete_vote(self, vote_id: str) -> None:
        self._call("delete_vote", vote_id)
        for review in list(self.reviews.values()):
            if any(v.id == vote_id for v in review.votes):
                self._replace_votes(review.id, [v for v in review.votes if v.id != vote_id])
                return
        raise BackendError("vote delete matched no row")

    async def insert_comment(self, review_id: str, user_id: str, content: str) -> Comment:
        self._call("insert_comment", review_id, user_id, content)
        comment = Comment(
            id=self._new_id(),
            review_id=review_id,
            user_id=user_id,
            content=content,
            created_at=T0 + timedelta(days=30),
            author=Author(id=user_id, username="@commenter", avatar_url=STORAGE + "avatars/commenter.png"),
        )
        review = self.reviews[review_id]
        self.reviews[review_id] = review.model_copy(update={"comments": [comment, *review.comments]})
        return comment

    async def create_signed_url(self, bucket: str, object_path: str, expires_in: int) -> str:
        self._call("create_signed_url", bucket, object_path, expires_in)
        if f"{bucket}/{object_path}" in self.unsignable:
            raise RuntimeError("Object not found")
        return f"https://signed.example/{bucket}/{object_path}?token=t&expires={expires_in}"


def make_review(
    review_id: str,
    *,
    author_id: str = "author-x",
    content: str = "",
    place_name: str = "Somewhere",
    hashtags: list[str] | None = None,
    likes: int = 0,
    dislikes: int = 0,
    days: int = 0,
    lat: float | None = 9.93,
    lng: float | None = -84.08,
) -> Review:
    votes = [
        Vote(id=f"{review_id}-l{i}", review_id=review_id, user_id=f"liker-{i}", type=VoteType.like)
        for i in range(likes)
    ] + [
        Vote(id=f"{review_id}-d{i}", review_id=review_id, user_id=f"hater-{i}", type=VoteType.dislike)
        for i in range(dislikes)
    ]
    return Review(
        id=review_id,
        content=content,
        rating=4.5,
        created_at=T0 + timedelta(days=days),
        author=Author(id=author_id, username=f"@{author_id}", avatar_url=STORAGE + f"avatars/{author_id}.png"),
        place=Place(id=f"place-{review_id}", name=place_name, address="Av. Central", latitude=lat, longitude=lng),
        hashtags=hashtags or [],
        images=[STORAGE + f"review-images/{review_id}/cover.jpg"],
        votes=votes,
    )


class StubRouteResolver(RouteResolver):
    """Answers every route with a fixed three-point path."""

    async def fetch_route(self, origin: Coordinate, destination: Coordinate):
        return RouteResult(
            coordinates=[origin.as_pair(), (9.95, -84.05), destination.as_pair()],
            distance_km=3.2,
        )


def make_token(user_id: str, *, secret: str = "test-jwt-secret") -> str:
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    return jwt.encode({"sub": user_id, "aud": "authenticated", "exp": exp}, secret, algorithm="HS256")


def auth_header(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def app(store):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_route_resolver] = lambda: StubRouteResolver()
    return app


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c
