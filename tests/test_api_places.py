import pytest

from conftest import make_review
from reviewmap.core.deps import get_route_resolver
from reviewmap.schemas.places import Place
from reviewmap.services.routing import RouteResolver


def test_map_lists_only_places_with_coordinates(client, store):
    reviewed = make_review("r1")
    store.reviews[reviewed.id] = reviewed
    store.places = [
        reviewed.place,
        Place(id="p2", name="Parque", latitude=9.92, longitude=-84.07),
        Place(id="p3", name="Sin mapa", latitude=None, longitude=-84.0),
    ]

    r = client.get("/places/map")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total"] == 2
    flags = {p["id"]: p["has_reviews"] for p in body["items"]}
    assert flags == {"place-r1": True, "p2": False}


def test_map_survives_missing_review_flags(client, store):
    store.places = [Place(id="p2", name="Parque", latitude=9.92, longitude=-84.07)]
    store.fail.add("fetch_reviewed_place_ids")

    r = client.get("/places/map")
    assert r.status_code == 200, r.text
    assert r.json()["items"][0]["has_reviews"] is False


def test_map_places_failure_is_reported(client, store):
    store.fail.add("fetch_places")
    r = client.get("/places/map")
    assert r.status_code == 502


def test_place_reviews_sign_author_avatars(client, store):
    review = make_review("r1", author_id="ana")
    store.reviews[review.id] = review

    r = client.get("/places/place-r1/reviews")
    assert r.status_code == 200, r.text
    items = r.json()["items"]
    assert len(items) == 1
    assert items[0]["author"]["avatar_url"].startswith("https://signed.example/avatars/ana.png")


@pytest.fixture()
def offline_client(app, client):
    app.dependency_overrides[get_route_resolver] = lambda: RouteResolver(
        base_url="http://127.0.0.1:9/route/v1/driving", timeout_seconds=2
    )
    return client


def test_route_endpoint_falls_back_when_routing_is_down(offline_client):
    r = offline_client.get(
        "/route",
        params={"origin_lat": 0.0, "origin_lng": 0.0, "dest_lat": 1.0, "dest_lng": 0.0},
    )
    assert r.status_code == 200, r.text
    route = r.json()["route"]
    assert route["coordinates"] == [[0.0, 0.0], [1.0, 0.0]]
    assert route["distance_km"] == pytest.approx(111.19, abs=0.05)
    assert route["approximate"] is True


def test_route_endpoint_validates_latitude(client):
    r = client.get("/route", params={"dest_lat": 123.0, "dest_lng": 0.0})
    assert r.status_code == 422


def test_health_reports_unconfigured_data_service(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "data_service": False}
