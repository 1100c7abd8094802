"""Tests for the resource library endpoints."""

RESOURCE = {
    "title": "Healthy Lunch Ideas",
    "description": "Simple lunchbox ideas that toddlers actually eat.",
    "resourceType": "article",
    "category": "nutrition",
    "tags": ["food"],
    "readingTime": 4,
}


class TestResourcesRouter:
    """Tests for /api/resources."""

    def test_create_and_fetch(self, client) -> None:
        """Resources are fetched by their derived slug."""
        created = client.post("/api/resources", json=RESOURCE)

        assert created.status_code == 201
        assert created.json()["slug"] == "healthy-lunch-ideas"

        response = client.get("/api/resources/healthy-lunch-ideas")

        assert response.status_code == 200
        assert response.json()["viewCount"] == 1

    def test_duplicate_slug(self, client) -> None:
        """A second resource with the same title conflicts."""
        client.post("/api/resources", json=RESOURCE)

        response = client.post("/api/resources", json=RESOURCE)

        assert response.status_code == 409

    def test_list_all_category(self, client) -> None:
        """The "all" category does not filter."""
        client.post("/api/resources", json=RESOURCE)
        client.post(
            "/api/resources",
            json={**RESOURCE, "title": "Sleep Routines", "category": "sleep"},
        )

        response = client.get("/api/resources", params={"category": "all"})

        assert response.json()["total"] == 2

        response = client.get(
            "/api/resources", params={"category": "sleep", "type": "article"}
        )

        assert response.json()["total"] == 1

    def test_deactivate(self, client) -> None:
        """Deactivated resources are gone from the library."""
        client.post("/api/resources", json=RESOURCE)

        assert client.delete("/api/resources/healthy-lunch-ideas").status_code == 204
        assert client.get("/api/resources/healthy-lunch-ideas").status_code == 404

    def test_missing(self, client) -> None:
        """Unknown slugs answer 404."""
        assert client.get("/api/resources/nothing-here").status_code == 404
