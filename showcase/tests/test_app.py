import unittest

from fastapi.testclient import TestClient

from showcase.app import create_app
from showcase.media import InMemoryMediaClient
from showcase.store import InMemoryResourceStore, UnconfiguredResourceStore
from showcase.tests.helpers import (
    ADMIN_HEADERS,
    make_services,
    make_settings,
    resource_payload,
    ticking_clock,
)


class ResourceApiTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryResourceStore(clock=ticking_clock())
        self.media = InMemoryMediaClient()
        self.services = make_services(store=self.store, media=self.media)
        self.client = TestClient(create_app(services=self.services))

    def _create(self, **overrides) -> str:
        response = self.client.post(
            "/api/resources", json=resource_payload(**overrides), headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["id"]

    def test_create_then_get_roundtrip(self):
        response = self.client.post(
            "/api/resources", json=resource_payload(), headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["message"], "Resource created successfully")

        got = self.client.get(f"/api/resources/{payload['id']}")
        self.assertEqual(got.status_code, 200)
        body = got.json()
        self.assertEqual(body["id"], payload["id"])
        for key, value in resource_payload().items():
            self.assertEqual(body[key], value)
        self.assertIn("createdAt", body)

    def test_create_defaults_optional_fields(self):
        payload = resource_payload()
        for key in ("tags", "isPublished", "featured"):
            payload.pop(key)
        response = self.client.post("/api/resources", json=payload, headers=ADMIN_HEADERS)
        self.assertEqual(response.status_code, 201)

        resource = self.store.get(response.json()["id"])
        self.assertEqual(resource.tags, [])
        self.assertFalse(resource.is_published)
        self.assertFalse(resource.featured)

    def test_create_requires_bearer_token(self):
        response = self.client.post("/api/resources", json=resource_payload())
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "No valid authorization header"})

        response = self.client.post(
            "/api/resources",
            json=resource_payload(),
            headers={"Authorization": "Bearer wrong"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Invalid token"})
        self.assertEqual(self.store.resources, {})

    def test_create_reports_first_missing_field(self):
        payload = resource_payload()
        del payload["mediaUrl"]
        del payload["category"]
        response = self.client.post("/api/resources", json=payload, headers=ADMIN_HEADERS)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Missing required field: mediaUrl"})

    def test_create_rejects_unknown_media_type(self):
        response = self.client.post(
            "/api/resources",
            json=resource_payload(mediaType="audio"),
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"error": 'mediaType must be either "image" or "video"'}
        )
        self.assertEqual(self.store.resources, {})

    def test_create_rejects_unknown_category(self):
        response = self.client.post(
            "/api/resources",
            json=resource_payload(category="games"),
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["error"].startswith("category must be one of:"))

    def test_create_rejects_relative_url(self):
        response = self.client.post(
            "/api/resources",
            json=resource_payload(resourceUrl="/hooks"),
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("resourceUrl", response.json()["error"])

    def test_get_missing_resource(self):
        response = self.client.get("/api/resources/does-not-exist")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Resource not found"})

    def test_partial_update_only_touches_sent_fields(self):
        resource_id = self._create()
        before = self.store.get(resource_id)

        response = self.client.put(
            f"/api/resources/{resource_id}",
            json={"featured": True},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Resource updated successfully"})

        expected = before.as_dict()
        expected["featured"] = True
        self.assertFalse(before.featured)
        self.assertEqual(self.store.get(resource_id).as_dict(), expected)

    def test_partial_update_of_publish_flag(self):
        resource_id = self._create(featured=True)
        before = self.store.get(resource_id).as_dict()

        response = self.client.put(
            f"/api/resources/{resource_id}",
            json={"isPublished": False},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 200)

        expected = dict(before, is_published=False)
        self.assertEqual(self.store.get(resource_id).as_dict(), expected)

    def test_malformed_body_without_credentials_is_401(self):
        resource_id = self._create()
        before = self.store.get(resource_id).as_dict()
        headers = {"Content-Type": "application/json"}

        requests = (
            ("post", "/api/resources"),
            ("put", f"/api/resources/{resource_id}"),
            ("post", "/api/media/delete"),
            ("post", "/api/media/upload-ticket"),
        )
        for method, path in requests:
            response = self.client.request(
                method, path, content="{not json", headers=headers
            )
            self.assertEqual(response.status_code, 401, path)
            self.assertEqual(
                response.json(), {"error": "No valid authorization header"}
            )
        self.assertEqual(len(self.store.resources), 1)
        self.assertEqual(self.store.get(resource_id).as_dict(), before)

    def test_malformed_update_body_with_credentials_is_400(self):
        resource_id = self._create()
        response = self.client.put(
            f"/api/resources/{resource_id}",
            content="{not json",
            headers={**ADMIN_HEADERS, "Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid JSON body"})

    def test_update_requires_object_body(self):
        resource_id = self._create()
        response = self.client.put(
            f"/api/resources/{resource_id}", json=["featured"], headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"error": "Request body must be a JSON object"}
        )

    def test_update_rejects_bad_enum_and_keeps_record(self):
        resource_id = self._create()
        response = self.client.put(
            f"/api/resources/{resource_id}",
            json={"mediaType": "gif", "title": "Changed"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.get(resource_id).title, "React Hooks Guide")

    def test_update_missing_resource_is_404(self):
        response = self.client.put(
            "/api/resources/nope", json={"title": "x"}, headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 404)

    def test_update_requires_auth(self):
        resource_id = self._create()
        response = self.client.put(f"/api/resources/{resource_id}", json={"title": "x"})
        self.assertEqual(response.status_code, 401)

    def test_delete_requires_auth(self):
        resource_id = self._create()
        response = self.client.delete(f"/api/resources/{resource_id}")
        self.assertEqual(response.status_code, 401)
        self.assertIn(resource_id, self.store.resources)

    def test_delete_is_idempotent(self):
        resource_id = self._create()
        for _ in range(2):
            response = self.client.delete(
                f"/api/resources/{resource_id}", headers=ADMIN_HEADERS
            )
            self.assertEqual(response.status_code, 200)
            self.assertEqual(
                response.json(), {"message": "Resource deleted successfully"}
            )
        self.assertEqual(self.client.get(f"/api/resources/{resource_id}").status_code, 404)

    def test_public_listing_hides_unpublished(self):
        published = self._create(title="Visible")
        self._create(title="Draft", isPublished=False)

        response = self.client.get("/api/resources")
        self.assertEqual(response.status_code, 200)
        ids = [r["id"] for r in response.json()["resources"]]
        self.assertEqual(ids, [published])
        self.assertFalse(response.json()["hasMore"])

    def test_pagination_walks_every_item_once(self):
        created = [self._create(title=f"Item {i}") for i in range(5)]

        seen, sizes, cursor = [], [], None
        while True:
            params = {"limit": 2}
            if cursor:
                params["cursor"] = cursor
            body = self.client.get("/api/resources", params=params).json()
            sizes.append(len(body["resources"]))
            seen.extend(r["id"] for r in body["resources"])
            if not body["hasMore"]:
                self.assertNotIn("nextCursor", body)
                break
            cursor = body["nextCursor"]

        self.assertEqual(sizes, [2, 2, 1])
        self.assertEqual(seen, list(reversed(created)))

    def test_listing_filters_by_category_and_search(self):
        self._create(title="React Hooks Guide", category="development")
        self._create(title="Figma Kit", category="design", tags=["ui"])

        body = self.client.get("/api/resources", params={"search": "reac"}).json()
        self.assertEqual([r["title"] for r in body["resources"]], ["React Hooks Guide"])

        body = self.client.get("/api/resources", params={"search": "xyz"}).json()
        self.assertEqual(body["resources"], [])

        body = self.client.get("/api/resources", params={"category": "design"}).json()
        self.assertEqual([r["title"] for r in body["resources"]], ["Figma Kit"])

        body = self.client.get("/api/resources", params={"category": "all"}).json()
        self.assertEqual(len(body["resources"]), 2)

    def test_search_matches_on_tag_alone(self):
        tagged = self._create(title="Foo", description="A small utility", tags=["react"])
        self._create(title="Bar", description="A small utility", tags=["vue"])

        body = self.client.get("/api/resources", params={"search": "reac"}).json()
        self.assertEqual([r["id"] for r in body["resources"]], [tagged])
        body = self.client.get("/api/resources", params={"search": "xyz"}).json()
        self.assertEqual(body["resources"], [])

        body = self.client.get("/api/resources/search", params={"q": "reac"}).json()
        self.assertEqual([r["id"] for r in body["resources"]], [tagged])
        body = self.client.get("/api/resources/search", params={"q": "xyz"}).json()
        self.assertEqual(body["resources"], [])

    def test_invalid_cursor_is_rejected(self):
        response = self.client.get("/api/resources", params={"cursor": "%%%"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid cursor"})

    def test_invalid_limit_is_rejected(self):
        response = self.client.get("/api/resources", params={"limit": 0})
        self.assertEqual(response.status_code, 400)
        self.assertIn("limit", response.json()["error"])

    def test_featured_listing(self):
        self._create(title="Plain")
        starred = self._create(title="Starred", featured=True)
        self._create(title="Hidden star", featured=True, isPublished=False)

        body = self.client.get("/api/resources", params={"featured": "true"}).json()
        self.assertEqual([r["id"] for r in body["resources"]], [starred])
        self.assertNotIn("hasMore", body)

    def test_admin_listing_includes_drafts_and_requires_auth(self):
        self._create(title="Visible")
        self._create(title="Draft", isPublished=False)

        response = self.client.get("/api/resources", params={"admin": "true"})
        self.assertEqual(response.status_code, 401)

        response = self.client.get(
            "/api/resources", params={"admin": "true"}, headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [r["title"] for r in response.json()["resources"]], ["Draft", "Visible"]
        )

    def test_search_endpoint(self):
        self._create(title="React Hooks Guide")
        self._create(title="Docker Basics", category="devops", tags=["containers"])

        response = self.client.get(
            "/api/resources/search", params={"q": "CONTAINER", "category": "devops"}
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([r["title"] for r in body["resources"]], ["Docker Basics"])
        self.assertEqual(body["query"], "CONTAINER")
        self.assertEqual(body["category"], "devops")

    def test_search_endpoint_requires_query(self):
        for params in ({}, {"q": "   "}):
            response = self.client.get("/api/resources/search", params=params)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json(), {"error": "Search query is required"})


class MediaApiTests(unittest.TestCase):
    def setUp(self):
        self.media = InMemoryMediaClient()
        self.client = TestClient(create_app(services=make_services(media=self.media)))

    def test_delete_requires_auth_by_default(self):
        self.media.stored_objects["portfolio/resources/a"] = b"data"
        response = self.client.post(
            "/api/media/delete", json={"publicId": "portfolio/resources/a"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertIn("portfolio/resources/a", self.media.stored_objects)

    def test_delete_media(self):
        self.media.stored_objects["portfolio/resources/a"] = b"data"
        response = self.client.post(
            "/api/media/delete",
            json={"publicId": "portfolio/resources/a"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Media deleted successfully"})
        self.assertEqual(self.media.stored_objects, {})

    def test_delete_media_requires_public_id(self):
        response = self.client.post("/api/media/delete", json={}, headers=ADMIN_HEADERS)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Public ID is required"})

    def test_delete_unknown_media_is_rejected(self):
        response = self.client.post(
            "/api/media/delete", json={"publicId": "missing"}, headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Failed to delete media from CDN"})

    def test_delete_without_auth_when_disabled(self):
        services = make_services(
            settings=make_settings(media_delete_requires_auth=False), media=self.media
        )
        client = TestClient(create_app(services=services))
        self.media.stored_objects["x"] = b"data"
        response = client.post("/api/media/delete", json={"publicId": "x"})
        self.assertEqual(response.status_code, 200)

    def test_upload_ticket(self):
        response = self.client.post(
            "/api/media/upload-ticket",
            json={"filename": "clip.mp4", "contentType": "video/mp4", "size": 1024},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["mediaType"], "video")
        self.assertTrue(body["url"].startswith("https://media.example.test"))
        self.assertTrue(body["publicUrl"].endswith(body["publicId"]))

    def test_uploaded_media_can_be_removed(self):
        ticket = self.client.post(
            "/api/media/upload-ticket",
            json={"filename": "cover.png", "contentType": "image/png"},
            headers=ADMIN_HEADERS,
        ).json()

        response = self.client.post(
            "/api/media/delete",
            json={"publicId": ticket["publicId"]},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 200)
        self.assertNotIn(ticket["publicId"], self.media.stored_objects)

    def test_delete_media_with_empty_body(self):
        response = self.client.post("/api/media/delete", headers=ADMIN_HEADERS)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Public ID is required"})

    def test_upload_ticket_rejects_unsupported_format(self):
        response = self.client.post(
            "/api/media/upload-ticket",
            json={"filename": "notes.pdf", "contentType": "application/pdf"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Unsupported file format", response.json()["error"])

    def test_upload_ticket_requires_auth(self):
        response = self.client.post(
            "/api/media/upload-ticket", json={"filename": "a.png"}
        )
        self.assertEqual(response.status_code, 401)


class AppSurfaceTests(unittest.TestCase):
    def test_client_config(self):
        settings = make_settings(
            firebase_web_api_key="web-key", firebase_project_id="demo-project"
        )
        client = TestClient(create_app(services=make_services(settings=settings)))
        body = client.get("/api/client-config").json()
        self.assertEqual(body["apiPrefix"], "/api")
        self.assertEqual(body["firebase"]["apiKey"], "web-key")
        self.assertEqual(body["firebase"]["projectId"], "demo-project")
        self.assertIn("design", body["categories"])
        self.assertEqual(body["mediaTypes"], ["image", "video"])
        self.assertEqual(body["pageSize"], 12)
        self.assertTrue(body["mediaDeleteRequiresAuth"])

    def test_pages_carry_api_prefix(self):
        settings = make_settings(api_prefix="/v1")
        client = TestClient(create_app(services=make_services(settings=settings)))
        for path in ("/", "/resources", "/admin"):
            response = client.get(path)
            self.assertEqual(response.status_code, 200)
            self.assertIn('content="/v1"', response.text)
        self.assertEqual(client.get("/v1/resources").status_code, 200)
        self.assertEqual(client.get("/static/js/api.js").status_code, 200)

    def test_unconfigured_store_degrades(self):
        services = make_services(store=UnconfiguredResourceStore())
        client = TestClient(create_app(services=services))

        response = client.get("/api/resources")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["resources"], [])

        response = client.post(
            "/api/resources", json=resource_payload(), headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Resource store is not available"})

    def test_malformed_json_body(self):
        client = TestClient(create_app(services=make_services()))
        response = client.post(
            "/api/resources",
            content="{not json",
            headers={**ADMIN_HEADERS, "Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid JSON body"})


if __name__ == "__main__":
    unittest.main()
