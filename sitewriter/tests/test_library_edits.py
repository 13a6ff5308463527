"""
Direct edits of published notes and collection items.

The lock token captured at load time must match the remote copy; on a
mismatch nothing is written and the remote stays byte-identical.
"""

import json

import pytest

from sitewriter.core.errors import ConflictError, NotFoundError, ValidationError
from sitewriter.features.library.service import ContentLibrary, post_title

NOTE_PATH = "_notes/2024-03-01-103000.md"
NOTE = "---\ndate: 2024-03-01T10:30:00.000Z\ntags:\n  - life\nlocation: Lisbon\n---\n\nRiver walk.\n"

STORIES = [
    {"id": "s1", "uploaded": "2024-05-01T10:00:00.000Z", "filename": "a.png",
     "meta": {"alt": "A", "caption": "First", "tags": ["x"]}, "variants": ["p", "t"]},
    {"id": "s2", "uploaded": "2024-05-02T10:00:00.000Z", "filename": "b.mp4",
     "meta": {"tags": ["y"], "url": "hls", "title": "Clip"}, "playback": {"hls": "hls"}, "thumbnail": "th"},
]
PHOTOS = [
    {"id": "p1", "uploaded": "2024-04-01T10:00:00.000Z", "filename": "c.png",
     "meta": {"alt": "Tower", "albums": ["paris"], "featured": False, "caption": None, "location": None}},
    {"id": "p2", "uploaded": "2024-04-02T10:00:00.000Z", "filename": "d.png",
     "meta": {"alt": "Bridge", "albums": ["paris"], "featured": False}},
]


@pytest.fixture
def library(gateway):
    return ContentLibrary(gateway)


class TestListings:
    @pytest.mark.asyncio
    async def test_list_notes(self, library, fake_github):
        sha = fake_github.seed(NOTE_PATH, NOTE)
        fake_github.seed("_notes/readme.txt", "not a note")

        notes = await library.list_notes()

        assert len(notes) == 1
        note = notes[0]
        assert note["name"] == "2024-03-01-103000.md"
        assert note["sha"] == sha
        assert note["tags"] == "life"
        assert note["location"] == "Lisbon"
        assert note["body"] == "River walk."
        assert note["content"] == NOTE

    @pytest.mark.asyncio
    async def test_list_posts(self, library, fake_github):
        fake_github.seed("_posts/2024-05-01-road-trip.md", "---\ntitle: Road Trip\nfeature: 2\n---\nbody")
        fake_github.seed("_posts/2024-06-01-untitled-draft.md", "---\nlayout: default\n---\nbody")

        posts = {p["name"]: p for p in await library.list_posts()}

        trip = posts["2024-05-01-road-trip.md"]
        assert trip["title"] == "Road Trip"
        assert trip["date"] == "2024-05-01"
        assert trip["published"] is True
        draft = posts["2024-06-01-untitled-draft.md"]
        assert draft["title"] == "untitled draft"
        assert draft["published"] is False

    def test_post_title_from_filename(self):
        assert post_title("2024-05-01-hello-world.md") == "hello world"
        assert post_title("plain.md") == "plain"


class TestNoteEdits:
    @pytest.mark.asyncio
    async def test_update_note_rewrites_tags_and_body(self, library, fake_github):
        sha = fake_github.seed(NOTE_PATH, NOTE)

        new_sha = await library.update_note(NOTE_PATH, sha, content="Updated walk.", tags=["life", "city"])

        assert new_sha != sha
        assert fake_github.body(NOTE_PATH) == (
            "---\ndate: 2024-03-01T10:30:00.000Z\ntags:\n  - life\n  - city\nlocation: Lisbon\n---\n\nUpdated walk."
        )

    @pytest.mark.asyncio
    async def test_clearing_location_removes_the_key(self, library, fake_github):
        sha = fake_github.seed(NOTE_PATH, NOTE)
        await library.update_note(NOTE_PATH, sha, location="  ")
        body = fake_github.body(NOTE_PATH)
        assert "location" not in body
        assert body.endswith("---\n\nRiver walk.\n")

    @pytest.mark.asyncio
    async def test_stale_sha_conflicts_without_writing(self, library, fake_github):
        stale = fake_github.seed(NOTE_PATH, NOTE)
        fresh = await library.update_note(NOTE_PATH, stale, content="Someone else's edit")
        before = fake_github.body(NOTE_PATH)

        with pytest.raises(ConflictError):
            await library.update_note(NOTE_PATH, stale, content="My edit")

        assert fake_github.body(NOTE_PATH) == before
        assert fake_github.sha(NOTE_PATH) == fresh

    @pytest.mark.asyncio
    async def test_edit_requires_sha(self, library, fake_github):
        fake_github.seed(NOTE_PATH, NOTE)
        with pytest.raises(ValidationError):
            await library.update_note(NOTE_PATH, "", content="x")
        assert fake_github.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("location", ["Lisbon\nlang: xx", "Lisbon\n---\nhidden: yes", "Lisbon\r\nlang: xx"])
    async def test_multiline_location_is_rejected_without_writing(self, library, fake_github, location):
        sha = fake_github.seed(NOTE_PATH, NOTE)

        with pytest.raises(ValidationError):
            await library.update_note(NOTE_PATH, sha, location=location, content="Edited")

        assert fake_github.writes() == []
        assert fake_github.body(NOTE_PATH) == NOTE

    @pytest.mark.asyncio
    async def test_delete_note(self, library, fake_github):
        sha = fake_github.seed(NOTE_PATH, NOTE)
        await library.delete_note(NOTE_PATH, sha)
        assert ("site", NOTE_PATH) not in fake_github.files


class TestCollectionEdits:
    @pytest.mark.asyncio
    async def test_update_story_caption(self, library, fake_github):
        sha = fake_github.seed_json("_data/stories.json", STORIES)

        snapshot = await library.update_story("s2", sha, caption="New clip title")

        stored = json.loads(fake_github.body("_data/stories.json"))
        assert stored[1]["meta"]["caption"] == "New clip title"
        assert stored[1]["meta"]["title"] == "New clip title"
        assert stored[0] == STORIES[0]
        assert snapshot.lock_token == fake_github.sha("_data/stories.json")

    @pytest.mark.asyncio
    async def test_delete_story_shrinks_collection_by_one(self, library, fake_github):
        sha = fake_github.seed_json("_data/stories.json", STORIES)
        snapshot = await library.delete_story("s1", sha)
        stored = json.loads(fake_github.body("_data/stories.json"))
        assert [item["id"] for item in stored] == ["s2"]
        assert len(snapshot.items) == len(STORIES) - 1

    @pytest.mark.asyncio
    async def test_stale_collection_token_leaves_file_byte_identical(self, library, fake_github):
        stale = fake_github.seed_json("_data/photos.json", PHOTOS)
        await library.update_photo("p1", stale, caption="Concurrent edit")
        before = fake_github.body("_data/photos.json")

        with pytest.raises(ConflictError):
            await library.delete_photo("p2", stale)

        assert fake_github.body("_data/photos.json") == before
        assert len(json.loads(before)) == len(PHOTOS)

    @pytest.mark.asyncio
    async def test_unknown_item(self, library, fake_github):
        sha = fake_github.seed_json("_data/photos.json", PHOTOS)
        with pytest.raises(NotFoundError):
            await library.update_photo("nope", sha, caption="x")

    @pytest.mark.asyncio
    async def test_missing_collection(self, library):
        with pytest.raises(NotFoundError):
            await library.delete_story("s1", "some-sha")

    @pytest.mark.asyncio
    async def test_photo_edit_keeps_alt_and_albums_required(self, library, fake_github):
        sha = fake_github.seed_json("_data/photos.json", PHOTOS)
        with pytest.raises(ValidationError):
            await library.update_photo("p1", sha, alt="  ")
        with pytest.raises(ValidationError):
            await library.update_photo("p1", sha, albums=[""])
        assert fake_github.writes() == []

    @pytest.mark.asyncio
    async def test_photo_edit_fields(self, library, fake_github):
        sha = fake_github.seed_json("_data/photos.json", PHOTOS)
        await library.update_photo("p1", sha, albums=["paris", "night"], featured=True, location="Paris")
        meta = json.loads(fake_github.body("_data/photos.json"))[0]["meta"]
        assert meta["albums"] == ["paris", "night"]
        assert meta["featured"] is True
        assert meta["location"] == "Paris"
        assert meta["alt"] == "Tower"

    @pytest.mark.asyncio
    async def test_replace_collection(self, library, fake_github):
        sha = fake_github.seed_json("_data/photos.json", PHOTOS)
        reordered = [PHOTOS[1], PHOTOS[0]]
        new_sha = await library.replace_collection("photo", reordered, sha)
        assert json.loads(fake_github.body("_data/photos.json")) == reordered
        assert new_sha == fake_github.sha("_data/photos.json")

    @pytest.mark.asyncio
    async def test_replace_collection_rejects_non_objects(self, library):
        with pytest.raises(ValidationError):
            await library.replace_collection("story", ["not an object"], None)


class TestLibraryAPI:
    def test_list_notes_route(self, client, fake_github):
        fake_github.seed(NOTE_PATH, NOTE)
        response = client.get("/api/github/notes")
        assert response.status_code == 200
        assert response.json()[0]["path"] == NOTE_PATH

    def test_edit_note_route(self, client, fake_github):
        sha = fake_github.seed(NOTE_PATH, NOTE)
        response = client.put("/api/github/notes", json={"path": NOTE_PATH, "sha": sha, "content": "Edited"})
        assert response.status_code == 200
        assert response.json()["sha"] == fake_github.sha(NOTE_PATH)

    def test_conflict_route(self, client, fake_github):
        fake_github.seed(NOTE_PATH, NOTE)
        response = client.put("/api/github/notes", json={"path": NOTE_PATH, "sha": "stale", "content": "Edited"})
        assert response.status_code == 409
        body = response.json()
        assert body["error"]["code"] == "conflict"
        assert body["error"]["partial"] is False
        assert fake_github.body(NOTE_PATH) == NOTE

    def test_edit_note_route_rejects_injected_keys(self, client, fake_github):
        sha = fake_github.seed(NOTE_PATH, NOTE)
        response = client.put("/api/github/notes", json={"path": NOTE_PATH, "sha": sha, "location": "Lisbon\nlang: xx"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"
        assert fake_github.body(NOTE_PATH) == NOTE

    def test_delete_note_route(self, client, fake_github):
        sha = fake_github.seed(NOTE_PATH, NOTE)
        response = client.delete("/api/github/notes", params={"path": NOTE_PATH, "sha": sha})
        assert response.status_code == 200
        assert ("site", NOTE_PATH) not in fake_github.files

    def test_collection_routes(self, client, fake_github):
        sha = fake_github.seed_json("_data/stories.json", STORIES)

        listing = client.get("/api/github/stories").json()
        assert listing["sha"] == sha
        assert [item["id"] for item in listing["items"]] == ["s1", "s2"]

        patched = client.patch("/api/github/stories/s1", json={"sha": sha, "tags": ["z"]})
        assert patched.status_code == 200
        new_sha = patched.json()["sha"]
        assert patched.json()["items"][0]["meta"]["tags"] == ["z"]

        deleted = client.delete("/api/github/stories/s2", params={"sha": new_sha})
        assert deleted.status_code == 200
        assert [item["id"] for item in deleted.json()["items"]] == ["s1"]

    def test_empty_collection_has_no_sha(self, client):
        listing = client.get("/api/github/photos").json()
        assert listing == {"items": [], "sha": None}

    def test_unknown_collection(self, client):
        response = client.get("/api/github/videos")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_replace_collection_route(self, client, fake_github):
        sha = fake_github.seed_json("_data/photos.json", PHOTOS)
        response = client.put("/api/github/photos", json={"items": PHOTOS[:1], "sha": sha})
        assert response.status_code == 200
        assert len(json.loads(fake_github.body("_data/photos.json"))) == 1
