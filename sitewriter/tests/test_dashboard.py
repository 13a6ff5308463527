"""Dashboard read model: counts, recent lists and the activity timeline."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from sitewriter.core.errors import ValidationError
from sitewriter.features.dashboard import read_model

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _days_ago(days):
    return (NOW - timedelta(days=days)).isoformat().replace("+00:00", "Z")


NOTES = [
    {"name": "a.md", "path": "_notes/a.md", "date": _days_ago(1), "tags": "life,travel", "body": "note a"},
    {"name": "b.md", "path": "_notes/b.md", "date": _days_ago(40), "tags": "life", "body": ""},
]
POSTS = [{"name": "2024-06-20-trip.md", "path": "_posts/2024-06-20-trip.md", "date": "2024-06-20", "title": "Trip"}]
STORIES = [
    {"id": "s1", "uploaded": _days_ago(3), "meta": {"caption": "Beach", "tags": ["sea", "summer"]}, "variants": ["p", "t"]},
    {"id": "s2", "uploaded": _days_ago(100), "meta": {"tags": ["sea"]}, "thumbnail": "vt", "playback": {"hls": "h"}},
]
PHOTOS = [
    {"id": "p1", "uploaded": _days_ago(20), "meta": {"alt": "Tower", "albums": ["paris", "night"]}, "variants": ["p", "t"]},
]


def test_count_distinct_unions_lists():
    assert read_model.count_distinct(STORIES, "tags") == 2
    assert read_model.count_distinct(PHOTOS, "albums") == 2
    assert read_model.count_distinct([{"meta": {}}], "tags") == 0


def test_recent_is_newest_first_and_stable():
    entries = [
        {"id": "old", "uploaded": "2024-01-01T00:00:00Z"},
        {"id": "tie-1", "uploaded": "2024-03-01T00:00:00Z"},
        {"id": "tie-2", "uploaded": "2024-03-01T00:00:00Z"},
        {"id": "undated"},
    ]
    assert [e["id"] for e in read_model.recent(entries, 3)] == ["tie-1", "tie-2", "old"]


def test_note_tag_index():
    assert read_model.note_tag_index(NOTES) == ["life", "travel"]


def test_activity_all_time_is_merged_newest_first():
    feed = read_model.activity_feed(NOTES, POSTS, STORIES, PHOTOS, now=NOW, limit=10)
    assert [e["type"] for e in feed] == ["note", "story", "post", "photo", "note", "story"]
    assert feed[0]["title"] == "note a"
    assert feed[0]["tags"] == ["life", "travel"]
    assert feed[1]["subtitle"] == "sea, summer"
    assert feed[-1]["thumbnail_url"] == "vt"


def test_activity_window_and_type_filter():
    week = read_model.activity_feed(NOTES, POSTS, STORIES, PHOTOS, window=7, now=NOW)
    assert [e["type"] for e in week] == ["note", "story"]

    photos = read_model.activity_feed(NOTES, POSTS, STORIES, PHOTOS, window=30, kind="photo", now=NOW)
    assert [e["title"] for e in photos] == ["Tower"]


def test_activity_limit():
    assert len(read_model.activity_feed(NOTES, POSTS, STORIES, PHOTOS, now=NOW, limit=2)) == 2


def test_empty_note_title():
    feed = read_model.activity_feed([NOTES[1]], [], [], [], now=NOW)
    assert feed[0]["title"] == "Empty note"
    assert feed[0]["filename"] == "b"


@pytest.mark.parametrize("kwargs", [{"window": 14}, {"kind": "video"}])
def test_activity_rejects_unknown_filters(kwargs):
    with pytest.raises(ValidationError):
        read_model.activity_feed([], [], [], [], **kwargs)


def test_parse_timestamp_floor():
    assert read_model.parse_timestamp("not a date") < read_model.parse_timestamp("1970-01-01")
    assert read_model.parse_timestamp(None) == read_model.parse_timestamp("")


class TestDashboardAPI:
    def _seed(self, fake_github):
        fake_github.seed("_notes/2024-06-29-100000.md", "---\ntags:\n  - life\n---\n\nHello\n")
        fake_github.seed("_posts/2024-06-20-trip.md", "---\ntitle: Trip\nfeature: 1\n---\nbody")
        fake_github.seed("_posts/2024-06-21-wip.md", "---\ntitle: WIP\n---\nbody")
        fake_github.seed("_data/stories.json", json.dumps(STORIES))
        fake_github.seed("_data/photos.json", json.dumps(PHOTOS))

    def test_stats(self, client, fake_github):
        self._seed(fake_github)
        response = client.get("/api/dashboard/stats")
        assert response.status_code == 200
        body = response.json()
        assert body["stats"] == {
            "notes": 1,
            "posts": 2,
            "published_posts": 1,
            "stories": 2,
            "story_tags": 2,
            "photos": 1,
            "photo_albums": 2,
        }
        assert body["recent"]["notes"][0]["date"] == "2024-06-29"
        assert body["recent"]["posts"][0]["title"] == "WIP"
        assert body["note_tags"] == ["life"]

    def test_stats_with_nothing_published(self, client):
        body = client.get("/api/dashboard/stats").json()
        assert body["stats"]["notes"] == 0
        assert body["stats"]["photos"] == 0
        assert body["recent"]["stories"] == []

    def test_activity_all(self, client, fake_github):
        self._seed(fake_github)
        response = client.get("/api/dashboard/activity", params={"all": "true", "type": "post"})
        assert response.status_code == 200
        assert [e["title"] for e in response.json()["items"]] == ["WIP", "Trip"]

    def test_activity_bad_window(self, client):
        response = client.get("/api/dashboard/activity", params={"window": 5})
        assert response.status_code == 400
