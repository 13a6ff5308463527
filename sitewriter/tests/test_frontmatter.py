"""Front-matter codec: parsing, in-place rewrites and filename dates."""

from datetime import date

import pytest

from sitewriter.core.errors import ValidationError
from sitewriter.features.frontmatter import codec


NOTE = (
    "---\n"
    "date: 2024-03-01T10:00:00.000Z\n"
    "tags:\n"
    "  - life\n"
    "  - travel\n"
    "location: Lisbon\n"
    "lang: en\n"
    "---\n"
    "\n"
    "Walked along the river.\n"
)


def test_parse_scalars_and_lists():
    parsed = codec.parse(NOTE)
    assert parsed.metadata["date"] == "2024-03-01T10:00:00.000Z"
    assert parsed.metadata["tags"] == ["life", "travel"]
    assert parsed.metadata["location"] == "Lisbon"
    assert parsed.body == "\nWalked along the river.\n"


def test_parse_without_block_returns_whole_text_as_body():
    parsed = codec.parse("just text\n")
    assert parsed.metadata == {}
    assert parsed.body == "just text\n"


def test_parse_unterminated_block_is_body():
    raw = "---\ntitle: Oops\nno closing delimiter\n"
    parsed = codec.parse(raw)
    assert parsed.metadata == {}
    assert parsed.body == raw


def test_bare_key_without_items_is_empty_string():
    parsed = codec.parse("---\ntags:\ntitle: Hi\n---\nbody")
    assert parsed.metadata["tags"] == ""
    assert parsed.metadata["title"] == "Hi"


def test_flatten_joins_lists():
    flat = codec.flatten(codec.parse(NOTE).metadata)
    assert flat["tags"] == "life,travel"
    assert flat["lang"] == "en"


def test_serialize_omits_empty_values():
    text = codec.serialize({"title": "Hello", "tags": ["a", "b"], "location": None, "albums": []}, "Body\n")
    assert text == "---\ntitle: Hello\ntags:\n  - a\n  - b\n---\nBody\n"


def test_serialize_renders_booleans():
    text = codec.serialize({"featured": True}, "")
    assert "featured: true" in text


def test_update_rewrites_only_changed_keys():
    updated = codec.update(NOTE, {"tags": ["home"]})
    assert updated == (
        "---\n"
        "date: 2024-03-01T10:00:00.000Z\n"
        "tags:\n"
        "  - home\n"
        "location: Lisbon\n"
        "lang: en\n"
        "---\n"
        "\n"
        "Walked along the river.\n"
    )


def test_update_removes_key_set_to_none():
    updated = codec.update(NOTE, {"location": None})
    assert "location" not in updated
    assert "lang: en" in updated


def test_update_appends_new_keys_at_end_of_block():
    raw = "---\ndate: 2024-01-01\n---\nbody"
    updated = codec.update(raw, {"location": "Porto"})
    assert updated == "---\ndate: 2024-01-01\nlocation: Porto\n---\nbody"


def test_update_drops_duplicate_keys():
    raw = "---\ntags:\n  - a\ntitle: x\ntags:\n  - b\n---\nbody"
    updated = codec.update(raw, {"tags": ["c"]})
    assert updated == "---\ntags:\n  - c\ntitle: x\n---\nbody"


def test_update_keeps_unknown_lines_verbatim():
    raw = "---\n# comment line\nweird line without colon\ntitle: x\n---\nbody"
    updated = codec.update(raw, {"title": "y"})
    assert "# comment line\n" in updated
    assert "weird line without colon\n" in updated
    assert "title: y\n" in updated


def test_update_without_block_prepends_serialized_block():
    assert codec.update("body", {"tags": ["x"]}) == "---\ntags:\n  - x\n---\nbody"
    assert codec.update("body", {"tags": []}) == "body"


def test_update_preserves_crlf_line_endings():
    raw = "---\r\ntitle: a\r\n---\r\nbody"
    updated = codec.update(raw, {"title": "b"})
    assert updated == "---\r\ntitle: b\r\n---\r\nbody"


def test_replace_body_keeps_block_bytes():
    replaced = codec.replace_body(NOTE, "\nNew text\n")
    block = NOTE.split("---\n\n")[0]
    assert replaced.startswith(block)
    assert replaced.endswith("---\n\nNew text\n")


def test_extract_date_from_prefix():
    assert codec.extract_date("2024-05-01-my-post.md") == "2024-05-01"
    assert codec.extract_date("_posts/2023.12.31-year-end.md") == "2023-12-31"


def test_extract_date_falls_back_to_today():
    assert codec.extract_date("no-date.md", today=date(2025, 1, 2)) == "2025-01-02"


def test_mixed_separators_are_not_a_date():
    assert codec.extract_date("2024-05.01-post.md", today=date(2025, 1, 2)) == "2025-01-02"


def test_strip_date_prefix():
    assert codec.strip_date_prefix("2024-05-01-hello-world") == "hello-world"
    assert codec.strip_date_prefix("hello") == "hello"


def test_published_post_detection():
    assert codec.is_published_post("---\ntitle: a\nfeature: 3\n---\nbody")
    assert codec.is_published_post("---\nfeature: 0\n---\n")
    assert not codec.is_published_post("---\ntitle: a\n---\nfeature: 3\n")
    assert not codec.is_published_post("---\nfeature: soon\n---\n")
    assert not codec.is_published_post("no block")


@pytest.mark.parametrize(
    "metadata, body",
    [
        ({"title": "Hello", "lang": "en"}, "Body\n"),
        ({"tags": ["life", "travel"], "location": "Lisbon"}, "\nWalked along the river.\n"),
        ({"caption": "", "tags": ["solo"]}, "text"),
        ({"date": "2024-03-01T10:00:00.000Z", "title": "- not a list"}, ""),
        ({"header_image": "a: b", "tags": ["x: y", "- z"]}, "line one\r\nline two\r\n"),
        ({}, "no metadata at all\n"),
    ],
)
def test_serialize_then_parse_gives_back_metadata_and_body(metadata, body):
    parsed = codec.parse(codec.serialize(metadata, body))
    assert parsed.metadata == metadata
    assert parsed.body == body


@pytest.mark.parametrize("key", ["header.image", "og:image", "with space", "", "-lead"])
def test_serialize_rejects_keys_outside_the_grammar(key):
    with pytest.raises(ValidationError):
        codec.serialize({key: "x"}, "body\n")


@pytest.mark.parametrize(
    "value",
    ["  padded  ", "trailing ", "a\nb", "Lisbon\nlang: xx", "x\n---\ny", "carriage\rreturn", "Lisbon\u2028lang: xx", "form\x0cfeed", ["ok", " lead"], ["a\nb"]],
)
def test_serialize_rejects_values_that_would_not_parse_back(value):
    with pytest.raises(ValidationError):
        codec.serialize({"title": value}, "body\n")


def test_update_rejects_bad_values_before_rewriting():
    with pytest.raises(ValidationError):
        codec.update(NOTE, {"tags": ["home"], "location": "Lisbon\nlang: xx"})
    with pytest.raises(ValidationError):
        codec.update("body only", {"location": "x\r\ny"})
    with pytest.raises(ValidationError):
        codec.update(NOTE, {"og:image": None})
