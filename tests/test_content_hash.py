import hashlib

from webinar.services.content_hash import audio_key, content_hash


def test_hash_is_deterministic() -> None:
    first = content_hash("deck-1", 2, 10, "Audit scope", "Intro", "Findings")
    second = content_hash("deck-1", 2, 10, "Audit scope", "Intro", "Findings")
    assert first == second
    assert len(first) == 64


def test_hash_matches_sha256_of_joined_fields() -> None:
    joined = "\x1f".join(["deck-1", "2", "10", "Audit scope", "Intro", "Findings"])
    expected = hashlib.sha256(joined.encode("utf-8")).hexdigest()
    assert content_hash("deck-1", 2, 10, "Audit scope", "Intro", "Findings") == expected


def test_missing_optional_text_hashes_as_empty_string() -> None:
    assert content_hash("deck-1", 1, 3, "Hello", None, None) == content_hash("deck-1", 1, 3, "Hello", "", "")
    assert content_hash("deck-1", 1, 3, None) == content_hash("deck-1", 1, 3, "")


def test_missing_document_id_uses_default() -> None:
    assert content_hash(None, 1, 3, "Hello") == content_hash("default", 1, 3, "Hello")


def test_every_input_changes_the_hash() -> None:
    base = content_hash("deck-1", 2, 10, "Audit scope", "Intro", "Findings")
    variants = [
        content_hash("deck-2", 2, 10, "Audit scope", "Intro", "Findings"),
        content_hash("deck-1", 3, 10, "Audit scope", "Intro", "Findings"),
        content_hash("deck-1", 2, 11, "Audit scope", "Intro", "Findings"),
        content_hash("deck-1", 2, 10, "Audit scope!", "Intro", "Findings"),
        content_hash("deck-1", 2, 10, "Audit scope", "Intro.", "Findings"),
        content_hash("deck-1", 2, 10, "Audit scope", "Intro", None),
    ]
    assert base not in variants
    assert len(set(variants)) == len(variants)


def test_audio_key_is_derived_from_hash() -> None:
    digest = content_hash("deck-1", 1, 1, "x")
    assert audio_key(digest) == f"audio/{digest}.mp3"


def test_dashes_in_text_do_not_shift_field_boundaries() -> None:
    assert content_hash("deck", 2, 5, "A-B", "C", "") != content_hash("deck", 2, 5, "A", "B-C", "")
    assert content_hash("deck-1", 2, 5, "x") != content_hash("deck", 1, 2, "5-x")
