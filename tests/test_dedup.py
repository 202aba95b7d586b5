import pytest

from meetrecorder.dedup import normalize, texts_overlap


def test_exact_match():
    assert texts_overlap("hello world", "hello world", 0.6)


def test_substring_match():
    assert texts_overlap("hello world how are you", "hello world", 0.6)


def test_high_overlap():
    a = "we should migrate the database to postgres"
    b = "we should migrate the database to postgres immediately"
    assert texts_overlap(a, b, 0.6)


def test_low_overlap():
    a = "we should migrate the database to postgres"
    b = "the weather is nice today outside"
    assert not texts_overlap(a, b, 0.6)


def test_empty_text():
    assert not texts_overlap("", "hello", 0.6)
    assert not texts_overlap("hello", "", 0.6)


def test_short_texts():
    assert texts_overlap("hi", "hi there", 0.6)
    assert not texts_overlap("hi", "bye", 0.6)


def test_punctuation_ignored():
    assert texts_overlap("Hello, world! How are you doing?", "hello world how are you doing", 0.6)


def test_case_insensitive():
    assert texts_overlap("The Database Migration Plan", "the database migration plan", 0.6)


def test_threshold_behavior():
    a = "one two three four five six seven eight nine ten"
    b = "one two three four five alpha beta gamma delta epsilon"
    assert not texts_overlap(a, b, 0.6)
    assert texts_overlap(a, b, 0.5)


@pytest.mark.parametrize(
    ("text", "want"),
    [
        ("Hello, World!", "hello world"),
        ("  multiple   spaces  ", "multiple spaces"),
        ("UPPERCASE", "uppercase"),
        ("punctuation...removed!", "punctuation removed"),
    ],
)
def test_normalize(text, want):
    assert normalize(text) == want


def test_overlap_is_symmetric():
    a = "we should migrate the database to postgres"
    b = "we should migrate the database to postgres immediately"
    assert texts_overlap(a, b, 0.6) == texts_overlap(b, a, 0.6)