"""Tests for structural line classification."""

import pytest

from lectio.parser.classifier import STRUCTURAL_RULES, classify


@pytest.mark.parametrize(
    "line,level",
    [
        ("IN BRIEF", "brief"),
        ("In Brief", "brief"),
        ("PART ONE: THE PROFESSION OF FAITH", "part"),
        ("Part Two", "part"),
        ("BOOK III", "book"),
        ("ARTICLE 1 I BELIEVE IN GOD THE FATHER", "article"),
        ("SECTION TWO", "section"),
        ("Chapter IV.—Of the Nature of Sin", "chapter"),
        ("CHAPTER 3", "chapter"),
        ("II. THE NATURE OF FAITH", "roman"),
        ("PROLOGUE", "preface"),
        ("Introduction", "preface"),
        ("THE TEN COMMANDMENTS", "section"),
    ],
)
def test_headings_are_classified(line, level):
    """Each heading form maps to its structural level."""
    result = classify(line)
    assert result is not None
    assert result.level == level


@pytest.mark.parametrize(
    "line",
    [
        "",
        "   ",
        "27. The desire for God is written in the human heart.",
        "I believe in God",
        "ii. lowercase numerals are ordinary text",
        "ABC",
    ],
)
def test_non_headings_are_rejected(line):
    """Prose, blank lines and near-misses never classify."""
    assert classify(line) is None


def test_content_is_trimmed():
    """Content is the trimmed line."""
    assert classify("   IN BRIEF  ").content == "IN BRIEF"


def test_rule_order_is_precedence():
    """An all-caps IN BRIEF is brief, not the generic all-caps section."""
    assert STRUCTURAL_RULES[0].level == "brief"
    assert STRUCTURAL_RULES[-1].level == "section"
    assert classify("IN BRIEF").level == "brief"


def test_roman_rule_is_case_sensitive():
    """Only upper-case numerals start a roman section."""
    assert classify("IV. Charity").level == "roman"
    assert classify("iv. Charity") is None
