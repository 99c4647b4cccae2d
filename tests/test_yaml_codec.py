"""Tests for YAML front matter on import sources."""

import pytest

from lectio.adapters.yaml_codec import YamlFrontmatter, dump_yaml, load_yaml


def test_decode_front_matter():
    meta, body = YamlFrontmatter().decode("---\ntitle: Confessions\nauthor: Augustine\n---\nBOOK I\n")
    assert meta == {"title": "Confessions", "author": "Augustine"}
    assert body == "BOOK I\n"


def test_text_without_front_matter_is_body():
    assert YamlFrontmatter().decode("1. Plain text") == ({}, "1. Plain text")


def test_non_mapping_front_matter_is_rejected():
    with pytest.raises(ValueError):
        YamlFrontmatter().decode("---\n- a\n- b\n---\nbody")


def test_encode_keeps_key_order_and_unicode():
    text = YamlFrontmatter().encode({"title": "Summa", "display": "CCC §27"})
    assert text == "---\ntitle: Summa\ndisplay: CCC §27\n---\n"
    assert YamlFrontmatter().encode({}) == ""
    assert load_yaml(dump_yaml({"b": 1, "a": [1, 2]})) == {"b": 1, "a": [1, 2]}
