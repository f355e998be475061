"""
Unit tests for extraction profile configuration.

Validates:
- Built-in defaults and YAML overrides (including local.yaml)
- Fallback to defaults on invalid files
- Field schema validation
- Label splitting and text normalization
"""

from pathlib import Path

import pytest
from bs4 import BeautifulSoup
from pydantic import ValidationError

from searx_edge.search.extractor_config import (
    DEFAULT_CONFIG,
    FieldKind,
    FieldSchema,
    FieldSpec,
    build_extractor_config,
    get_extractor_config,
    load_extractor_config,
    normalize_text,
    reset_extractor_config,
    split_label,
)
from searx_edge.utils.errors import UnsupportedCategoryError

pytestmark = pytest.mark.unit


class TestSplitLabel:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Author: Jane Doe", "Jane Doe"),
            ("Author:Jane Doe", "Jane Doe"),
            ("Time: 12:30", "12:30"),
            ("  Filesize:\n 245.3 KB  ", "245.3 KB"),
            ("Resolution:", ""),
            ("no label here", "no label here"),
            ("", ""),
        ],
    )
    def test_split_label(self, text, expected):
        assert split_label(text) == expected


class TestNormalizeText:
    def test_collapses_whitespace_and_nbsp(self):
        assert normalize_text("  a\xa0\xa0b \n\t c ") == "a b c"

    def test_empty(self):
        assert normalize_text("\xa0") == ""


class TestFieldSchema:
    def test_attr_kind_requires_attr(self):
        with pytest.raises(ValidationError):
            FieldSchema(selector="a", kind="attr")

    def test_empty_selector_rejected(self):
        with pytest.raises(ValidationError):
            FieldSchema(selector="   ")

    def test_defaults(self):
        schema = FieldSchema(selector=" h3 a ")

        assert schema.selector == "h3 a"
        assert schema.kind is FieldKind.TEXT
        assert schema.multiple is False


class TestFieldSpec:
    def _element(self, html: str):
        return BeautifulSoup(html, "html.parser").find()

    def test_reads_attribute(self):
        spec = FieldSpec(name="url", selector="a", kind=FieldKind.ATTR, attr="href")

        assert spec.read(self._element('<a href="https://x.example/">x</a>')) == "https://x.example/"

    def test_missing_attribute_is_none(self):
        spec = FieldSpec(name="url", selector="a", kind=FieldKind.ATTR, attr="href")

        assert spec.read(self._element("<a>x</a>")) is None

    def test_reads_all_text_fragments(self):
        spec = FieldSpec(name="title", selector="h3")

        assert spec.read(self._element("<h3>Hello <b>big</b> world</h3>")) == "Hello big world"

    def test_reads_label(self):
        spec = FieldSpec(name="author", selector="p", kind=FieldKind.LABEL)

        assert spec.read(self._element("<p><span>Author:</span> Jane</p>")) == "Jane"

    def test_matches(self):
        spec = FieldSpec(name="content", selector="p.content")

        assert spec.matches(self._element('<p class="content">x</p>'))
        assert not spec.matches(self._element('<p class="other">x</p>'))


class TestBuildExtractorConfig:
    def test_defaults_have_general_and_images(self):
        config = build_extractor_config(DEFAULT_CONFIG)

        assert config.categories == ["general", "images"]
        assert config.get_profile("general").block_selector == (
            "article.result-default.category-general"
        )

    def test_engines_fields_are_multiple(self):
        config = build_extractor_config(DEFAULT_CONFIG)

        assert config.get_profile("general").get_field("engines").multiple is True
        assert config.get_profile("images").get_field("engines").kind is FieldKind.LABEL

    def test_unknown_category(self):
        config = build_extractor_config(DEFAULT_CONFIG)

        with pytest.raises(UnsupportedCategoryError):
            config.get_profile("music")


class TestLoadExtractorConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path):
        config = load_extractor_config(tmp_path)

        assert config.categories == ["general", "images"]

    def test_yaml_overrides_merge_over_defaults(self, tmp_path: Path):
        (tmp_path / "extractor.yaml").write_text(
            "categories:\n"
            "  general:\n"
            "    fields:\n"
            "      title:\n"
            "        selector: h4.title\n"
            "  news:\n"
            "    block: article.category-news\n"
            "    fields:\n"
            "      title: {selector: h3}\n",
            encoding="utf-8",
        )

        config = load_extractor_config(tmp_path)

        general = config.get_profile("general")
        assert general.get_field("title").selector == "h4.title"
        assert general.get_field("url").attr == "href"
        assert config.categories == ["general", "images", "news"]

    def test_local_yaml_overrides_extractor_yaml(self, tmp_path: Path):
        (tmp_path / "extractor.yaml").write_text(
            "query: {selector: 'input#q', attr: value}\n", encoding="utf-8"
        )
        (tmp_path / "local.yaml").write_text(
            "extractor:\n  query:\n    selector: input.search\n", encoding="utf-8"
        )

        config = load_extractor_config(tmp_path)

        assert config.query.selector == "input.search"
        assert config.query.attr == "value"

    def test_invalid_yaml_falls_back_to_defaults(self, tmp_path: Path):
        (tmp_path / "extractor.yaml").write_text("categories: [unclosed\n", encoding="utf-8")

        config = load_extractor_config(tmp_path)

        assert config.categories == ["general", "images"]

    def test_invalid_schema_falls_back_to_defaults(self, tmp_path: Path):
        (tmp_path / "extractor.yaml").write_text(
            "categories:\n"
            "  general:\n"
            "    fields:\n"
            "      url: {selector: a, kind: attr}\n",
            encoding="utf-8",
        )

        config = load_extractor_config(tmp_path)

        assert config.get_profile("general").get_field("url").attr == "href"

    def test_bad_css_selector_falls_back_to_defaults(self, tmp_path: Path):
        (tmp_path / "extractor.yaml").write_text(
            "categories:\n  general:\n    block: 'article[['\n", encoding="utf-8"
        )

        config = load_extractor_config(tmp_path)

        assert config.get_profile("general").block_selector == (
            "article.result-default.category-general"
        )


class TestSingleton:
    def test_shared_instance_until_reset(self):
        first = get_extractor_config()

        assert get_extractor_config() is first

        reset_extractor_config()

        assert get_extractor_config() is not first

    def test_repository_config_matches_defaults(self):
        repo_config = get_extractor_config()
        defaults = build_extractor_config(DEFAULT_CONFIG)

        assert repo_config.categories == defaults.categories
        for category in defaults.categories:
            expected = defaults.get_profile(category)
            actual = repo_config.get_profile(category)
            assert actual.block_selector == expected.block_selector
            assert [f.name for f in actual.fields] == [f.name for f in expected.fields]
