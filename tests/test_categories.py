"""Tests for category normalization."""

import pytest

from xtreamcatalog.services.category_service import (
    CATEGORY_SYNONYMS,
    distinct_categories,
    normalize_category,
)

SAMPLES = [
    "Sport", "sports", "Football", "Basketball", "FR| News", "Action Movies",
    "Retro Classics", "kids zone", "Documentaries HD", "Séries TV", "UK: Entertainment",
    "Live TV", "Noticias", "Спорт", "", "   ", "Other",
]


class TestNormalizeCategory:
    @pytest.mark.parametrize("raw", ["Sport", "sports", "Football", "Basketball", "SPORTS HD"])
    def test_sports_synonyms(self, raw):
        assert normalize_category(raw) == "Sports"

    def test_unknown_label_kept(self):
        assert normalize_category("Retro Classics") == "Retro Classics"

    def test_unknown_label_title_cased(self):
        assert normalize_category("uk: ENTERTAINMENT") == "Uk: Entertainment"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_is_other(self, raw):
        assert normalize_category(raw) == "Other"

    def test_substring_match(self):
        assert normalize_category("FR| News") == "News"
        assert normalize_category("Action Movies") == "Movies"
        assert normalize_category("Documentaries HD") == "Documentary"

    def test_multilingual(self):
        assert normalize_category("Noticias") == "News"
        assert normalize_category("Спорт") == "Sports"
        assert normalize_category("Séries TV") == "Series"

    def test_short_label_inside_synonym(self):
        # "ports" is a fragment of "sports"
        assert normalize_category("ports") == "Sports"

    def test_two_letter_label_not_matched_inside_synonym(self):
        assert normalize_category("ki") == "Ki"

    def test_table_order_decides(self):
        # Both "sports" and "news" occur; sports comes first in the table
        assert normalize_category("Sports News") == "Sports"

    def test_canonical_labels_map_to_themselves(self):
        for label in {label for _, label in CATEGORY_SYNONYMS}:
            assert normalize_category(label) == label

    @pytest.mark.parametrize("raw", SAMPLES)
    def test_idempotent(self, raw):
        once = normalize_category(raw)
        assert normalize_category(once) == once


class TestDistinctCategories:
    def test_first_seen_order(self):
        assert distinct_categories(["News", "Sports", "News", "Kids", "Sports"]) == ("News", "Sports", "Kids")

    def test_skips_empty(self):
        assert distinct_categories(["", "News", ""]) == ("News",)
