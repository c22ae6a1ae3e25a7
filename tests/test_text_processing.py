"""Tests for text heuristics."""

import pytest

from job_watch.utils.text_processing import (
    LABEL_MAX_LENGTH,
    absolute_url,
    clip_label,
    extract_tags,
    find_location,
    find_posted_at,
    matches_job_keywords,
    normalize_whitespace,
)


class TestNormalizeWhitespace:
    def test_collapses_runs(self):
        assert normalize_whitespace("  Senior\n\t Designer  ") == "Senior Designer"

    def test_none(self):
        assert normalize_whitespace(None) == ""


class TestAbsoluteUrl:
    def test_relative_resolved(self):
        assert absolute_url("https://x.com/careers/", "jobs/1") == "https://x.com/careers/jobs/1"
        assert absolute_url("https://x.com/careers/", "/jobs/1") == "https://x.com/jobs/1"

    @pytest.mark.parametrize("href", [None, "", "  ", "#top", "javascript:void(0)", "mailto:a@x.com", "tel:123"])
    def test_non_web_links_dropped(self, href):
        assert absolute_url("https://x.com/", href) is None

    def test_other_schemes_dropped(self):
        assert absolute_url("https://x.com/", "ftp://x.com/file") is None


class TestKeywords:
    def test_matches_role_words(self):
        assert matches_job_keywords("Senior Product Designer")
        assert matches_job_keywords("UX Researcher")
        assert not matches_job_keywords("Backend Engineer")
        assert not matches_job_keywords("")

    def test_tags_in_vocabulary_order(self):
        assert extract_tags("Senior UX/UI Product Researcher") == ["UX", "UI", "Product", "Research"]
        assert extract_tags("Graphic and Visual Designer") == ["Visual", "Graphic"]
        assert extract_tags(None) == []


class TestFindLocation:
    def test_work_mode_first(self):
        assert find_location("Remote - New York, NY") == "Remote"

    def test_city_state(self):
        assert find_location("Design team, Austin, TX") == "Austin, TX"

    def test_city_country(self):
        assert find_location("Office in Berlin, Germany") == "Berlin, Germany"

    def test_location_label(self):
        assert find_location("Location: lisbon | Full-time") == "lisbon"

    def test_long_location_label_clipped(self):
        location = find_location("Location: anywhere " + "x" * 300)
        assert location == "anywhere"

    def test_nothing_found(self):
        assert find_location("Join our team") is None


class TestFindPostedAt:
    def test_relative(self):
        assert find_posted_at("Posted 3 days ago") == "3 days ago"

    def test_absolute(self):
        assert find_posted_at("Opened 2024-01-05") == "2024-01-05"
        assert find_posted_at("March 4, 2024") == "March 4, 2024"

    def test_posted_label(self):
        assert find_posted_at("Posted: yesterday") == "yesterday"

    def test_long_posted_label_clipped(self):
        block = "Posted: recently " + "we are hiring designers to shape the product " * 10
        posted = find_posted_at(block)
        assert len(posted) <= LABEL_MAX_LENGTH
        assert posted.startswith("recently we are hiring")
        assert not posted.endswith(" ")

    def test_nothing_found(self):
        assert find_posted_at("Apply now") is None


class TestClipLabel:
    def test_short_values_kept(self):
        assert clip_label("  Lisbon  ") == "Lisbon"

    def test_cut_at_word_boundary(self):
        assert clip_label("one two three", max_length=9) == "one two"

    def test_unbroken_value_hard_cut(self):
        assert clip_label("x" * 20, max_length=5) == "xxxxx"

    def test_blank(self):
        assert clip_label("   ") is None
