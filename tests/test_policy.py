"""Tests for skip/sample policy and admission."""

import pytest

from sitecapture.models import RobotsPolicy
from sitecapture.policy import AdmissionController, SkipSamplePolicy

START = "https://example.com/"


@pytest.fixture
def skip_policy():
    return SkipSamplePolicy(
        skip_patterns=["login", "cart"],
        content_patterns=["/blog", "/news"],
        sample_categories=["blog", "news"],
    )


@pytest.fixture
def admission(skip_policy):
    return AdmissionController(skip_policy)


class TestSkipSamplePolicy:
    """Tests for SkipSamplePolicy."""

    def test_plain_url_allowed(self, skip_policy):
        assert skip_policy.allows("https://example.com/about")

    def test_skip_pattern_is_never_rescued(self, skip_policy):
        assert not skip_policy.allows("https://example.com/login")
        assert not skip_policy.allows("https://example.com/blog/login-help")

    def test_skip_patterns_are_case_insensitive(self, skip_policy):
        assert skip_policy.matches_skip_pattern("https://example.com/LOGIN")

    def test_first_detail_page_is_sampled_once(self, skip_policy):
        assert skip_policy.allows("https://example.com/blog/post-1")
        assert not skip_policy.allows("https://example.com/blog/post-2")
        assert skip_policy.sample_taken["blog"] is True

    def test_categories_are_independent(self, skip_policy):
        assert skip_policy.allows("https://example.com/blog/post-1")
        assert skip_policy.allows("https://example.com/news/item-1")

    @pytest.mark.parametrize("url", [
        "https://example.com/blog",
        "https://example.com/blog/",
        "https://example.com/blog/page/2",
        "https://example.com/blog/tag/python",
        "https://example.com/blog/category/releases",
    ])
    def test_listings_never_take_the_sample(self, skip_policy, url):
        assert not skip_policy.allows(url)
        assert skip_policy.sample_taken["blog"] is False

    def test_untracked_category_gets_no_sample(self):
        policy = SkipSamplePolicy(content_patterns=["/article"], sample_categories=["blog"])
        assert not policy.allows("https://example.com/article/one")

    def test_sample_state_only_flips_once(self, skip_policy):
        skip_policy.try_allow_sample("https://example.com/blog/a")
        skip_policy.try_allow_sample("https://example.com/blog/b")
        assert skip_policy.sample_taken == {"blog": True, "news": False}

    def test_invalid_pattern_matches_literally(self):
        policy = SkipSamplePolicy(skip_patterns=["shop[("])
        assert policy.matches_skip_pattern("https://example.com/shop[(")
        assert not policy.matches_skip_pattern("https://example.com/shop")

    @pytest.mark.parametrize("url", [
        "https://news.example.com/",
        "https://blog.example.com/docs/intro",
        "https://postmates.com/",
    ])
    def test_content_patterns_ignore_host(self, url):
        policy = SkipSamplePolicy(
            content_patterns=["/blog", "/news", "/article", "/post"],
            sample_categories=["blog", "news"],
        )
        assert not policy.matches_content_pattern(url)
        assert policy.allows(url)

    def test_content_patterns_see_query(self):
        policy = SkipSamplePolicy(content_patterns=[r"type=news"])
        assert policy.matches_content_pattern("https://example.com/list?type=news")
        assert not policy.matches_content_pattern("https://type=news.example.com/")

    def test_should_skip_combines_lists(self, skip_policy):
        assert skip_policy.should_skip("https://example.com/cart")
        assert skip_policy.should_skip("https://example.com/news/item")
        assert not skip_policy.should_skip("https://example.com/docs")


class TestAdmissionController:
    """Tests for AdmissionController.should_visit."""

    def test_admits_in_scope_url(self, admission):
        assert admission.should_visit("https://example.com/docs", START, RobotsPolicy())

    def test_rejects_non_http(self, admission):
        assert not admission.should_visit("mailto:a@example.com", START, RobotsPolicy())
        assert not admission.should_visit("javascript:void(0)", START, RobotsPolicy())

    def test_rejects_other_host(self, admission):
        assert not admission.should_visit("https://other.com/docs", START, RobotsPolicy())

    def test_rejects_outside_start_prefix(self, admission):
        assert not admission.should_visit(
            "https://example.com/pricing", "https://example.com/docs/", RobotsPolicy()
        )

    def test_rejects_robots_disallowed(self, admission):
        robots = RobotsPolicy(disallow_prefixes=("/private",))
        assert not admission.should_visit("https://example.com/private/x", START, robots)

    def test_robots_ignored_when_disabled(self, skip_policy):
        admission = AdmissionController(skip_policy, respect_robots=False)
        robots = RobotsPolicy(disallow_prefixes=("/private",))
        assert admission.should_visit("https://example.com/private/x", START, robots)

    def test_missing_robots_policy_is_permissive(self, admission):
        assert admission.should_visit("https://example.com/private/x", START, None)

    def test_sample_consumed_even_when_robots_blocks(self, admission, skip_policy):
        """The sample exception is spent before robots is consulted."""
        robots = RobotsPolicy(disallow_prefixes=("/blog/",))

        assert not admission.should_visit("https://example.com/blog/post-1", START, robots)
        assert skip_policy.sample_taken["blog"] is True
        assert not admission.should_visit("https://example.com/blog/post-2", START, RobotsPolicy())

    def test_out_of_scope_url_does_not_consume_sample(self, admission, skip_policy):
        assert not admission.should_visit("https://other.com/blog/post-1", START, RobotsPolicy())
        assert skip_policy.sample_taken["blog"] is False

    def test_at_most_one_detail_page_per_category(self, admission):
        urls = [f"https://example.com/blog/post-{i}" for i in range(10)]
        admitted = [u for u in urls if admission.should_visit(u, START, RobotsPolicy())]
        assert admitted == ["https://example.com/blog/post-0"]

    def test_from_config(self, tmp_path):
        from sitecapture.config import CaptureConfig

        config = CaptureConfig(
            start_urls=[START],
            out_dir=str(tmp_path),
            same_host_only=False,
            path_prefix_mode="none",
            respect_robots=False,
        )
        admission = AdmissionController.from_config(config)

        assert admission.same_host_only is False
        assert admission.path_prefix_mode == "none"
        assert admission.respect_robots is False
        assert set(admission.skip_policy.sample_taken) == {"blog", "news"}
