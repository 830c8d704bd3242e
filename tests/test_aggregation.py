"""Aggregation engine tests."""

import random

import pytest

from asvstrack.aggregation import (
    LevelPolicy,
    build_dashboard,
    build_user_dashboards,
    compute_overall_stats,
    compute_section_stats,
    recommendations,
    section_stat,
    status_band,
    unavailable_dashboard,
)
from asvstrack.errors import InvariantViolation, ValidationError
from asvstrack.models import OverallStat, RequirementStatus, SectionStat

VALID = RequirementStatus.VALID
NON_VALID = RequirementStatus.NON_VALID
NOT_APPLICABLE = RequirementStatus.NOT_APPLICABLE
UNANSWERED = RequirementStatus.UNANSWERED


class TestSectionStats:
    """Tests for per-section statistics."""

    def test_all_valid_section_is_fully_valid(self, sections, make_req):
        reqs = [make_req("r1", "s-arch", VALID), make_req("r2", "s-arch", VALID)]

        stat = section_stat(sections[0], reqs)

        assert stat.valid_count == 2
        assert stat.total_count == 2
        assert stat.validity_percentage == 100.0

    def test_empty_section_is_unassessed(self, sections):
        stat = section_stat(sections[1], [])

        assert stat.total_count == 0
        assert stat.validity_percentage == 0.0
        assert stat.assessed is False

    def test_only_valid_counts_toward_validity(self, sections, make_req):
        reqs = [
            make_req("r1", "s-auth", VALID),
            make_req("r2", "s-auth", NON_VALID),
            make_req("r3", "s-auth", NOT_APPLICABLE),
            make_req("r4", "s-auth", UNANSWERED),
        ]

        stat = section_stat(sections[1], reqs)

        assert stat.valid_count == 1
        assert stat.total_count == 4
        assert stat.validity_percentage == 25.0

    def test_foreign_requirement_raises(self, sections, make_req):
        with pytest.raises(InvariantViolation) as exc_info:
            section_stat(sections[0], [make_req("r1", "s-auth", VALID)])

        assert exc_info.value.section_id == "s-arch"

    def test_stats_are_ordered_and_include_empty_sections(self, sections, make_req):
        reqs = [make_req("r1", "s-sess", VALID), make_req("r2", "s-arch", NON_VALID)]

        stats = compute_section_stats(reversed(sections), reqs)

        assert [s.section_slug for s in stats] == [
            "architecture",
            "authentication",
            "session-management",
        ]
        assert stats[1].total_count == 0

    def test_dangling_section_is_reported_unavailable(self, sections, make_req):
        reqs = [
            make_req("r1", "s-arch", VALID),
            make_req("r2", "s-missing", VALID),
            make_req("r3", "s-missing", NON_VALID),
        ]

        stats = compute_section_stats(sections, reqs)

        assert len(stats) == 4
        missing = stats[-1]
        assert missing.section_id == "s-missing"
        assert missing.available is False
        assert stats[0].valid_count == 1

    def test_two_users_in_one_section_are_not_merged(self, sections, make_req):
        reqs = [
            make_req("r1", "s-arch", VALID, user_id="user-a"),
            make_req("r2", "s-arch", NON_VALID, user_id="user-b"),
        ]

        stats = compute_section_stats(sections, reqs)
        arch = {s.user_id: s for s in stats if s.section_id == "s-arch"}

        assert len(stats) == 6
        assert (arch["user-a"].valid_count, arch["user-a"].total_count) == (1, 1)
        assert (arch["user-b"].valid_count, arch["user-b"].total_count) == (0, 1)
        assert [s.user_id for s in stats[:3]] == ["user-a"] * 3

    def test_mixed_owners_in_section_stat_raise(self, sections, make_req):
        reqs = [
            make_req("r1", "s-arch", VALID, user_id="user-a"),
            make_req("r2", "s-arch", VALID, user_id="user-b"),
        ]

        with pytest.raises(InvariantViolation):
            section_stat(sections[0], reqs)

    def test_percentage_is_exact_ratio(self, sections, make_req):
        rng = random.Random(7)
        for _ in range(50):
            count = rng.randint(1, 40)
            reqs = [
                make_req(f"r{i}", "s-arch", rng.choice(list(RequirementStatus)))
                for i in range(count)
            ]
            stat = section_stat(sections[0], reqs)
            valid = sum(1 for r in reqs if r.status == VALID)

            assert 0.0 <= stat.validity_percentage <= 100.0
            assert stat.validity_percentage == 100 * valid / count


class TestOverallStats:
    """Tests for the overall statistic."""

    def test_overall_percentage_from_sums(self):
        stats = [
            SectionStat("a", "A", "a", 1, valid_count=5, total_count=20),
            SectionStat("b", "B", "b", 2, valid_count=7, total_count=28),
        ]

        overall = compute_overall_stats(stats)

        assert overall.valid_sum == 12
        assert overall.total_sum == 48
        assert overall.overall_validity_percentage == 25.0

    def test_no_requirements_gives_zero(self):
        overall = compute_overall_stats([])

        assert overall.total_sum == 0
        assert overall.overall_validity_percentage == 0.0
        assert overall.asvs_level_acquired == "L1"

    def test_sums_match_flattened_computation(self, sections, make_req):
        rng = random.Random(11)
        reqs = [
            make_req(
                f"r{i}",
                rng.choice(sections).id,
                rng.choice(list(RequirementStatus)),
            )
            for i in range(120)
        ]
        shuffled = list(reqs)
        rng.shuffle(shuffled)

        overall = compute_overall_stats(compute_section_stats(sections, reqs))
        reordered = compute_overall_stats(compute_section_stats(reversed(sections), shuffled))
        direct = 100 * sum(1 for r in reqs if r.status == VALID) / len(reqs)

        assert overall.overall_validity_percentage == pytest.approx(direct)
        assert reordered.valid_sum == overall.valid_sum
        assert reordered.total_sum == overall.total_sum

    def test_unavailable_sections_are_excluded(self):
        stats = [
            SectionStat("a", "A", "a", 1, valid_count=1, total_count=2),
            SectionStat.unavailable("ghost"),
        ]

        overall = compute_overall_stats(stats)

        assert overall.total_sum == 2
        assert overall.overall_validity_percentage == 50.0


class TestLevelPolicy:
    """Tests for ASVS level classification."""

    def test_default_thresholds(self):
        policy = LevelPolicy()

        assert policy.classify(0.0) == "L1"
        assert policy.classify(49.9) == "L1"
        assert policy.classify(50.0) == "L2"
        assert policy.classify(100.0) == "L3"

    def test_classification_is_monotonic(self):
        policy = LevelPolicy({"Bronze": 0, "Silver": 30, "Gold": 75})
        rank = {"Bronze": 0, "Silver": 1, "Gold": 2}

        levels = [rank[policy.classify(p / 2)] for p in range(0, 201)]

        assert levels == sorted(levels)

    def test_base_level_when_nothing_is_met(self):
        policy = LevelPolicy({"L1": 10, "L2": 60})

        assert policy.base_level == "L1"
        assert policy.classify(5.0) == "L1"

    def test_rejects_out_of_range_threshold(self):
        with pytest.raises(ValidationError):
            LevelPolicy({"L1": 0, "L2": 150})

    def test_rejects_empty_policy(self):
        with pytest.raises(ValidationError):
            LevelPolicy({})

    def test_overall_uses_injected_policy(self):
        stats = [SectionStat("a", "A", "a", 1, valid_count=3, total_count=4)]

        overall = compute_overall_stats(stats, LevelPolicy({"L1": 0, "L2": 70}))

        assert overall.asvs_level_acquired == "L2"


class TestDashboard:
    """Tests for dashboards, bands and recommendations."""

    def test_users_do_not_share_statistics(self, sections, make_req):
        reqs = [
            make_req("r1", "s-arch", VALID, user_id="user-a"),
            make_req("r2", "s-arch", NON_VALID, user_id="user-b"),
            make_req("r3", "s-arch", NON_VALID, user_id="user-b"),
        ]

        dashboards = build_user_dashboards(sections, reqs)

        assert dashboards["user-a"].overall.overall_validity_percentage == 100.0
        assert dashboards["user-b"].overall.overall_validity_percentage == 0.0
        assert dashboards["user-b"].overall.total_sum == 2

    def test_single_dashboard_rejects_mixed_users(self, sections, make_req):
        reqs = [
            make_req("r1", "s-arch", VALID, user_id="user-a"),
            make_req("r2", "s-auth", VALID, user_id="user-b"),
        ]

        with pytest.raises(ValidationError):
            build_dashboard(sections, reqs)

    def test_dashboard_lists_unavailable_sections(self, sections, make_req):
        dashboard = build_dashboard(sections, [make_req("r1", "s-missing", VALID)])

        assert dashboard.unavailable_sections == ["s-missing"]
        assert dashboard.available is True

    def test_unavailable_dashboard_is_not_zero_compliance(self):
        dashboard = unavailable_dashboard()

        assert dashboard.available is False
        assert dashboard.overall.to_dict()["available"] is False
        assert dashboard.overall.asvs_level_acquired == "L1"

    @pytest.mark.parametrize(
        "pct, band",
        [(100.0, "good"), (80.0, "good"), (79.9, "warning"), (50.0, "warning"), (49.9, "critical")],
    )
    def test_status_band(self, pct, band):
        assert status_band(pct) == band

    def test_recommendations_pick_weak_sections_in_order(self, sections, make_req):
        reqs = [
            make_req("r1", "s-arch", NON_VALID),
            make_req("r2", "s-auth", VALID),
            make_req("r3", "s-sess", VALID),
            make_req("r4", "s-sess", NON_VALID),
        ]

        items = recommendations(build_dashboard(sections, reqs))

        assert items == [
            "Review and address gaps in Architecture (0.0% complete)",
            "Review and address gaps in Session Management (50.0% complete)",
        ]

    def test_recommendations_limit_and_starting_hint(self, sections, make_req):
        reqs = [make_req(f"r{i}", s.id, NON_VALID) for i, s in enumerate(sections)]

        items = recommendations(build_dashboard(sections, reqs), limit=2)

        assert len(items) == 3
        assert items[-1] == "Start by assessing requirements in key security areas"

    def test_no_recommendations_when_fully_valid(self, sections, make_req):
        reqs = [make_req(f"r{i}", s.id, VALID) for i, s in enumerate(sections)]

        assert recommendations(build_dashboard(sections, reqs)) == []

    def test_no_recommendations_when_unavailable(self):
        assert recommendations(unavailable_dashboard()) == []

    def test_overall_stat_defaults(self):
        overall = OverallStat()

        assert overall.asvs_level_acquired == "L1"
        assert overall.overall_validity_percentage == 0.0
