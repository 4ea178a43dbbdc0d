"""
Tests for the shop distribution allocator.

Covers:
- Literal worked examples
- Conservation and residual truncation
- Pack quantization
- Priority-first leftover pass and input-order tie-breaks
- Output ordering and purity
- Score-weighted pools
- Input validation
"""

import math

import pytest

from app.services.distribution import (
    DistributionError,
    DistributionParams,
    InvalidMultiple,
    InvalidPriorityPercentage,
    InvalidQuantity,
    InvalidShopScore,
    ShopRef,
    calculate_distribution,
    summarize_distribution,
)


def _params(total, pct, multiple, shops, priority=(), scores=None):
    return DistributionParams.build(
        total_quantity=total,
        priority_percentage=pct,
        multiple=multiple,
        priority_shop_ids=priority,
        all_shops=shops,
        shop_scores=scores,
    )


def _by_id(allocations):
    return {item.shop_id: item for item in allocations}


class TestWorkedExamples:
    """The two reference scenarios."""

    def test_priority_split_without_leftover(self, three_shops):
        """100 units, 60% to one priority shop, packs of 10."""
        result = calculate_distribution(_params(100, 60, 10, three_shops, priority=["A"]))

        assert [item.shop_name for item in result] == ["Alpha", "Bravo", "Charlie"]
        assert [item.allocation for item in result] == [60, 20, 20]
        assert [item.packs for item in result] == [6, 2, 2]
        assert [item.target for item in result] == [60, 20, 20]
        assert all(item.remainder == 0 for item in result)
        assert [item.is_priority for item in result] == [True, False, False]

    def test_residual_below_multiple_is_dropped(self, three_shops):
        """95 units over three equal shops loses the final 5."""
        result = calculate_distribution(_params(95, 0, 10, three_shops))

        assert [item.allocation for item in result] == [30, 30, 30]
        assert [item.packs for item in result] == [3, 3, 3]
        for item in result:
            assert item.target == pytest.approx(95 / 3)
            assert item.remainder == pytest.approx(95 / 3 - 30)

        summary = summarize_distribution(result, 95)
        assert summary.total_allocated == 90
        assert summary.unallocated == 5


class TestLeftoverPass:
    """Packs lost to flooring are handed back out once."""

    def test_priority_shops_win_before_larger_regular_remainder(self):
        """One spare pack goes to a priority shop even though the regular shop lost more."""
        shops = [
            ShopRef(id="A", name="Alpha"),
            ShopRef(id="B", name="Bravo"),
            ShopRef(id="C", name="Charlie"),
            ShopRef(id="D", name="Delta"),
        ]
        result = _by_id(calculate_distribution(_params(100, 36, 10, shops, priority=["A", "B", "C"])))

        assert result["D"].remainder == pytest.approx(4)
        assert result["A"].remainder == pytest.approx(2)
        assert result["A"].allocation == 20
        assert result["B"].allocation == 10
        assert result["C"].allocation == 10
        assert result["D"].allocation == 60
        assert sum(item.allocation for item in result.values()) == 100

    def test_equal_remainders_follow_input_order(self):
        """Ties are broken by position in the input list, not by name."""
        shops = [
            ShopRef(id="s3", name="Charlie"),
            ShopRef(id="s1", name="Alpha"),
            ShopRef(id="s2", name="Bravo"),
        ]
        result = calculate_distribution(_params(100, 0, 10, shops))

        assert [(item.shop_name, item.allocation) for item in result] == [
            ("Alpha", 30),
            ("Bravo", 30),
            ("Charlie", 40),
        ]

    def test_larger_remainder_wins_within_tier(self):
        shops = [ShopRef(id="small", name="Small"), ShopRef(id="big", name="Big")]
        scores = {"small": 1, "big": 4}
        # sqrt weights 1:2 split 50 units into 16.67 / 33.33.
        result = _by_id(calculate_distribution(_params(50, 0, 10, shops, scores=scores)))

        assert result["small"].remainder > result["big"].remainder
        assert result["small"].allocation == 20
        assert result["big"].allocation == 30

    def test_remainder_reports_pre_leftover_loss(self):
        shops = [ShopRef(id="x", name="X"), ShopRef(id="y", name="Y")]
        result = _by_id(calculate_distribution(_params(30, 0, 10, shops)))

        topped_up = [item for item in result.values() if item.packs == 2]
        assert len(topped_up) == 1
        assert topped_up[0].remainder == pytest.approx(5)
        assert topped_up[0].allocation == 20

    def test_empty_priority_pool_share_is_recovered_by_leftover(self):
        """Priority ids that match no shop leave their share to the leftover pass."""
        shops = [ShopRef(id="A", name="Alpha"), ShopRef(id="B", name="Bravo")]
        result = calculate_distribution(_params(100, 20, 10, shops, priority=["ghost"]))

        assert [item.allocation for item in result] == [50, 50]
        assert not any(item.is_priority for item in result)

    def test_single_pass_gives_at_most_one_extra_pack_per_shop(self):
        """With every shop in the priority pool, the unused regular share is only partly recovered."""
        shops = [ShopRef(id="A", name="Alpha"), ShopRef(id="B", name="Bravo")]
        result = calculate_distribution(_params(100, 60, 10, shops, priority=["A", "B"]))

        assert [item.allocation for item in result] == [40, 40]
        assert [item.packs for item in result] == [4, 4]


class TestInvariants:
    """Conservation, quantization, ordering and purity over a grid of inputs."""

    @pytest.mark.parametrize("multiple", [1, 5, 12])
    @pytest.mark.parametrize("pct", [0, 30, 55.5, 100])
    @pytest.mark.parametrize("shop_count", [2, 3, 5])
    def test_conservation_and_quantization(self, multiple, pct, shop_count):
        shops = [ShopRef(id=f"s{i}", name=f"Shop {i}") for i in range(shop_count)]
        # Keep both pools populated unless the percentage makes one irrelevant.
        if pct == 0:
            priority = []
        elif pct == 100:
            priority = [shop.id for shop in shops]
        else:
            priority = [shops[0].id]

        for total in range(0, 241, 7):
            result = calculate_distribution(_params(total, pct, multiple, shops, priority=priority))
            allocated = sum(item.allocation for item in result)

            assert all(item.allocation % multiple == 0 for item in result)
            assert all(item.allocation >= 0 for item in result)
            assert 0 <= total - allocated < multiple
            if total % multiple == 0:
                assert allocated == total

    def test_fractional_total_just_below_a_pack_is_not_rounded_up(self):
        result = calculate_distribution(_params(29.9999999995, 0, 10, [ShopRef(id="A", name="Alpha")]))

        assert result[0].allocation == 20
        assert 0 <= 29.9999999995 - result[0].allocation < 10

    @pytest.mark.parametrize("multiple", [1, 5, 12])
    @pytest.mark.parametrize("pct", [0, 30, 100])
    def test_bounded_loss_with_fractional_totals(self, multiple, pct):
        shops = [ShopRef(id=f"s{i}", name=f"Shop {i}") for i in range(3)]
        priority = {0: [], 100: [shop.id for shop in shops]}.get(pct, [shops[0].id])

        for base in range(0, 241, 7):
            for total in (base + 0.25, base + 0.5, base + 1 - 5e-10):
                result = calculate_distribution(_params(total, pct, multiple, shops, priority=priority))
                allocated = sum(item.allocation for item in result)

                assert all(item.allocation % multiple == 0 for item in result)
                assert 0 <= total - allocated < multiple

    def test_conservation_with_weighted_scores(self):
        shops = [ShopRef(id=str(i), name=f"Shop {i}") for i in range(6)]
        scores = {"0": 900, "1": 100, "2": 0, "3": 37.5, "5": 12}
        for total in range(0, 600, 12):
            result = calculate_distribution(_params(total, 40, 12, shops, priority=["0", "3"], scores=scores))
            assert sum(item.allocation for item in result) == total

    def test_output_sorted_by_name_case_insensitively(self):
        shops = [
            ShopRef(id="1", name="charlie"),
            ShopRef(id="2", name="Bravo"),
            ShopRef(id="3", name="alpha"),
        ]
        result = calculate_distribution(_params(90, 50, 10, shops, priority=["1"]))

        assert [item.shop_name for item in result] == ["alpha", "Bravo", "charlie"]

    def test_repeated_calls_are_identical(self, three_shops):
        params = _params(137, 42.5, 6, three_shops, priority=["B"])

        assert calculate_distribution(params) == calculate_distribution(params)

    def test_empty_shop_list(self):
        assert calculate_distribution(_params(100, 50, 10, [])) == []

    def test_unknown_priority_id_has_no_effect(self, three_shops):
        baseline = calculate_distribution(_params(120, 0, 10, three_shops))
        with_ghost = calculate_distribution(_params(120, 0, 10, three_shops, priority=["ghost"]))

        assert baseline == with_ghost

    def test_zero_quantity(self, three_shops):
        result = calculate_distribution(_params(0, 50, 10, three_shops, priority=["A"]))

        assert [item.allocation for item in result] == [0, 0, 0]


class TestShopScores:
    """Optional sales-history weighting inside each pool."""

    def test_square_root_smoothing(self):
        shops = [ShopRef(id="a", name="A"), ShopRef(id="b", name="B")]
        result = _by_id(calculate_distribution(_params(120, 0, 10, shops, scores={"a": 100, "b": 900})))

        assert result["a"].target == pytest.approx(30)
        assert result["b"].target == pytest.approx(90)
        assert result["a"].allocation == 30
        assert result["b"].allocation == 90

    def test_shop_without_history_gets_pool_average(self):
        shops = [ShopRef(id="a", name="A"), ShopRef(id="b", name="B")]
        result = _by_id(calculate_distribution(_params(100, 0, 10, shops, scores={"a": 400})))

        assert result["a"].allocation == 50
        assert result["b"].allocation == 50

    def test_all_zero_scores_match_equal_split(self, three_shops):
        equal = calculate_distribution(_params(150, 40, 10, three_shops, priority=["A"]))
        zero = calculate_distribution(
            _params(150, 40, 10, three_shops, priority=["A"], scores={"A": 0, "B": 0, "C": 0})
        )

        assert [item.allocation for item in zero] == [item.allocation for item in equal]
        for left, right in zip(zero, equal):
            assert left.target == pytest.approx(right.target)

    def test_pools_are_weighted_independently(self):
        shops = [
            ShopRef(id="p1", name="P1"),
            ShopRef(id="p2", name="P2"),
            ShopRef(id="r1", name="R1"),
        ]
        scores = {"p1": 1, "p2": 9, "r1": 10_000}
        result = _by_id(calculate_distribution(_params(100, 40, 1, shops, priority=["p1", "p2"], scores=scores)))

        assert result["p1"].target == pytest.approx(10)
        assert result["p2"].target == pytest.approx(30)
        assert result["r1"].target == pytest.approx(60)


class TestValidation:
    """Typed rejections at the boundary."""

    @pytest.mark.parametrize("multiple", [0, -5, 2.5, True])
    def test_invalid_multiple(self, three_shops, multiple):
        with pytest.raises(InvalidMultiple):
            calculate_distribution(_params(100, 0, multiple, three_shops))

    @pytest.mark.parametrize("total", [-1, math.nan, math.inf])
    def test_invalid_quantity(self, three_shops, total):
        with pytest.raises(InvalidQuantity):
            calculate_distribution(_params(total, 0, 10, three_shops))

    @pytest.mark.parametrize("pct", [-0.1, 100.5, math.nan])
    def test_invalid_priority_percentage(self, three_shops, pct):
        with pytest.raises(InvalidPriorityPercentage):
            calculate_distribution(_params(100, pct, 10, three_shops))

    def test_negative_score(self, three_shops):
        with pytest.raises(InvalidShopScore):
            calculate_distribution(_params(100, 0, 10, three_shops, scores={"A": -1}))

    def test_errors_are_value_errors(self, three_shops):
        with pytest.raises(ValueError) as exc_info:
            calculate_distribution(_params(100, 0, 0, three_shops))
        assert isinstance(exc_info.value, DistributionError)

    def test_empty_shop_list_still_validates(self):
        with pytest.raises(InvalidMultiple):
            calculate_distribution(_params(100, 0, 0, []))


class TestSummary:
    def test_priority_and_regular_totals(self, three_shops):
        result = calculate_distribution(_params(100, 60, 10, three_shops, priority=["A"]))
        summary = summarize_distribution(result, 100)

        assert summary.shop_count == 3
        assert summary.total_allocated == 100
        assert summary.unallocated == 0
        assert summary.priority_allocated == 60
        assert summary.regular_allocated == 40
