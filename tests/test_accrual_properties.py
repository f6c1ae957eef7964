"""Property-based tests for accrual invariants using Hypothesis.

Randomized schedules, supplies and mint timings check that issuance never
compounds, never runs backwards, and loses at most rounding dust when split
into many mints.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from ztoken.ledger.constants import MAX_RATE_BPS, UNIT, YEAR_IN_SECONDS
from ztoken.ledger.issuance import IssuancePolicy
from ztoken.ledger.schedule import InflationSchedule
from ztoken.ledger.years import YearResolver

Y = YEAR_IN_SECONDS

rate_strategy = st.integers(min_value=0, max_value=MAX_RATE_BPS)
rates_strategy = st.lists(rate_strategy, min_size=0, max_size=15).map(lambda rs: [0] + rs)
supply_strategy = st.integers(min_value=1, max_value=10**12)
deploy_strategy = st.integers(min_value=0, max_value=2**40)
# up to ~200 years, in seconds
span_strategy = st.integers(min_value=1, max_value=200 * Y)


def _policy(deploy: int, supply: int, rates, final: int) -> IssuancePolicy:
    return IssuancePolicy(
        resolver=YearResolver(deploy_time=deploy),
        base_supply=supply * UNIT,
        schedule=InflationSchedule.from_rates(rates, final),
    )


def _naive_total(p: IssuancePolicy, last: int, now: int) -> int:
    """Year-by-year loop, no closed form."""
    start = p.year_since_deploy(last)
    end = p.year_since_deploy(now)
    if start == end:
        return p.tokens_per_year(start) * (now - last) // Y
    total = p.tokens_per_year(start) * (p.resolver.year_start(start + 1) - last) // Y
    for y in range(start + 1, end):
        total += p.tokens_per_year(y)
    total += p.tokens_per_year(end) * (now - p.resolver.year_start(end)) // Y
    return total


class TestAccrualInvariants:
    @given(
        deploy=deploy_strategy,
        supply=supply_strategy,
        rates=rates_strategy,
        final=rate_strategy,
        offset=st.integers(min_value=0, max_value=40 * Y),
        span=span_strategy,
    )
    @settings(max_examples=200, deadline=None)
    def test_matches_year_by_year_sum(self, deploy, supply, rates, final, offset, span):
        p = _policy(deploy, supply, rates, final)
        last = deploy + offset
        now = last + span
        assert p.calculate_mintable_tokens(last, now) == _naive_total(p, last, now)

    @given(
        deploy=deploy_strategy,
        supply=supply_strategy,
        rates=rates_strategy,
        final=rate_strategy,
        span=span_strategy,
        extra=st.integers(min_value=1, max_value=5 * Y),
    )
    @settings(max_examples=200, deadline=None)
    def test_never_decreases_with_time(self, deploy, supply, rates, final, span, extra):
        p = _policy(deploy, supply, rates, final)
        a = p.calculate_mintable_tokens(deploy, deploy + span)
        b = p.calculate_mintable_tokens(deploy, deploy + span + extra)
        assert 0 <= a <= b

    @given(
        deploy=deploy_strategy,
        supply=supply_strategy,
        rates=rates_strategy,
        final=rate_strategy,
        cuts=st.lists(st.integers(min_value=1, max_value=30 * Y), min_size=1, max_size=25, unique=True),
    )
    @settings(max_examples=200, deadline=None)
    def test_splitting_mints_loses_only_rounding_dust(self, deploy, supply, rates, final, cuts):
        p = _policy(deploy, supply, rates, final)
        points = [deploy] + [deploy + c for c in sorted(cuts)]
        once = p.calculate_mintable_tokens(points[0], points[-1])

        split = 0
        for last, now in zip(points, points[1:]):
            split += p.calculate_mintable_tokens(last, now)

        calls = len(points) - 1
        assert split <= once
        # each call floors at most three terms
        assert once - split < 3 * calls

    @given(
        supply=supply_strategy,
        rates=rates_strategy,
        final=rate_strategy,
        years=st.integers(min_value=1, max_value=60),
    )
    @settings(max_examples=100, deadline=None)
    def test_whole_years_sum_exact_yearly_amounts(self, supply, rates, final, years):
        p = _policy(0, supply, rates, final)
        expected = sum(p.tokens_per_year(y) for y in range(1, years + 1))
        assert p.calculate_mintable_tokens(0, years * Y) == expected

    @given(
        supply=supply_strategy,
        rates=rates_strategy,
        final=rate_strategy,
        year=st.integers(min_value=1, max_value=10_000),
    )
    @settings(max_examples=100, deadline=None)
    def test_tokens_per_year_depends_only_on_base_supply_and_rate(self, supply, rates, final, year):
        p = _policy(0, supply, rates, final)
        rate = rates[year] if year < len(rates) else final
        assert p.tokens_per_year(year) == supply * UNIT * rate // 10_000
