from __future__ import annotations

import pytest

from ztoken.ledger.constants import YEAR_IN_SECONDS
from ztoken.ledger.years import YearResolver
from ztoken.runtime.errors import InvalidTime

DEPLOY = 1_722_542_400


def test_year_length_is_365_days() -> None:
    assert YEAR_IN_SECONDS == 31_536_000


def test_year_since_deploy_is_one_based() -> None:
    r = YearResolver(deploy_time=DEPLOY)
    assert r.year_since_deploy(DEPLOY) == 1
    assert r.year_since_deploy(DEPLOY + 1) == 1
    assert r.year_since_deploy(DEPLOY + YEAR_IN_SECONDS - 1) == 1
    assert r.year_since_deploy(DEPLOY + YEAR_IN_SECONDS) == 2
    assert r.year_since_deploy(DEPLOY + YEAR_IN_SECONDS * 2 + 3) == 3
    assert r.year_since_deploy(DEPLOY + YEAR_IN_SECONDS * 17 + 18_231) == 18


def test_year_since_deploy_rejects_time_before_deploy() -> None:
    r = YearResolver(deploy_time=DEPLOY)
    with pytest.raises(InvalidTime) as ei:
        r.year_since_deploy(DEPLOY - 1)
    assert ei.value.lower_bound == DEPLOY
    assert ei.value.actual == DEPLOY - 1
    assert ei.value.details == {"lower_bound": DEPLOY, "actual": DEPLOY - 1}


def test_offset_in_year_stays_within_year() -> None:
    r = YearResolver(deploy_time=DEPLOY)
    for ts in (DEPLOY, DEPLOY + 5, DEPLOY + YEAR_IN_SECONDS, DEPLOY + 3 * YEAR_IN_SECONDS - 1):
        y = r.year_since_deploy(ts)
        off = r.offset_in_year(ts, y)
        assert 0 <= off < YEAR_IN_SECONDS
        assert r.year_start(y) + off == ts


def test_offset_at_boundary_is_zero() -> None:
    r = YearResolver(deploy_time=DEPLOY)
    ts = DEPLOY + 4 * YEAR_IN_SECONDS
    assert r.year_since_deploy(ts) == 5
    assert r.offset_in_year(ts, 5) == 0
