from __future__ import annotations

import pytest

from nuclearqc.core.utils import clip01, population_variance, rescale01, rescale_signed01


@pytest.mark.parametrize("x", [-2.0, -0.0, 0.3, 1.0, 7.5])
def test_clip01_and_rescale01_are_idempotent(x):
    assert clip01(clip01(x)) == clip01(x)
    once = rescale01(x, 0.05, 0.60)
    assert 0.0 <= once <= 1.0
    assert clip01(once) == once


def test_rescale01_empty_range_is_zero():
    assert rescale01(0.5, 0.6, 0.6) == 0.0
    assert rescale01(0.325, 0.05, 0.60) == pytest.approx(0.5)


def test_rescale_signed01():
    assert rescale_signed01(-1.0) == 0.0
    assert rescale_signed01(1.0) == 1.0
    assert rescale_signed01(0.0) == 0.5


def test_population_variance():
    assert population_variance([]) == 0.0
    assert population_variance([1.0, 1.0, 1.0]) == 0.0
    assert population_variance([0.0, 1.0]) == pytest.approx(0.25)
