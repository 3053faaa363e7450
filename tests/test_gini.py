import math

import numpy as np
import pytest

from core.gini import GiniIndex


def brute_force(freqs):
    n = len(freqs)
    f = sorted(freqs)
    total = sum(f)
    if n <= 1 or total == 0:
        return float('nan')
    return sum((2 * j - n - 1) * v for j, v in enumerate(f, 1)) / ((n - 1) * total)


class TestGiniIndex:
    def test_empty_is_nan(self):
        assert math.isnan(GiniIndex(3).get_value())

    def test_single_item_is_nan(self):
        gini = GiniIndex(1)
        gini.update_frequency(0, 5)
        assert math.isnan(gini.get_value())

    def test_trace(self):
        # (item, delta) -> expected value after the update
        steps = [
            ((0, 1), 1.0),        # [1, 0, 0]
            ((0, 2), 1.0),        # [3, 0, 0]
            ((1, 1), 0.75),       # [3, 1, 0]
            ((1, 1), 0.6),        # [3, 2, 0]
            ((2, 1), 1.0 / 3),    # [3, 2, 1]
            ((0, -1), 0.2),       # [2, 2, 1]
            ((1, -1), 0.25),      # [2, 1, 1]
            ((0, -1), 0.0),       # [1, 1, 1]
            ((2, -1), 0.5),       # [1, 1, 0]
            ((1, -1), 1.0),       # [1, 0, 0]
        ]
        gini = GiniIndex(3)
        for (idx, delta), expected in steps:
            gini.update_frequency(idx, delta)
            assert gini.get_value() == pytest.approx(expected)
        gini.update_frequency(0, -1)
        assert math.isnan(gini.get_value())

    def test_matches_brute_force_on_random_updates(self):
        rng = np.random.default_rng(7)
        n = 6
        freqs = [0] * n
        gini = GiniIndex(n)
        for _ in range(300):
            idx = int(rng.integers(n))
            delta = int(rng.integers(-2, 4))
            if freqs[idx] + delta < 0:
                delta = -freqs[idx]
            freqs[idx] += delta
            gini.update_frequency(idx, delta)
            expected = brute_force(freqs)
            if math.isnan(expected):
                assert math.isnan(gini.get_value())
            else:
                assert gini.get_value() == pytest.approx(expected)
            assert gini.get_frequency(idx) == freqs[idx]

    def test_initial_frequencies(self):
        gini = GiniIndex(3, {0: 3, 1: 1})
        assert gini.get_value() == pytest.approx(0.75)
        gini.reset()
        assert gini.get_value() == pytest.approx(0.75)

    def test_invalid_updates(self):
        gini = GiniIndex(3)
        with pytest.raises(ValueError):
            gini.update_frequency(3, 1)
        with pytest.raises(ValueError):
            gini.update_frequency(-1, 1)
        with pytest.raises(ValueError):
            gini.update_frequency(0, -1)
