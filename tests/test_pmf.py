import numpy as np
import pytest

from algorithms.pmf import get_inv, EpsilonGreedyPMF, LinUCBPMF, ThompsonSamplingPMF
from core.rating import NOT_RATED

TRAIN = [(0, 0, 1.0), (0, 1, 0.0), (1, 0, 1.0), (1, 2, 1.0), (2, 3, 1.0)]


def make(cls, seed=0, **kwargs):
    return cls(3, 4, 2, 1.0, 1.0, 1.0, 5, seed=seed, **kwargs)


class TestHelpers:
    def test_sherman_morrison(self):
        m = np.array([[2.0, 0.5], [0.5, 1.0]])
        x = np.array([0.3, -1.2])
        assert get_inv(np.linalg.inv(m), x) == pytest.approx(np.linalg.inv(m + np.outer(x, x)))


class TestInteractivePMF:
    def test_training_fits_the_factors(self):
        rec = make(EpsilonGreedyPMF, epsilon=0.0)
        rec.init(TRAIN)
        for uidx in range(3):
            expected = np.linalg.solve(rec.A[uidx], rec.b[uidx])
            assert rec.P[uidx] == pytest.approx(expected)
        # the only rating of item 1 is a zero
        assert rec.Q[1] == pytest.approx(np.zeros(2))

    def test_without_training_the_item_factors_stay_random(self):
        rec = make(EpsilonGreedyPMF, epsilon=0.0)
        rec.init()
        assert not np.allclose(rec.Q, 0.0)
        assert np.allclose(rec.P, 0.0)

    def test_unknown_user_draws_uniformly(self):
        chosen = set()
        for seed in range(40):
            rec = make(EpsilonGreedyPMF, seed=seed, epsilon=0.0)
            rec.init(TRAIN[:1])
            chosen.add(rec.next(2, [0, 1, 2, 3]))
        assert chosen == {0, 1, 2, 3}

    def test_online_update_moves_only_the_user(self):
        rec = make(LinUCBPMF, alpha=1.0)
        rec.init(TRAIN)
        q = rec.Q.copy()
        rec.update(2, 1, 1.0)
        assert rec.Q == pytest.approx(q)
        assert rec.Ainv[2] == pytest.approx(np.linalg.inv(rec.A[2]))
        assert rec.P[2] == pytest.approx(np.linalg.solve(rec.A[2], rec.b[2]))
        assert rec.retrieved.get(2, 1) == 1.0

    def test_not_rated_is_ignored(self):
        rec = make(LinUCBPMF, alpha=1.0)
        rec.init(TRAIN)
        before = rec.A[0].copy()
        rec.update(0, 2, NOT_RATED)
        assert rec.A[0] == pytest.approx(before)
        assert rec.retrieved.get(0, 2) is None

    def test_greedy_exploits(self):
        rec = make(EpsilonGreedyPMF, epsilon=0.0)
        rec.init(TRAIN)
        pu = rec.P[0]
        best = max([1, 2, 3], key=lambda i: pu.dot(rec.Q[i]))
        assert rec.next(0, [1, 2, 3]) == best

    def test_linucb_bonus(self):
        rec = make(LinUCBPMF, alpha=0.0)
        rec.init(TRAIN)
        greedy = rec.next(1, [1, 3])
        assert greedy == max([1, 3], key=lambda i: rec.P[1].dot(rec.Q[i]))

    def test_thompson_learns_from_the_sampled_item(self):
        rec = make(ThompsonSamplingPMF)
        rec.init(TRAIN)
        iidx = rec.next(0, [2, 3])
        sampled = rec.sampled_q[iidx].copy()
        b = rec.b[0].copy()
        rec.update(0, iidx, 1.0)
        assert rec.b[0] == pytest.approx(b + sampled)
        assert iidx not in rec.sampled_q

    def test_same_seed_same_run(self):
        def play(rec):
            rec.init(TRAIN)
            recs = []
            for step in range(8):
                uidx = step % 3
                iidx = rec.next(uidx, [0, 1, 2, 3])
                rec.update(uidx, iidx, 1.0 if iidx == uidx else 0.0)
                recs.append(iidx)
            return recs
        assert play(make(ThompsonSamplingPMF, seed=3)) == play(make(ThompsonSamplingPMF, seed=3))
