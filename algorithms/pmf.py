"""Define interactive probabilistic matrix factorization (ICF) recommenders.

The factors are fitted by alternating least squares on the warm-up ratings.
During the run the item factors stay fixed, and each observed rating moves the
user factors: the ridge regression of user u over the item factors keeps
A_u = lambda_p * I + sum q_i q_i^T and b_u = sum r_ui q_i, so that
p_u = A_u^-1 b_u with covariance stdev * A_u^-1.
"""

import logging

import numpy as np

from algorithms.ptsmf import gaussian_sample
from algorithms.recommender import InteractiveRecommender, argmax_untie, random_choice
from algorithms.similarity import PreferenceMatrix

logger = logging.getLogger(__name__)


def get_inv(old_inv, x):
    # https://en.wikipedia.org/wiki/Sherman%E2%80%93Morrison_formula
    # inverse of old_M + x x^T from the inverse of old_M
    ax = old_inv.dot(x)
    return old_inv - np.outer(ax, ax) / (1.0 + x.dot(ax))


class InteractivePMFRecommender(InteractiveRecommender):
    def __init__(self, num_users, num_items, k, stdev_p, stdev_q, stdev, num_iter, ignore_not_rated=True, seed=0,
                 name='InteractivePMF'):
        """Args:
                k: int, number of latent factors
                stdev_p, stdev_q: float, prior deviation of the user and item factors
                stdev: float, prior deviation of the ratings
                num_iter: int, ALS iterations over the warm-up ratings
        """
        super(InteractivePMFRecommender, self).__init__(num_users, num_items, ignore_not_rated, seed, name)
        self.k = k
        self.stdev = stdev
        self.lambda_p = stdev_p / stdev
        self.lambda_q = stdev_q / stdev
        self.num_iter = num_iter
        self.retrieved = PreferenceMatrix() # rows: users, cols: items

    def reset(self):
        k = self.k
        self.retrieved.clear()
        self.P = np.zeros((self.num_users, k))
        self.Q = np.sqrt(1.0 / k) + self.rng.random((self.num_items, k))
        self.A = np.tile(np.identity(k) * self.lambda_p, (self.num_users, 1, 1))
        self.Ainv = np.tile(np.identity(k) / self.lambda_p, (self.num_users, 1, 1))
        self.b = np.zeros((self.num_users, k))
        self.cov_q = np.tile(np.identity(k) * self.stdev / self.lambda_q, (self.num_items, 1, 1))

    def init(self, ratings=None):
        """Store the warm-up ratings and fit both factor matrices on them. """
        self.rng = np.random.default_rng(self.seed)
        self.reset()
        for uidx, iidx, value in ratings or []:
            value = self.rating_value(value)
            if value is None:
                continue
            self.retrieved.set(uidx, iidx, value)
        if self.retrieved.rows():
            for _ in range(self.num_iter):
                self.set_min_p()
                self.set_min_q()
            logger.debug('%s trained on %d users', self.name, len(self.retrieved.rows()))

    def set_min_p(self):
        identity = np.identity(self.k)
        for uidx in range(self.num_users):
            A = identity * self.lambda_p
            b = np.zeros(self.k)
            for iidx, value in self.retrieved.row(uidx).items():
                qi = self.Q[iidx]
                A += np.outer(qi, qi)
                b += value * qi
            self.A[uidx] = A
            self.b[uidx] = b
            self.Ainv[uidx] = np.linalg.inv(A)
            self.P[uidx] = self.Ainv[uidx].dot(b)

    def set_min_q(self):
        identity = np.identity(self.k)
        for iidx in range(self.num_items):
            A = identity * self.lambda_q
            b = np.zeros(self.k)
            for uidx, value in self.retrieved.col(iidx).items():
                pu = self.P[uidx]
                A += np.outer(pu, pu)
                b += value * pu
            inverse = np.linalg.inv(A)
            self.Q[iidx] = inverse.dot(b)
            self.cov_q[iidx] = inverse * self.stdev

    def cov_p(self, uidx):
        return self.Ainv[uidx] * self.stdev

    def is_known(self, uidx):
        return len(self.retrieved.row(uidx)) > 0

    def next(self, uidx, candidates):
        if not candidates:
            return -1
        if not self.is_known(uidx):
            return random_choice(list(candidates), self.rng)
        return self.choose(uidx, list(candidates))

    def choose(self, uidx, candidates):
        raise NotImplementedError

    def item_vector(self, uidx, iidx):
        """Return: the item factors the rating of (uidx, iidx) is regressed on. """
        return self.Q[iidx]

    def fast_update(self, uidx, iidx, value):
        qi = self.item_vector(uidx, iidx)
        self.A[uidx] += np.outer(qi, qi)
        self.b[uidx] += value * qi
        self.Ainv[uidx] = get_inv(self.Ainv[uidx], qi)
        self.P[uidx] = self.Ainv[uidx].dot(self.b[uidx])
        self.retrieved.set(uidx, iidx, value)


class EpsilonGreedyPMF(InteractivePMFRecommender):
    def __init__(self, num_users, num_items, k, stdev_p, stdev_q, stdev, num_iter, epsilon, ignore_not_rated=True,
                 seed=0, name='EpsilonGreedyPMF'):
        super(EpsilonGreedyPMF, self).__init__(num_users, num_items, k, stdev_p, stdev_q, stdev, num_iter,
                                               ignore_not_rated, seed, name)
        self.epsilon = epsilon

    def choose(self, uidx, candidates):
        if self.rng.random() < self.epsilon:
            return random_choice(candidates, self.rng)
        pu = self.P[uidx]
        return argmax_untie(candidates, [pu.dot(self.Q[iidx]) for iidx in candidates], self.rng)


class LinUCBPMF(InteractivePMFRecommender):
    """score = p_u . q_i + alpha * sqrt(q_i^T cov(p_u) q_i) """

    def __init__(self, num_users, num_items, k, stdev_p, stdev_q, stdev, num_iter, alpha, ignore_not_rated=True,
                 seed=0, name='LinUCBPMF'):
        super(LinUCBPMF, self).__init__(num_users, num_items, k, stdev_p, stdev_q, stdev, num_iter,
                                        ignore_not_rated, seed, name)
        self.alpha = alpha

    def choose(self, uidx, candidates):
        pu = self.P[uidx]
        cov = self.cov_p(uidx)
        scores = []
        for iidx in candidates:
            qi = self.Q[iidx]
            scores.append(pu.dot(qi) + self.alpha * np.sqrt(max(qi.dot(cov).dot(qi), 0.0)))
        return argmax_untie(candidates, scores, self.rng)


class ThompsonSamplingPMF(InteractivePMFRecommender):
    """Samples the user and the item factors from their posteriors and exploits the sample. """

    def reset(self):
        super(ThompsonSamplingPMF, self).reset()
        self.sampled_user = -1
        self.sampled_q = {} # key: iidx, value: sampled factors of the recommended item

    def choose(self, uidx, candidates):
        pu = gaussian_sample(self.P[uidx], self.cov_p(uidx), 1.0, self.rng)
        sampled = {}
        scores = []
        for iidx in candidates:
            qi = gaussian_sample(self.Q[iidx], self.cov_q[iidx], 1.0, self.rng)
            sampled[iidx] = qi
            score = pu.dot(qi)
            scores.append(-np.inf if np.isnan(score) else score)
        iidx = argmax_untie(candidates, scores, self.rng)
        if uidx != self.sampled_user:
            self.sampled_user = uidx
            self.sampled_q = {}
        self.sampled_q[iidx] = sampled[iidx]
        return iidx

    def item_vector(self, uidx, iidx):
        if uidx == self.sampled_user and iidx in self.sampled_q:
            return self.sampled_q.pop(iidx)
        return self.Q[iidx]
