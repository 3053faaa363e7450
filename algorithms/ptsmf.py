"""Define particle Thompson sampling for matrix factorization (PTS-MF).

Each particle holds a full sample of the user (P) and item (Q) factor matrices
together with the sufficient statistics of their Gaussian posteriors. A
recommendation draws one particle and exploits it; every observed rating
reweights the particles by its predictive density, resamples them and moves
each survivor with one Gibbs step.
"""

import logging

import numpy as np
from scipy.stats import norm

from algorithms.recommender import InteractiveRecommender, argmax_untie, random_choice

logger = logging.getLogger(__name__)


def gaussian_sample(mean, covariance, scale, rng):
    """Draw from N(mean, scale * covariance) through the eigendecomposition of `covariance`. """
    eigvals, eigvecs = np.linalg.eigh(covariance)
    eigvals = np.clip(eigvals, 0.0, None)
    z = np.sqrt(eigvals * scale) * rng.standard_normal(len(mean))
    return mean + eigvecs.dot(z)


def systematic_resample(weights, rng):
    """Return the indexes of the particles kept after systematic resampling.

    Args:
        weights: array of non-negative weights (need not be normalized)
    """
    n = len(weights)
    weights = np.asarray(weights, dtype=float)
    total = weights.sum()
    if not np.isfinite(total) or total <= 0.0:
        logger.debug('Degenerate particle weights, resampling uniformly')
        weights = np.ones(n)
        total = float(n)
    cumulative = np.cumsum(weights / total)
    positions = (rng.random() + np.arange(n)) / n
    indexes = np.searchsorted(cumulative, positions, side='right')
    return np.minimum(indexes, n - 1)


class PTSMFParticle(object):
    def __init__(self, num_users, num_items, k, sigma, sigma_p, sigma_q, rng, bayesian=False):
        """Args:
                k: int, number of latent factors
                sigma: float, rating noise
                sigma_p, sigma_q: float, prior variance of the user and item factors
                rng: numpy Generator shared by every particle of a recommender
        """
        self.num_users = num_users
        self.num_items = num_items
        self.k = k
        self.sigma = sigma
        self.sigma_p = sigma_p
        self.sigma_q = sigma_q
        self.rng = rng
        self.bayesian = bayesian

    def initialize(self):
        k = self.k
        # for bayesian particles the prior 1/sigma_p is added when A_u is read, since sigma_p changes
        prior_u = np.zeros((k, k)) if self.bayesian else np.identity(k) / self.sigma_p
        self.Au = np.tile(prior_u, (self.num_users, 1, 1))
        self.bu = np.zeros((self.num_users, k))
        self.Ai = np.tile(np.identity(k) / self.sigma_q, (self.num_items, 1, 1))
        self.bi = np.zeros((self.num_items, k))
        self.P = self.rng.normal(0.0, np.sqrt(self.sigma_p), size=(self.num_users, k))
        self.Q = self.rng.normal(0.0, np.sqrt(self.sigma_q), size=(self.num_items, k))
        return self

    def user_precision(self, uidx):
        if self.bayesian:
            return self.Au[uidx] + np.identity(self.k) / self.sigma_p
        return self.Au[uidx]

    def clone(self):
        particle = self.__class__.__new__(self.__class__)
        particle.__dict__.update(self.__dict__)
        for attr in ('Au', 'bu', 'Ai', 'bi', 'P', 'Q'):
            setattr(particle, attr, getattr(self, attr).copy())
        return particle

    def update(self, uidx, iidx, value):
        qi = self.Q[iidx]
        self.Au[uidx] += np.outer(qi, qi) / self.sigma
        self.bu[uidx] += value * qi
        inverse = np.linalg.inv(self.user_precision(uidx))
        pu = gaussian_sample(inverse.dot(self.bu[uidx]), inverse, 1.0 / self.sigma, self.rng)
        self.update_norm_p(uidx, pu)
        self.P[uidx] = pu

        self.Ai[iidx] += np.outer(pu, pu) / self.sigma
        self.bi[iidx] += value * pu
        inverse = np.linalg.inv(self.Ai[iidx])
        self.Q[iidx] = gaussian_sample(inverse.dot(self.bi[iidx]), inverse, 1.0 / self.sigma, self.rng)
        self.sigma_p = self.update_sigma_p()

    def update_norm_p(self, uidx, pu):
        pass

    def update_sigma_p(self):
        return self.sigma_p

    def estimated_reward(self, uidx, iidx):
        return float(self.P[uidx].dot(self.Q[iidx]))

    def weight(self, uidx, iidx, value):
        """Predictive density of `value` under the particle's posterior for the user. """
        qi = self.Q[iidx]
        inverse = np.linalg.inv(self.user_precision(uidx))
        mu_u = inverse.dot(self.bu[uidx])
        variance = 1.0 / self.sigma + qi.dot(inverse).dot(qi)
        return float(norm.pdf(value, loc=qi.dot(mu_u), scale=np.sqrt(variance)))


class NormalParticle(PTSMFParticle):
    def __init__(self, num_users, num_items, k, sigma, sigma_p, sigma_q, rng):
        super(NormalParticle, self).__init__(num_users, num_items, k, sigma, sigma_p, sigma_q, rng, bayesian=False)


class BayesianParticle(PTSMFParticle):
    """The precision of the user factors gets a Gamma(alpha, beta) prior and is resampled after every update. """

    def __init__(self, num_users, num_items, k, sigma, sigma_q, alpha, beta, rng):
        super(BayesianParticle, self).__init__(num_users, num_items, k, sigma, 1.0, sigma_q, rng, bayesian=True)
        self.alpha = alpha
        self.beta = beta
        self.norm_p = 0.0

    def initialize(self):
        super(BayesianParticle, self).initialize()
        self.norm_p = float(np.sum(self.P * self.P))
        return self

    def update_norm_p(self, uidx, pu):
        old = self.P[uidx]
        self.norm_p += pu.dot(pu) - old.dot(old)

    def update_sigma_p(self):
        alpha_p = self.alpha + self.num_users * self.k / 2.0
        beta_p = self.beta + self.norm_p / 2.0
        lambda_p = self.rng.gamma(alpha_p) / beta_p
        return 1.0 / lambda_p


def normal_factory(k, sigma, sigma_p, sigma_q):
    def create(num_users, num_items, rng):
        return NormalParticle(num_users, num_items, k, sigma, sigma_p, sigma_q, rng).initialize()
    return create


def bayesian_factory(k, sigma, sigma_q, alpha, beta):
    def create(num_users, num_items, rng):
        return BayesianParticle(num_users, num_items, k, sigma, sigma_q, alpha, beta, rng).initialize()
    return create


class ParticleFilterRecommender(InteractiveRecommender):
    """Keeps a population of particles, reweighted and resampled after every rating. """

    def __init__(self, num_users, num_items, num_particles, particle_factory, ignore_not_rated=True, seed=0,
                 name='ParticleFilter'):
        super(ParticleFilterRecommender, self).__init__(num_users, num_items, ignore_not_rated, seed, name)
        self.num_particles = num_particles
        self.particle_factory = particle_factory
        self.particles = []
        self.seen = set() # users with at least one observed rating

    def reset(self):
        self.particles = [self.particle_factory(self.num_users, self.num_items, self.rng)
                          for _ in range(self.num_particles)]
        self.seen = set()

    def init(self, ratings=None):
        """Train every particle on `ratings` directly: the warm-up neither reweights nor resamples. """
        self.rng = np.random.default_rng(self.seed)
        self.reset()
        for uidx, iidx, value in ratings or []:
            value = self.rating_value(value)
            if value is None:
                continue
            self.seen.add(uidx)
            for particle in self.particles:
                particle.update(uidx, iidx, value)

    def next(self, uidx, candidates):
        if not candidates:
            return -1
        if uidx not in self.seen:
            return random_choice(list(candidates), self.rng)
        scores = [self.score(uidx, iidx) for iidx in candidates]
        scores = [-np.inf if np.isnan(s) else s for s in scores]
        return argmax_untie(candidates, scores, self.rng)

    def score(self, uidx, iidx):
        raise NotImplementedError

    def fast_update(self, uidx, iidx, value):
        self.seen.add(uidx)
        weights = [p.weight(uidx, iidx, value) for p in self.particles]
        indexes = systematic_resample(weights, self.rng)
        resampled = []
        for idx in indexes:
            particle = self.particles[idx].clone()
            particle.update(uidx, iidx, value)
            resampled.append(particle)
        self.particles = resampled


class ParticleThompsonSamplingMF(ParticleFilterRecommender):
    def __init__(self, num_users, num_items, num_particles, particle_factory, ignore_not_rated=True, seed=0,
                 name='PTSMF'):
        super(ParticleThompsonSamplingMF, self).__init__(num_users, num_items, num_particles, particle_factory,
                                                         ignore_not_rated, seed, name)

    def next(self, uidx, candidates):
        if not candidates:
            return -1
        if uidx not in self.seen:
            return random_choice(list(candidates), self.rng)
        # one particle serves the whole decision
        particle = self.particles[int(self.rng.integers(len(self.particles)))]
        scores = [particle.estimated_reward(uidx, iidx) for iidx in candidates]
        scores = [-np.inf if np.isnan(s) else s for s in scores]
        return argmax_untie(candidates, scores, self.rng)
