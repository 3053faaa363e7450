"""Define ICTR: interactive collaborative topic regression with particle learning.

Users are mixtures over K latent topics (Dirichlet with parameters lambda),
topics are distributions over items (Dirichlet with parameters eta), and the
rating of (u, i) is Gaussian around p_u . q_i with an item-level noise which
has an inverse-gamma prior.
"""

import numpy as np
from scipy.stats import invgamma, norm

from algorithms.ptsmf import ParticleFilterRecommender

THOMPSON = 'thompson'
UCB = 'ucb'


class ICTRParticle(object):
    def __init__(self, num_users, num_items, k, rng):
        self.num_users = num_users
        self.num_items = num_items
        self.k = k
        self.rng = rng

    def initialize(self):
        k, n = self.k, self.num_items
        self.lambdas = np.ones((self.num_users, k))
        self.etas = np.ones((k, n))
        self.phi = np.vstack([self.rng.dirichlet(self.etas[t]) for t in range(k)]) # K x num_items
        self.P = np.vstack([self.rng.dirichlet(self.lambdas[u]) for u in range(self.num_users)])
        self.mu_q = np.zeros((n, k))
        self.sigma_q = np.tile(np.identity(k), (n, 1, 1))
        self.alpha = np.ones(n)
        self.beta = np.ones(n)
        self.sigma = invgamma.rvs(self.alpha, scale=self.beta, random_state=self.rng)
        self.Q = np.sqrt(self.sigma)[:, None] * self.rng.standard_normal((n, k))
        return self

    def clone(self):
        particle = ICTRParticle(self.num_users, self.num_items, self.k, self.rng)
        for attr in ('lambdas', 'etas', 'phi', 'P', 'mu_q', 'sigma_q', 'alpha', 'beta', 'sigma', 'Q'):
            setattr(particle, attr, getattr(self, attr).copy())
        return particle

    def sample_topic(self, uidx, iidx, value):
        """Draw the topic which explains the rating. """
        lambdas = self.lambdas[uidx]
        expected_p = (lambdas + value) / (lambdas.sum() + value)
        expected_phi = (self.phi[:, iidx] + value) / (self.etas.sum(axis=1) + value)
        thetas = expected_p * expected_phi
        cumulative = np.cumsum(thetas)
        z = np.searchsorted(cumulative, self.rng.random() * cumulative[-1], side='right')
        return int(min(z, self.k - 1))

    def update(self, uidx, iidx, value):
        z = self.sample_topic(uidx, iidx, value)

        pu = self.P[uidx]
        old_sigma = self.sigma_q[iidx]
        old_mu = self.mu_q[iidx]
        new_sigma = old_sigma + np.outer(pu, pu)
        new_mu = np.linalg.solve(new_sigma, old_sigma.dot(old_mu) + value * pu)

        self.alpha[iidx] += 0.5
        self.beta[iidx] += (new_mu.dot(new_sigma).dot(new_mu) + old_mu.dot(old_sigma).dot(old_mu) + value * value) / 2.0

        self.lambdas[uidx, z] += value
        self.etas[:, iidx] += value
        self.sigma_q[iidx] = new_sigma
        self.mu_q[iidx] = new_mu

        self.sigma[iidx] = invgamma.rvs(self.alpha[iidx], scale=self.beta[iidx], random_state=self.rng)
        self.P[uidx] = self.rng.dirichlet(self.lambdas[uidx])
        for t in range(self.k):
            self.phi[t] = self.rng.dirichlet(self.etas[t])
        self.sample_items()

    def sample_items(self):
        """Q_i ~ N(mu_i, sigma_i * Sigma_i) for every item. """
        eigvals, eigvecs = np.linalg.eigh(self.sigma_q)
        eigvals = np.clip(eigvals, 0.0, None)
        z = np.sqrt(eigvals * self.sigma[:, None]) * self.rng.standard_normal((self.num_items, self.k))
        self.Q = self.mu_q + np.einsum('nij,nj->ni', eigvecs, z)

    def estimated_reward(self, uidx, iidx):
        return float(self.P[uidx].dot(self.Q[iidx]))

    def variance(self, iidx):
        return float(self.sigma[iidx])

    def weight(self, uidx, iidx, value):
        gaussian = norm.pdf(value, loc=self.estimated_reward(uidx, iidx), scale=self.sigma[iidx])
        lambdas = self.lambdas[uidx]
        etas = self.etas[:, iidx]
        return float(gaussian * lambdas.dot(etas) / (lambdas.sum() * etas.sum()))


def ictr_factory(k):
    def create(num_users, num_items, rng):
        return ICTRParticle(num_users, num_items, k, rng).initialize()
    return create


class ICTRRecommender(ParticleFilterRecommender):
    def __init__(self, num_users, num_items, k, num_particles, policy=THOMPSON, gamma=1.0, ignore_not_rated=True,
                 seed=0, name='ICTR'):
        """Args:
                k: int, number of topics
                policy: THOMPSON scores the particle average, UCB adds gamma * sqrt(average noise)
        """
        if policy not in (THOMPSON, UCB):
            raise ValueError('Unknown ICTR policy: {}'.format(policy))
        super(ICTRRecommender, self).__init__(num_users, num_items, num_particles, ictr_factory(k),
                                              ignore_not_rated, seed, name)
        self.k = k
        self.policy = policy
        self.gamma = gamma

    def score(self, uidx, iidx):
        mean = np.mean([p.estimated_reward(uidx, iidx) for p in self.particles])
        if self.policy == UCB:
            variance = np.mean([p.variance(iidx) for p in self.particles])
            mean += self.gamma * np.sqrt(variance)
        return mean
