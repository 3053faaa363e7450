"""Define multi-armed bandits over items, and the recommenders which wrap them: one bandit shared by
every user, or one bandit per user.
"""

import math

import numpy as np

from algorithms.recommender import InteractiveRecommender, argmax_untie


def stationary():
    """Sample average: old + (r - old) / n. """
    def update(old, reward, n):
        return old + (reward - old) / n
    return update


def non_stationary(alpha):
    """Exponential recency-weighted average: old + alpha * (r - old). """
    def update(old, reward, n):
        return old + alpha * (reward - old)
    return update


UPDATE_FUNCTIONS = {
    'stationary': lambda params: stationary(),
    'nonstationary': lambda params: non_stationary(float(params.get('alpha', 0.1))),
}


class MultiArmedBandit(object):
    def __init__(self, num_arms):
        self.num_arms = num_arms
        self.rng = np.random.default_rng(0)

    def set_rng(self, rng):
        self.rng = rng

    def reset(self):
        raise NotImplementedError

    def scores(self, available):
        """Return: list with the score of each available arm. """
        raise NotImplementedError

    def next(self, available):
        """Return: the chosen arm among `available`, -1 if there are none. """
        if not available:
            return -1
        if len(available) == 1:
            return available[0]
        return argmax_untie(available, self.scores(available), self.rng)

    def update(self, arm, reward):
        raise NotImplementedError


class EpsilonGreedy(MultiArmedBandit):
    def __init__(self, num_arms, epsilon, update_function=None):
        super(EpsilonGreedy, self).__init__(num_arms)
        self.epsilon = epsilon
        self.update_function = update_function or stationary()
        self.reset()

    def reset(self):
        self.values = np.zeros(self.num_arms)
        self.num_times = np.zeros(self.num_arms, dtype=int)
        self.num_iter = 1

    def current_epsilon(self):
        return self.epsilon

    def scores(self, available):
        return [self.values[i] for i in available]

    def next(self, available):
        if not available:
            return -1
        if len(available) == 1:
            return available[0]
        if self.rng.random() < self.current_epsilon():
            return available[int(self.rng.integers(len(available)))]
        return argmax_untie(available, self.scores(available), self.rng)

    def update(self, arm, reward):
        self.num_times[arm] += 1
        self.num_iter += 1
        self.values[arm] = self.update_function(self.values[arm], reward, self.num_times[arm])


class EpsilonTGreedy(EpsilonGreedy):
    """Epsilon decays with time: epsilon_t = min(1, alpha * num_arms / t). """

    def __init__(self, num_arms, alpha, update_function=None):
        super(EpsilonTGreedy, self).__init__(num_arms, 1.0, update_function)
        self.alpha = alpha

    def current_epsilon(self):
        return min(1.0, self.alpha * self.num_arms / self.num_iter)


class UCB1(MultiArmedBandit):
    def __init__(self, num_arms, alpha=2.0):
        super(UCB1, self).__init__(num_arms)
        self.alpha = alpha
        self.reset()

    def reset(self):
        self.values = np.zeros(self.num_arms)
        self.num_times = np.zeros(self.num_arms)
        self.num_iter = 0

    def scores(self, available):
        log_iter = math.log(self.num_iter + 1)
        scores = []
        for i in available:
            n = self.num_times[i]
            if n == 0:
                scores.append(math.inf)
            else:
                scores.append(self.values[i] + math.sqrt(self.alpha * log_iter / n))
        return scores

    def update(self, arm, reward):
        self.num_times[arm] += 1
        self.num_iter += 1
        self.values[arm] += (reward - self.values[arm]) / self.num_times[arm]


class UCB1Tuned(UCB1):
    """UCB1 with the exploration term bounded by the empirical variance of each arm.

    score = mean + sqrt(ln(N + 1) / n * min(1/4, V)),  V = var + sqrt(2 ln(N + 1) / n)
    """

    def reset(self):
        super(UCB1Tuned, self).reset()
        self.m2 = np.zeros(self.num_arms) # running sum of squared deviations (Welford)

    def scores(self, available):
        log_iter = math.log(self.num_iter + 1)
        scores = []
        for i in available:
            n = self.num_times[i]
            if n == 0:
                scores.append(math.inf)
                continue
            variance = self.m2[i] / n + math.sqrt(2 * log_iter / n)
            scores.append(self.values[i] + math.sqrt(log_iter / n * min(0.25, variance)))
        return scores

    def update(self, arm, reward):
        old_mean = self.values[arm]
        super(UCB1Tuned, self).update(arm, reward)
        self.m2[arm] += (reward - old_mean) * (reward - self.values[arm])


class ThompsonSampling(MultiArmedBandit):
    """Beta-Bernoulli Thompson sampling. Rewards are expected in [0, 1]. """

    def __init__(self, num_arms, alpha=1.0, beta=1.0):
        super(ThompsonSampling, self).__init__(num_arms)
        self.alpha = alpha
        self.beta = beta
        self.reset()

    def reset(self):
        self.alphas = np.full(self.num_arms, float(self.alpha))
        self.betas = np.full(self.num_arms, float(self.beta))

    def scores(self, available):
        return [self.rng.beta(self.alphas[i], self.betas[i]) for i in available]

    def update(self, arm, reward):
        self.alphas[arm] += reward
        self.betas[arm] += 1.0 - reward


class ItemBanditRecommender(InteractiveRecommender):
    def __init__(self, num_users, num_items, bandit, ignore_not_rated=True, seed=0, name='ItemBandit'):
        """The same bandit serves every user: each item is an arm. """
        super(ItemBanditRecommender, self).__init__(num_users, num_items, ignore_not_rated, seed, name)
        self.bandit = bandit
        self.bandit.set_rng(self.rng)

    def reset(self):
        self.bandit.reset()
        self.bandit.set_rng(self.rng)

    def next(self, uidx, candidates):
        return self.bandit.next(list(candidates or []))

    def fast_update(self, uidx, iidx, value):
        self.bandit.update(iidx, value)


class UserBanditRecommender(InteractiveRecommender):
    def __init__(self, num_users, num_items, make_bandit, ignore_not_rated=True, seed=0, name='UserBandit'):
        """Every user gets a bandit of its own over the items.

        Args:
            make_bandit: callable num_items -> MultiArmedBandit, called the first time a user is seen
        """
        super(UserBanditRecommender, self).__init__(num_users, num_items, ignore_not_rated, seed, name)
        self.make_bandit = make_bandit
        self.bandits = {} # key: uidx, value: MultiArmedBandit

    def reset(self):
        self.bandits = {}

    def get_bandit(self, uidx):
        if uidx not in self.bandits:
            bandit = self.make_bandit(self.num_items)
            bandit.set_rng(self.rng)
            self.bandits[uidx] = bandit
        return self.bandits[uidx]

    def next(self, uidx, candidates):
        return self.get_bandit(uidx).next(list(candidates or []))

    def fast_update(self, uidx, iidx, value):
        self.get_bandit(uidx).update(iidx, value)
