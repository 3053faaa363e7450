"""Map algorithm identifiers to recommender factories.

An algorithm is described by one line of text:

    <id> key=value key=value ...

e.g. `ub k=10 sim=cosine ignore_zeros=true`. The registry turns the id and its
parameters into a factory `(num_users, num_items, seed) -> InteractiveRecommender`,
so every run can build a fresh recommender with its own seed.
"""

import logging

from algorithms.bandit import (ItemBanditRecommender, UserBanditRecommender, EpsilonGreedy, EpsilonTGreedy, UCB1,
                               UCB1Tuned, ThompsonSampling, UPDATE_FUNCTIONS)
from algorithms.ictr import ICTRRecommender, THOMPSON, UCB
from algorithms.knn import InteractiveUserBasedKNN, InteractiveItemBasedKNN
from algorithms.pmf import EpsilonGreedyPMF, LinUCBPMF, ThompsonSamplingPMF
from algorithms.ptsmf import ParticleThompsonSamplingMF, normal_factory, bayesian_factory
from algorithms.similarity import (VectorCosineSimilarity, RestrictedVectorCosineSimilarity,
                                   BetaStochasticSimilarity)

logger = logging.getLogger(__name__)


class UnconfiguredError(Exception):
    """A factory was requested before the selector was configured. """


def str2bool(v):
    if isinstance(v, bool):
        return v
    if v.lower() in ['yes', 'true', 't', 'y', '1']:
        return True
    elif v.lower() in ['no', 'false', 'f', 'n', '0']:
        return False
    raise ValueError('Unsupported boolean value: {}'.format(v))


def parse_algorithm(line):
    """Parse `<id> key=value ...` into (id, dict of str -> str).

    Raises:
        ValueError: on an empty line or a parameter without `=`.
    """
    tokens = line.split()
    if not tokens:
        raise ValueError('Empty algorithm description')
    name, params = tokens[0], {}
    for token in tokens[1:]:
        key, sep, value = token.partition('=')
        if not sep or not key:
            raise ValueError('Malformed parameter "{}" in "{}"'.format(token, line))
        params[key] = value
    return name, params


class Params(object):
    """Typed, consumed-once access to the parameters of an algorithm line. """

    def __init__(self, name, params):
        self.name = name
        self.params = dict(params)
        self.used = set()

    def get(self, key, default, cast=str):
        self.used.add(key)
        if key not in self.params:
            return default
        try:
            return cast(self.params[key])
        except ValueError as e:
            raise ValueError('Invalid value for {} in {}: {}'.format(key, self.name, e))

    def check_unused(self):
        unknown = sorted(set(self.params) - self.used)
        if unknown:
            raise ValueError('Unknown parameters for {}: {}'.format(self.name, ', '.join(unknown)))


def _common(p):
    return p.get('ignore_not_rated', True, str2bool)


def _bandit_builder(make_bandit, per_user=False):
    def build(p):
        ignore_not_rated = _common(p)
        make = make_bandit(p)

        def factory(num_users, num_items, seed):
            if per_user:
                return UserBanditRecommender(num_users, num_items, make, ignore_not_rated, seed, name=p.name)
            return ItemBanditRecommender(num_users, num_items, make(num_items), ignore_not_rated, seed,
                                         name=p.name)
        return factory
    return build


def _update_function(p):
    kind = p.get('update', 'stationary')
    if kind not in UPDATE_FUNCTIONS:
        raise ValueError('Unknown update function {} in {}'.format(kind, p.name))
    alpha = p.get('update_alpha', 0.1, float)
    return UPDATE_FUNCTIONS[kind]({'alpha': alpha})


def _egreedy(p):
    epsilon = p.get('epsilon', 0.1, float)
    update = _update_function(p)
    return lambda num_items: EpsilonGreedy(num_items, epsilon, update)


def _etgreedy(p):
    alpha = p.get('alpha', 1.0, float)
    update = _update_function(p)
    return lambda num_items: EpsilonTGreedy(num_items, alpha, update)


def _ucb1(p):
    alpha = p.get('alpha', 2.0, float)
    return lambda num_items: UCB1(num_items, alpha)


def _ucb1tuned(p):
    return lambda num_items: UCB1Tuned(num_items)


def _thompson(p):
    alpha = p.get('alpha', 1.0, float)
    beta = p.get('beta', 1.0, float)
    return lambda num_items: ThompsonSampling(num_items, alpha, beta)


def _similarity(p, stochastic):
    """Return: callable (num_elems, seed) -> UpdateableSimilarity. """
    if stochastic:
        alpha = p.get('alpha', 1.0, float)
        beta = p.get('beta', 1.0, float)
        return lambda num_elems, seed: BetaStochasticSimilarity(num_elems, alpha, beta, seed)
    sim = p.get('sim', 'cosine')
    if sim == 'cosine':
        return lambda num_elems, seed: VectorCosineSimilarity(num_elems)
    elif sim == 'restricted':
        return lambda num_elems, seed: RestrictedVectorCosineSimilarity(num_elems)
    raise ValueError('Unknown similarity {} in {}'.format(sim, p.name))


def _user_knn(stochastic):
    def build(p):
        ignore_not_rated = _common(p)
        k = p.get('k', 10, int)
        ignore_zeros = p.get('ignore_zeros', True, str2bool)
        make_sim = _similarity(p, stochastic)

        def factory(num_users, num_items, seed):
            return InteractiveUserBasedKNN(num_users, num_items, k, make_sim(num_users, seed), ignore_zeros,
                                           ignore_not_rated, seed, name=p.name)
        return factory
    return build


def _item_knn(stochastic):
    def build(p):
        ignore_not_rated = _common(p)
        user_k = p.get('user_k', 0, int)
        item_k = p.get('item_k', 10, int)
        ignore_zeros = p.get('ignore_zeros', True, str2bool)
        make_sim = _similarity(p, stochastic)

        def factory(num_users, num_items, seed):
            return InteractiveItemBasedKNN(num_users, num_items, user_k, item_k, make_sim(num_items, seed),
                                           ignore_zeros, ignore_not_rated, seed, name=p.name)
        return factory
    return build


def _num_particles(p):
    num_particles = p.get('num_particles', 5, int)
    if num_particles <= 0:
        raise ValueError('num_particles must be positive in {}'.format(p.name))
    return num_particles


def _pts(p):
    ignore_not_rated = _common(p)
    num_particles = _num_particles(p)
    particle_factory = normal_factory(p.get('k', 2, int), p.get('sigma', 0.5, float),
                                      p.get('sigma_p', 1.0, float), p.get('sigma_q', 1.0, float))

    def factory(num_users, num_items, seed):
        return ParticleThompsonSamplingMF(num_users, num_items, num_particles, particle_factory, ignore_not_rated,
                                          seed, name=p.name)
    return factory


def _bayesian_pts(p):
    ignore_not_rated = _common(p)
    num_particles = _num_particles(p)
    particle_factory = bayesian_factory(p.get('k', 2, int), p.get('sigma', 0.5, float),
                                        p.get('sigma_q', 1.0, float), p.get('alpha', 1.0, float),
                                        p.get('beta', 1.0, float))

    def factory(num_users, num_items, seed):
        return ParticleThompsonSamplingMF(num_users, num_items, num_particles, particle_factory, ignore_not_rated,
                                          seed, name=p.name)
    return factory


def _ictr(policy):
    def build(p):
        ignore_not_rated = _common(p)
        num_particles = _num_particles(p)
        k = p.get('k', 2, int)
        gamma = p.get('gamma', 1.0, float) if policy == UCB else 0.0

        def factory(num_users, num_items, seed):
            return ICTRRecommender(num_users, num_items, k, num_particles, policy, gamma, ignore_not_rated, seed,
                                   name=p.name)
        return factory
    return build


def _pmf(policy):
    def build(p):
        ignore_not_rated = _common(p)
        k = p.get('k', 2, int)
        stdev_p = p.get('stdev_p', 1.0, float)
        stdev_q = p.get('stdev_q', 1.0, float)
        stdev = p.get('stdev', 1.0, float)
        num_iter = p.get('num_iter', 10, int)
        if policy == 'egreedy':
            epsilon = p.get('epsilon', 0.1, float)
        elif policy == 'linucb':
            alpha = p.get('alpha', 1.0, float)

        def factory(num_users, num_items, seed):
            args = (num_users, num_items, k, stdev_p, stdev_q, stdev, num_iter)
            if policy == 'egreedy':
                return EpsilonGreedyPMF(*args, epsilon, ignore_not_rated, seed, name=p.name)
            elif policy == 'linucb':
                return LinUCBPMF(*args, alpha, ignore_not_rated, seed, name=p.name)
            return ThompsonSamplingPMF(*args, ignore_not_rated=ignore_not_rated, seed=seed, name=p.name)
        return factory
    return build


class AlgorithmRegistry(object):
    def __init__(self):
        self.builders = {} # key: algorithm id, value: callable Params -> factory

    def register(self, name, builder):
        if name in self.builders:
            raise ValueError('Algorithm {} is already registered'.format(name))
        self.builders[name] = builder

    def names(self):
        return sorted(self.builders)

    def build(self, name, params):
        """Return: factory (num_users, num_items, seed) -> InteractiveRecommender.

        Raises:
            KeyError: unknown algorithm id
            ValueError: invalid or unknown parameters
        """
        if name not in self.builders:
            raise KeyError(name)
        p = Params(name, params)
        factory = self.builders[name](p)
        p.check_unused()
        return factory


def default_registry():
    registry = AlgorithmRegistry()
    registry.register('itembandit-egreedy', _bandit_builder(_egreedy))
    registry.register('itembandit-etgreedy', _bandit_builder(_etgreedy))
    registry.register('itembandit-ucb1', _bandit_builder(_ucb1))
    registry.register('itembandit-ucb1tuned', _bandit_builder(_ucb1tuned))
    registry.register('itembandit-thompson', _bandit_builder(_thompson))
    registry.register('userbandit-egreedy', _bandit_builder(_egreedy, per_user=True))
    registry.register('userbandit-etgreedy', _bandit_builder(_etgreedy, per_user=True))
    registry.register('userbandit-ucb1', _bandit_builder(_ucb1, per_user=True))
    registry.register('userbandit-ucb1tuned', _bandit_builder(_ucb1tuned, per_user=True))
    registry.register('userbandit-thompson', _bandit_builder(_thompson, per_user=True))
    registry.register('ub', _user_knn(stochastic=False))
    registry.register('ib', _item_knn(stochastic=False))
    registry.register('ub-bandit', _user_knn(stochastic=True))
    registry.register('ib-bandit', _item_knn(stochastic=True))
    registry.register('pts', _pts)
    registry.register('bayesian-pts', _bayesian_pts)
    registry.register('ictr-thompson', _ictr(THOMPSON))
    registry.register('ictr-ucb', _ictr(UCB))
    registry.register('pmf-egreedy', _pmf('egreedy'))
    registry.register('pmf-thompson', _pmf('thompson'))
    registry.register('pmf-linucb', _pmf('linucb'))
    return registry


class AlgorithmSelector(object):
    """Holds the validated factories of the algorithms of an experiment.

    Algorithms are referred to by their description line with normalized
    whitespace, so the same id can appear with different parameters.
    """

    def __init__(self, registry=None):
        self.registry = registry or default_registry()
        self.factories = None # key: algorithm label, value: factory

    def configure(self, specs):
        """Args:
                specs: iterable of algorithm lines; blank lines and lines starting with `#` are skipped
        """
        factories = {}
        for line in specs:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            name, params = parse_algorithm(line)
            label = ' '.join(line.split())
            factories[label] = self.registry.build(name, params)
            logger.info('Configured algorithm: %s', label)
        self.factories = factories

    def is_configured(self):
        return self.factories is not None

    def names(self):
        if self.factories is None:
            raise UnconfiguredError('The algorithm selector has not been configured')
        return list(self.factories)

    def get_factory(self, name):
        if self.factories is None:
            raise UnconfiguredError('The algorithm selector has not been configured')
        label = ' '.join(name.split())
        if label not in self.factories:
            raise KeyError(name)
        return self.factories[label]
