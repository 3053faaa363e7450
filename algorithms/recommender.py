"""Define the interactive recommender contract and the helpers shared by all recommenders. """

import heapq
import logging
import math

import numpy as np

from core.rating import NOT_RATED_NOT_IGNORED, is_not_rated

logger = logging.getLogger(__name__)


def random_choice(candidates, rng):
    if not candidates:
        return -1
    return candidates[int(rng.integers(len(candidates)))]


def argmax_untie(items, scores, rng):
    """Return the item with the highest score, ties broken uniformly at random. -1 if `items` is empty. """
    best_items = []
    best = -math.inf
    for item, score in zip(items, scores):
        if score > best:
            best = score
            best_items = [item]
        elif score == best:
            best_items.append(item)
    if not best_items:
        # every score is NaN or -inf
        return random_choice(list(items), rng)
    return random_choice(best_items, rng)


def top_k(items, scores, k):
    """Return the `k` items with the highest score, best first (ties by position). """
    if k <= 0:
        return []
    heap = []
    for pos, (item, score) in enumerate(zip(items, scores)):
        entry = (score, -pos, item)
        if len(heap) < k:
            heapq.heappush(heap, entry)
        elif entry > heap[0]:
            heapq.heapreplace(heap, entry)
    return [item for _, _, item in sorted(heap, reverse=True)]


class InteractiveRecommender(object):
    def __init__(self, num_users, num_items, ignore_not_rated=True, seed=0, name='InteractiveRecommender'):
        """Args:
                num_users: int
                num_items: int
                ignore_not_rated: bool, if True updates with NaN values are skipped, otherwise
                    NaN is read as NOT_RATED_NOT_IGNORED
                seed: int, seed of the generator which breaks ties and drives sampling
        """
        self.name = name
        self.num_users = num_users
        self.num_items = num_items
        self.ignore_not_rated = ignore_not_rated
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def init(self, ratings=None):
        """Reset the recommender to its initial state and train it on `ratings` (list of Rating). """
        self.rng = np.random.default_rng(self.seed)
        self.reset()
        for uidx, iidx, value in ratings or []:
            self.update(uidx, iidx, value)

    def reset(self):
        pass

    def next(self, uidx, candidates):
        """Return: the recommended iidx among `candidates`, -1 if there are none. """
        raise NotImplementedError

    def next_k(self, uidx, candidates, k):
        """Return: up to `k` distinct items, the best first. """
        remaining = list(candidates or [])
        recs = []
        while remaining and len(recs) < k:
            iidx = self.next(uidx, remaining)
            if iidx < 0:
                break
            recs.append(iidx)
            remaining.remove(iidx)
        return recs

    def rating_value(self, value):
        """Return: the value to learn from, None if the rating must be skipped. """
        if is_not_rated(value):
            return None if self.ignore_not_rated else NOT_RATED_NOT_IGNORED
        return value

    def update(self, uidx, iidx, value):
        value = self.rating_value(value)
        if value is None:
            return
        self.fast_update(uidx, iidx, value)

    def fast_update(self, uidx, iidx, value):
        """Update with a value which is known not to be NaN. """
        raise NotImplementedError
