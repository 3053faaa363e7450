"""Define the cumulative metrics tracked during a simulation.

Every metric follows the same protocol:
    initialize(dataset, train=None)
    update(uidx, iidx, value)
    compute() -> float
    reset()
"""

from collections import defaultdict, deque

from core.gini import GiniIndex


class CumulativeMetric(object):
    def initialize(self, dataset, train=None):
        self.reset()

    def update(self, uidx, iidx, value):
        raise NotImplementedError

    def compute(self):
        raise NotImplementedError

    def reset(self):
        pass


class ClickthroughRate(CumulativeMetric):
    def __init__(self):
        self.hits = 0.0
        self.total = 0.0
        self.relevance = None

    def initialize(self, dataset, train=None):
        self.relevance = dataset.is_relevant
        self.reset()

    def update(self, uidx, iidx, value):
        self.total += 1
        if self.relevance(value):
            self.hits += 1

    def compute(self):
        return self.hits / self.total if self.total > 0 else 0.0

    def reset(self):
        self.hits = 0.0
        self.total = 0.0


class CumulativeRecall(CumulativeMetric):
    def __init__(self, num_rel=None, threshold=0.5):
        """Args:
                num_rel: int, relevant ratings in the whole dataset; taken from the dataset if None
                threshold: float, a value is relevant if it is >= threshold
        """
        self.num_rel = num_rel
        self.threshold = threshold
        self.to_remove = 0
        self.current = 0.0

    def initialize(self, dataset, train=None):
        if self.num_rel is None:
            self.num_rel = dataset.get_num_rel()
        self.to_remove = 0
        if train:
            self.to_remove = sum(1 for rating in train if rating.value >= self.threshold)
        self.reset()

    def update(self, uidx, iidx, value):
        if value >= self.threshold:
            self.current += 1

    def compute(self):
        denominator = (self.num_rel or 0) - self.to_remove
        if denominator <= 0:
            return 0.0
        return self.current / denominator

    def reset(self):
        self.current = 0.0


class CumulativeHits(CumulativeMetric):
    def __init__(self):
        self.counter = 0.0
        self.relevance = None

    def initialize(self, dataset, train=None):
        self.relevance = dataset.is_relevant
        self.reset()

    def update(self, uidx, iidx, value):
        if self.relevance(value):
            self.counter += value

    def compute(self):
        return self.counter

    def reset(self):
        self.counter = 0.0


class CumulativeCounter(CumulativeMetric):
    def __init__(self):
        self.counter = 0

    def update(self, uidx, iidx, value):
        self.counter += 1

    def compute(self):
        return float(self.counter)

    def reset(self):
        self.counter = 0


class CumulativeGini(CumulativeMetric):
    """1 - Gini index of the frequency with which each item has been recommended. """

    def __init__(self, num_items=None):
        self.num_items = num_items
        self.gini = None

    def initialize(self, dataset, train=None):
        self.num_items = dataset.num_items()
        self.gini = GiniIndex(self.num_items)

    def update(self, uidx, iidx, value):
        self.gini.update_frequency(iidx, 1)

    def compute(self):
        # NaN until something has been recommended
        return 1.0 - self.gini.get_value()

    def reset(self):
        if self.gini is not None:
            self.gini.reset()


class CumulativeEPC(CumulativeMetric):
    """Expected popularity complement: 1 - mean popularity of the recommended items,
    where popularity counts the training ratings plus previous recommendations.
    """

    def __init__(self, num_users=None, num_items=None):
        self.num_users = num_users
        self.num_items = num_items
        self.popularities = defaultdict(int)
        self.num_ratings = 0
        self.sum = 0.0

    def initialize(self, dataset, train=None):
        self.num_users = dataset.num_users()
        self.num_items = dataset.num_items()
        self.reset()
        for rating in train or []:
            self.popularities[rating.iidx] += 1

    def update(self, uidx, iidx, value):
        pop = self.popularities[iidx]
        self.sum += 2 * pop + 1
        self.num_ratings += 1
        self.popularities[iidx] = pop + 1

    def compute(self):
        if not self.num_users or self.num_ratings <= 0:
            return float('nan')
        return 1.0 - self.sum / (self.num_users * self.num_ratings)

    def reset(self):
        self.popularities.clear()
        self.num_ratings = 0
        self.sum = 0.0


class MetricAtK(CumulativeMetric):
    """A metric computed over the last k updates only. """

    def __init__(self, k):
        self.k = k
        self.last_k = deque()

    def update(self, uidx, iidx, value):
        if len(self.last_k) >= self.k:
            old_uidx, old_iidx = self.last_k.popleft()
            self.update_del(old_uidx, old_iidx)
        self.last_k.append((uidx, iidx))
        self.update_add(uidx, iidx)

    def update_add(self, uidx, iidx):
        raise NotImplementedError

    def update_del(self, uidx, iidx):
        raise NotImplementedError

    def reset(self):
        self.last_k.clear()
        self.reset_metric()

    def reset_metric(self):
        pass


class GiniAtK(MetricAtK):
    def __init__(self, k):
        super(GiniAtK, self).__init__(k)
        self.gini = None

    def initialize(self, dataset, train=None):
        self.gini = GiniIndex(dataset.num_items())
        self.last_k.clear()

    def update_add(self, uidx, iidx):
        self.gini.update_frequency(iidx, 1)

    def update_del(self, uidx, iidx):
        self.gini.update_frequency(iidx, -1)

    def compute(self):
        return 1.0 - self.gini.get_value()

    def reset_metric(self):
        if self.gini is not None:
            self.gini.reset()


class EPCAtK(MetricAtK):
    """EPC over the last k recommendations. Each recommendation contributes the
    popularity its item had when it was recommended, and popularity grows with
    every recommendation (inside or outside the window).
    """

    def __init__(self, k):
        super(EPCAtK, self).__init__(k)
        self.num_users = 0
        self.popularities = defaultdict(int)
        self.contributions = deque()
        self.sum = 0.0

    def initialize(self, dataset, train=None):
        self.num_users = dataset.num_users()
        self.reset()
        for rating in train or []:
            self.popularities[rating.iidx] += 1

    def update_add(self, uidx, iidx):
        pop = self.popularities[iidx]
        contribution = 2 * pop + 1
        self.contributions.append(contribution)
        self.sum += contribution
        self.popularities[iidx] = pop + 1

    def update_del(self, uidx, iidx):
        self.sum -= self.contributions.popleft()

    def compute(self):
        num_ratings = len(self.contributions)
        if self.num_users <= 0 or num_ratings == 0:
            return float('nan')
        return 1.0 - self.sum / (self.num_users * num_ratings)

    def reset_metric(self):
        self.popularities.clear()
        self.contributions.clear()
        self.sum = 0.0
