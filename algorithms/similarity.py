"""Define incrementally updateable similarities between elements (users for
user-based kNN, items for item-based kNN).

`update(a, b, x, aval, bval)` is called when element `a` receives the value
`aval` for the shared dimension `x`, which element `b` had rated with `bval`.
`update_del` with the same arguments undoes it exactly.
"""

import math
from collections import defaultdict

import numpy as np


class PreferenceMatrix(object):
    """Sparse matrix of observed ratings, readable by row and by column. """

    def __init__(self):
        self.by_row = defaultdict(dict) # key: row, value: dict col -> value
        self.by_col = defaultdict(dict) # key: col, value: dict row -> value

    def clear(self):
        self.by_row.clear()
        self.by_col.clear()

    def get(self, row, col):
        return self.by_row.get(row, {}).get(col)

    def set(self, row, col, value):
        self.by_row[row][col] = value
        self.by_col[col][row] = value

    def row(self, row):
        return self.by_row.get(row, {})

    def col(self, col):
        return self.by_col.get(col, {})

    def rows(self):
        return [r for r, prefs in self.by_row.items() if prefs]

    def transpose(self):
        transposed = PreferenceMatrix()
        transposed.by_row = self.by_col
        transposed.by_col = self.by_row
        return transposed


class UpdateableSimilarity(object):
    def __init__(self, num_elems):
        self.num_elems = num_elems

    def initialize(self, train=None):
        """Reset, then build the similarity from a PreferenceMatrix whose rows are the elements. """
        raise NotImplementedError

    def update_norm(self, idx, value):
        pass

    def update_norm_del(self, idx, value):
        pass

    def update(self, a, b, x, aval, bval):
        raise NotImplementedError

    def update_del(self, a, b, x, aval, bval):
        raise NotImplementedError

    def similarity(self, a, b):
        raise NotImplementedError

    def similar_elems(self, idx):
        """Return: list of (element, similarity) of the elements which share something with `idx`. """
        raise NotImplementedError


class VectorCosineSimilarity(UpdateableSimilarity):
    def __init__(self, num_elems):
        super(VectorCosineSimilarity, self).__init__(num_elems)
        self.num = defaultdict(dict) # key: a, value: dict b -> sum of aval * bval
        self.norm = np.zeros(num_elems)

    def initialize(self, train=None):
        self.num.clear()
        self.norm = np.zeros(self.num_elems)
        if train is None:
            return
        for a in train.rows():
            for x, aval in train.row(a).items():
                self.norm[a] += aval * aval
                for b, bval in train.col(x).items():
                    if b != a and not math.isnan(bval):
                        self.num[a][b] = self.num[a].get(b, 0.0) + aval * bval

    def update_norm(self, idx, value):
        self.norm[idx] += value * value

    def update_norm_del(self, idx, value):
        self.norm[idx] -= value * value

    def update(self, a, b, x, aval, bval):
        if math.isnan(bval):
            return
        self.num[a][b] = self.num[a].get(b, 0.0) + aval * bval
        self.num[b][a] = self.num[b].get(a, 0.0) + aval * bval

    def update_del(self, a, b, x, aval, bval):
        if math.isnan(bval) or b not in self.num.get(a, {}):
            return
        self.num[a][b] -= aval * bval
        self.num[b][a] -= aval * bval
        if self.num[a][b] == 0.0:
            del self.num[a][b]
            del self.num[b][a]

    def similarity(self, a, b):
        denominator = math.sqrt(self.norm[a]) * math.sqrt(self.norm[b])
        if denominator == 0.0:
            return 0.0
        return self.num.get(a, {}).get(b, 0.0) / denominator

    def similar_elems(self, idx):
        if self.norm[idx] <= 0.0:
            return []
        return [(b, self.similarity(idx, b)) for b in self.num.get(idx, {}) if b != idx]


class RestrictedVectorCosineSimilarity(UpdateableSimilarity):
    """Sum of products restricted to the common dimensions, divided by their number. """

    def __init__(self, num_elems):
        super(RestrictedVectorCosineSimilarity, self).__init__(num_elems)
        self.num = defaultdict(dict)
        self.common = defaultdict(dict)

    def initialize(self, train=None):
        self.num.clear()
        self.common.clear()
        if train is None:
            return
        for a in train.rows():
            for x, aval in train.row(a).items():
                for b, bval in train.col(x).items():
                    if b != a and not math.isnan(bval):
                        self.num[a][b] = self.num[a].get(b, 0.0) + aval * bval
                        self.common[a][b] = self.common[a].get(b, 0.0) + 1.0

    def update(self, a, b, x, aval, bval):
        if math.isnan(bval):
            return
        for (u, v) in ((a, b), (b, a)):
            self.num[u][v] = self.num[u].get(v, 0.0) + aval * bval
            self.common[u][v] = self.common[u].get(v, 0.0) + 1.0

    def update_del(self, a, b, x, aval, bval):
        if math.isnan(bval) or b not in self.common.get(a, {}):
            return
        for (u, v) in ((a, b), (b, a)):
            self.num[u][v] -= aval * bval
            self.common[u][v] -= 1.0
            if self.common[u][v] <= 0.0:
                del self.num[u][v]
                del self.common[u][v]

    def similarity(self, a, b):
        common = self.common.get(a, {}).get(b, 0.0)
        if common == 0.0:
            return 0.0
        return self.num[a][b] / common

    def similar_elems(self, idx):
        sims = [(b, self.similarity(idx, b)) for b in self.common.get(idx, {}) if b != idx]
        return [(b, s) for b, s in sims if s > 0.0]


class BetaStochasticSimilarity(UpdateableSimilarity):
    """Thompson-sampled similarity: sim(a, b) ~ Beta(hits(a, b) + alpha, count(b) - hits(a, b) + beta),
    where hits accumulates positive co-ratings and count(b) is the number of ratings of `b`.
    """

    def __init__(self, num_elems, alpha=1.0, beta=1.0, seed=0):
        super(BetaStochasticSimilarity, self).__init__(num_elems)
        self.alpha = alpha
        self.beta = beta
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.sims = defaultdict(dict)
        self.counts = np.zeros(num_elems)

    def initialize(self, train=None):
        self.rng = np.random.default_rng(self.seed)
        self.sims.clear()
        self.counts = np.zeros(self.num_elems)
        if train is None:
            return
        for a in train.rows():
            for x, aval in train.row(a).items():
                self.counts[a] += 1
                for b, bval in train.col(x).items():
                    if b != a and not math.isnan(bval) and aval * bval > 0:
                        self.sims[a][b] = self.sims[a].get(b, 0.0) + aval * bval

    def update_norm(self, idx, value):
        self.counts[idx] += 1

    def update_norm_del(self, idx, value):
        self.counts[idx] -= 1

    def update(self, a, b, x, aval, bval):
        if math.isnan(bval) or aval * bval <= 0:
            return
        self.sims[a][b] = self.sims[a].get(b, 0.0) + aval * bval
        self.sims[b][a] = self.sims[b].get(a, 0.0) + aval * bval

    def update_del(self, a, b, x, aval, bval):
        if math.isnan(bval) or aval * bval <= 0 or b not in self.sims.get(a, {}):
            return
        self.sims[a][b] -= aval * bval
        self.sims[b][a] -= aval * bval
        if self.sims[a][b] == 0.0:
            del self.sims[a][b]
            del self.sims[b][a]

    def _beta_sample(self, a, b):
        if a <= 0:
            return 0.0
        if b <= 0:
            return 1.0
        return float(self.rng.beta(a, b))

    def exact_similarity(self, a, b):
        """Mean of the Beta posterior. """
        hits = self.sims.get(a, {}).get(b, 0.0)
        return (hits + self.alpha) / (self.counts[b] + self.alpha + self.beta)

    def similarity(self, a, b):
        hits = self.sims.get(a, {}).get(b, 0.0)
        return self._beta_sample(hits + self.alpha, self.counts[b] - hits + self.beta)

    def similar_elems(self, idx):
        sims = [(b, self.similarity(idx, b)) for b in range(self.num_elems) if b != idx]
        return [(b, s) for b, s in sims if s > 0.0]
