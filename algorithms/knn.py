"""Define interactive user-based and item-based kNN recommenders, whose
similarities are updated online as ratings arrive.
"""

from algorithms.recommender import InteractiveRecommender, argmax_untie, random_choice, top_k
from algorithms.similarity import PreferenceMatrix


class InteractiveUserBasedKNN(InteractiveRecommender):
    def __init__(self, num_users, num_items, k, similarity, ignore_zeros=True, ignore_not_rated=True, seed=0,
                 name='UserBasedKNN'):
        """Args:
                k: int, number of neighbours, 0 or less to use every user
                similarity: UpdateableSimilarity between users
                ignore_zeros: bool, neighbours' contributions which are not positive are skipped
        """
        super(InteractiveUserBasedKNN, self).__init__(num_users, num_items, ignore_not_rated, seed, name)
        self.k = k if k > 0 else num_users
        self.sim = similarity
        self.ignore_zeros = ignore_zeros
        self.retrieved = PreferenceMatrix() # rows: users, cols: items

    def init(self, ratings=None):
        super(InteractiveUserBasedKNN, self).init()
        for uidx, iidx, value in ratings or []:
            value = self.rating_value(value)
            if value is None:
                continue
            self.retrieved.set(uidx, iidx, value)
        self.sim.initialize(self.retrieved)

    def reset(self):
        self.retrieved.clear()
        self.sim.initialize()

    def neighbours(self, uidx):
        """Return: the top k (vidx, sim) pairs; equal similarities are ordered by a fresh random permutation. """
        untie = self.rng.permutation(self.num_users)
        elems = self.sim.similar_elems(uidx)
        best = top_k(elems, [(s, untie[v]) for v, s in elems], self.k)
        return best

    def next(self, uidx, candidates):
        if not candidates:
            return -1
        neighbours = self.neighbours(uidx)
        if not neighbours:
            return random_choice(candidates, self.rng)
        available = set(candidates)
        scores = {} # key: iidx, value: score
        for vidx, s in neighbours:
            for iidx, rating in self.retrieved.row(vidx).items():
                if iidx not in available:
                    continue
                p = s * rating
                if not self.ignore_zeros or p > 0:
                    scores[iidx] = scores.get(iidx, 0.0) + p
        if not scores:
            return random_choice(candidates, self.rng)
        items = list(scores)
        return argmax_untie(items, [scores[i] for i in items], self.rng)

    def fast_update(self, uidx, iidx, value):
        old = self.retrieved.get(uidx, iidx)
        raters = [(vidx, vval) for vidx, vval in self.retrieved.col(iidx).items() if vidx != uidx]
        if old is None:
            for vidx, vval in raters:
                self.sim.update(uidx, vidx, iidx, value, vval)
            self.sim.update_norm(uidx, value)
        else:
            # the last rating of the pair replaces the previous one
            self.sim.update_norm_del(uidx, old)
            self.sim.update_norm(uidx, value)
            for vidx, vval in raters:
                self.sim.update_del(uidx, vidx, iidx, old, vval)
                self.sim.update(uidx, vidx, iidx, value, vval)
        self.retrieved.set(uidx, iidx, value)


class InteractiveItemBasedKNN(InteractiveRecommender):
    def __init__(self, num_users, num_items, user_k, item_k, similarity, ignore_zeros=True, ignore_not_rated=True,
                 seed=0, name='ItemBasedKNN'):
        """Args:
                user_k: int, number of the user's best rated items used as a profile, 0 for all
                item_k: int, number of neighbours of each profile item, 0 for all
                similarity: UpdateableSimilarity between items
        """
        super(InteractiveItemBasedKNN, self).__init__(num_users, num_items, ignore_not_rated, seed, name)
        self.user_k = user_k
        self.item_k = item_k
        self.sim = similarity
        self.ignore_zeros = ignore_zeros
        self.retrieved = PreferenceMatrix() # rows: users, cols: items

    def init(self, ratings=None):
        super(InteractiveItemBasedKNN, self).init()
        for uidx, iidx, value in ratings or []:
            value = self.rating_value(value)
            if value is None:
                continue
            self.retrieved.set(uidx, iidx, value)
        self.sim.initialize(self.retrieved.transpose())

    def reset(self):
        self.retrieved.clear()
        self.sim.initialize()

    def profile(self, uidx):
        """Return: the (iidx, rating) pairs of the user used to score candidates. """
        rated = [(j, r) for j, r in self.retrieved.row(uidx).items() if not self.ignore_zeros or r > 0]
        if self.user_k <= 0 or len(rated) <= self.user_k:
            return rated
        # equal ratings are ordered by a fresh random permutation, as neighbours are
        untie = self.rng.permutation(self.num_items)
        return top_k(rated, [(r, untie[j]) for j, r in rated], self.user_k)

    def next(self, uidx, candidates):
        if not candidates:
            return -1
        available = set(candidates)
        scores = {}
        for jidx, rating in self.profile(uidx):
            neighbours = [(i, s) for i, s in self.sim.similar_elems(jidx) if i in available]
            if self.item_k > 0:
                neighbours = top_k(neighbours, [s for _, s in neighbours], self.item_k)
            for iidx, s in neighbours:
                p = s * rating
                if not self.ignore_zeros or p > 0:
                    scores[iidx] = scores.get(iidx, 0.0) + p
        if not scores:
            return random_choice(candidates, self.rng)
        items = list(scores)
        return argmax_untie(items, [scores[i] for i in items], self.rng)

    def fast_update(self, uidx, iidx, value):
        old = self.retrieved.get(uidx, iidx)
        rated = [(jidx, rval) for jidx, rval in self.retrieved.row(uidx).items() if jidx != iidx]
        if old is None:
            for jidx, rval in rated:
                self.sim.update(iidx, jidx, uidx, value, rval)
            self.sim.update_norm(iidx, value)
        else:
            self.sim.update_norm_del(iidx, old)
            self.sim.update_norm(iidx, value)
            for jidx, rval in rated:
                self.sim.update_del(iidx, jidx, uidx, old, rval)
                self.sim.update(iidx, jidx, uidx, value, rval)
        self.retrieved.set(uidx, iidx, value)
