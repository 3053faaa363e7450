"""Define the in-memory datasets consumed by the simulation.

Every dataset works on dense integer indices (uidx, iidx). External
identifiers are mapped to indices when the data is loaded
(see `utils.data_util`).
"""

import math
from collections import defaultdict, namedtuple

from core.rating import Rating

# A single register of a stream log: the user, the item the user interacted
# with (featured item), its rating and the candidate items shown at that time.
LogRecord = namedtuple('LogRecord', ['uidx', 'iidx', 'rating', 'candidates'])

ALL = 'ALL'
ONLY_KNOWN = 'ONLY_KNOWN'
ONLY_UNKNOWN = 'ONLY_UNKNOWN'
KNOWLEDGE_DATA_USES = (ALL, ONLY_KNOWN, ONLY_UNKNOWN)


class OfflineDataset(object):
    def __init__(self, num_users, num_items, ratings, relevance_threshold=0.5, name='OfflineDataset'):
        """Static preference matrix.

        Args:
            num_users: int, size of the user index space
            num_items: int, size of the item index space
            ratings: iterable of (uidx, iidx, value)
            relevance_threshold: float, a value is relevant if it is >= this threshold
        """
        self.name = name
        self._num_users = num_users
        self._num_items = num_items
        self.relevance_threshold = relevance_threshold
        self.user_prefs = defaultdict(dict) # key: uidx, value: dict iidx -> value
        self.item_prefs = defaultdict(dict) # key: iidx, value: dict uidx -> value
        self.num_preferences = 0
        for uidx, iidx, value in ratings:
            if iidx not in self.user_prefs[uidx]:
                self.num_preferences += 1
            self.user_prefs[uidx][iidx] = value
            self.item_prefs[iidx][uidx] = value
        self.num_rel = self._count_relevant()

    def _count_relevant(self):
        return sum(1 for prefs in self.user_prefs.values() for v in prefs.values() if self.is_relevant(v))

    def num_users(self):
        return self._num_users

    def num_items(self):
        return self._num_items

    def get_all_uidx(self):
        return range(self._num_users)

    def get_all_iidx(self):
        return range(self._num_items)

    def get_uidx_with_preferences(self):
        return sorted(u for u, prefs in self.user_prefs.items() if prefs)

    def get_uidx_preferences(self, uidx):
        """Return: list of (iidx, value) rated by `uidx`. """
        return list(self.user_prefs.get(uidx, {}).items())

    def get_iidx_preferences(self, iidx):
        """Return: list of (uidx, value) who rated `iidx`. """
        return list(self.item_prefs.get(iidx, {}).items())

    def get_preference(self, uidx, iidx):
        """Return the value of the pair, or None if the pair is not in the ground truth. """
        return self.user_prefs.get(uidx, {}).get(iidx)

    def is_relevant(self, value):
        if value is None or math.isnan(value):
            return False
        return value >= self.relevance_threshold

    def get_num_rel(self, pairs=None):
        if pairs is None:
            return self.num_rel
        count = 0
        for uidx, iidx in pairs:
            value = self.get_preference(uidx, iidx)
            if value is not None and self.is_relevant(value):
                count += 1
        return count

    def get_num_ratings(self):
        return self.num_preferences

    def ratings(self):
        for uidx, prefs in self.user_prefs.items():
            for iidx, value in prefs.items():
                yield Rating(uidx, iidx, value)

    def load(self, pairs):
        """Restrict the dataset to the given (uidx, iidx) pairs. """
        triplets = []
        for uidx, iidx in pairs:
            value = self.get_preference(uidx, iidx)
            if value is not None:
                triplets.append((uidx, iidx, value))
        return OfflineDataset(self._num_users, self._num_items, triplets, self.relevance_threshold, self.name)

    def __str__(self):
        return 'Users: {}\nItems: {}\nNum. ratings: {}\nNum. relevant: {}'.format(
            self.num_users(), self.num_items(), self.get_num_ratings(), self.get_num_rel())


class ContactDataset(OfflineDataset):
    def __init__(self, num_users, edges, directed=True, use_reciprocal=True, name='ContactDataset'):
        """Contact (people to people) recommendation data. Users and items share the index space.

        Args:
            num_users: int, number of users
            edges: iterable of (uidx, vidx) links
            directed: bool, False if every link is symmetric
            use_reciprocal: bool, False if the reciprocal of a discovered link must not be recommended
        """
        self.directed = directed
        self.not_reciprocal = not use_reciprocal
        triplets = []
        seen = set()
        for uidx, vidx in edges:
            if (uidx, vidx) in seen:
                continue
            seen.add((uidx, vidx))
            triplets.append((uidx, vidx, 1.0))
            if not directed and (vidx, uidx) not in seen:
                seen.add((vidx, uidx))
                triplets.append((vidx, uidx, 1.0))
        super(ContactDataset, self).__init__(num_users, num_users, triplets, 0.0, name)
        self.num_recipr = sum(1 for (u, v) in seen if (v, u) in seen)

    def is_relevant(self, value):
        if value is None or math.isnan(value):
            return False
        return value > 0.0

    def is_directed(self):
        return self.directed

    def use_reciprocal(self):
        return not self.not_reciprocal

    def get_num_rel(self, pairs=None):
        if pairs is not None:
            return super(ContactDataset, self).get_num_rel(pairs)
        if self.not_reciprocal:
            return self.num_rel - self.num_recipr // 2
        return self.num_rel

    def get_num_ratings(self):
        return self.get_num_rel()

    def load(self, pairs):
        edges = []
        for uidx, vidx in pairs:
            if self.get_preference(uidx, vidx) is not None:
                edges.append((uidx, vidx))
                if self.not_reciprocal and self.get_preference(vidx, uidx) is not None:
                    edges.append((vidx, uidx))
        return ContactDataset(self._num_users, edges, self.directed, not self.not_reciprocal, self.name)

    def __str__(self):
        return 'Users: {}\nItems: {}\nNum. edges: {}\nNum. edges (without reciprocal): {}'.format(
            self.num_users(), self.num_items(), self.num_rel, self.num_rel - self.num_recipr // 2)


class KnowledgeDataset(OfflineDataset):
    def __init__(self, num_users, num_items, quartets, relevance_threshold=0.5, name='KnowledgeDataset'):
        """Ratings tagged with whether the user knew the item before rating it.

        Args:
            quartets: iterable of (uidx, iidx, value, known)
        """
        quartets = list(quartets)
        super(KnowledgeDataset, self).__init__(num_users, num_items, [q[:3] for q in quartets], relevance_threshold, name)
        self.known = {(u, i): bool(k) for u, i, _, k in quartets}
        self.num_rel_known = sum(1 for u, i, v, k in quartets if k and self.is_relevant(v))
        self._quartets = quartets

    def get_num_rel_known(self):
        return self.num_rel_known

    def get_num_rel_unknown(self):
        return self.num_rel - self.num_rel_known

    def get_known_dataset(self):
        return OfflineDataset(self._num_users, self._num_items,
                              [(u, i, v) for u, i, v, k in self._quartets if k],
                              self.relevance_threshold, self.name + '-known')

    def get_unknown_dataset(self):
        return OfflineDataset(self._num_users, self._num_items,
                              [(u, i, v) for u, i, v, k in self._quartets if not k],
                              self.relevance_threshold, self.name + '-unknown')

    def get_dataset(self, data_use):
        if data_use == ONLY_KNOWN:
            return self.get_known_dataset()
        elif data_use == ONLY_UNKNOWN:
            return self.get_unknown_dataset()
        elif data_use == ALL:
            return self
        raise ValueError('Unknown knowledge data use: {}'.format(data_use))

    def load(self, pairs):
        quartets = []
        for uidx, iidx in pairs:
            value = self.get_preference(uidx, iidx)
            if value is not None:
                quartets.append((uidx, iidx, value, self.known[(uidx, iidx)]))
        return KnowledgeDataset(self._num_users, self._num_items, quartets, self.relevance_threshold, self.name)


class StreamDataset(object):
    def __init__(self, num_users, num_items, source, relevance_threshold=0.5, name='StreamDataset'):
        """An ordered log of interactions, consumed one register at a time.

        Args:
            source: list of `LogRecord`, or a zero-argument callable returning an iterator of them
                (the callable is invoked again on every `restart`).
        """
        self.name = name
        self._num_users = num_users
        self._num_items = num_items
        self.relevance_threshold = relevance_threshold
        self.source = source
        self.current = None
        self.ended = False
        self._iter = None

    def num_users(self):
        return self._num_users

    def num_items(self):
        return self._num_items

    def get_all_uidx(self):
        return range(self._num_users)

    def get_all_iidx(self):
        return range(self._num_items)

    def copy(self):
        """A new dataset over the same log with its own cursor. """
        return StreamDataset(self._num_users, self._num_items, self.source, self.relevance_threshold, self.name)

    def restart(self):
        records = self.source() if callable(self.source) else self.source
        self._iter = iter(records)
        self.current = None
        self.ended = False

    def advance(self):
        """Move to the next register.

        Return:
            the new current `LogRecord`, or None when the log is exhausted.
        """
        if self._iter is None:
            self.restart()
        self.current = next(self._iter, None)
        if self.current is None:
            self.ended = True
        return self.current

    def has_ended(self):
        return self.ended

    def get_current_uidx(self):
        return -1 if self.current is None else self.current.uidx

    def get_featured_iidx(self):
        return -1 if self.current is None else self.current.iidx

    def get_featured_item_rating(self):
        return float('nan') if self.current is None else self.current.rating

    def get_candidate_iidx(self):
        return None if self.current is None else list(self.current.candidates)

    def get_preference(self, uidx, iidx):
        if self.current is not None and self.current.uidx == uidx and self.current.iidx == iidx:
            return self.current.rating
        return None

    def is_relevant(self, value):
        if value is None or math.isnan(value):
            return False
        return value >= self.relevance_threshold

    def get_num_rel(self, pairs=None):
        return 0

    def get_num_ratings(self):
        return 0

    def load(self, pairs):
        raise NotImplementedError('Stream datasets cannot be restricted to a list of pairs')
