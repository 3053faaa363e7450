"""Define the selection strategies: which user is the next target, and which
items can be recommended to that user.

All strategies share the same contract:
    init(dataset, warmup=None)
    select_target() -> uidx, -1 if there are no more targets
    select_candidates(uidx) -> list of iidx, None if the user cannot be served
    update(uidx, iidx, value)
    is_available(uidx, iidx) -> bool
    replay_target(uidx) -> bool, to resume a recorded run
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class Selection(object):
    def init(self, dataset, warmup=None):
        raise NotImplementedError

    def select_target(self):
        raise NotImplementedError

    def select_candidates(self, uidx):
        raise NotImplementedError

    def update(self, uidx, iidx, value):
        pass

    def is_available(self, uidx, iidx):
        return True

    def replay_target(self, uidx):
        """Bring the selection to a recorded iteration whose target was `uidx`.

        Return:
            False if the iteration cannot be reproduced.
        """
        return True


class NonSequentialSelection(Selection):
    def __init__(self, seed, user_selector):
        """Targets are resampled each iteration from a static preference matrix.

        Args:
            seed: int, seed for shuffling the user list
            user_selector: UserSelector, picks the position of the next target in the user list
        """
        self.seed = seed
        self.user_selector = user_selector
        self.rng = np.random.default_rng(seed)
        self.user_list = []
        self.positions = {} # key: uidx, value: position in user_list
        self.availability = {} # key: uidx, value: dict of available iidx (ordered, values unused)
        self.num_users = 0
        self.last_removed_index = -1

    def init(self, dataset, warmup=None):
        self.rng = np.random.default_rng(self.seed)
        self.user_selector.init()
        self.availability = {}
        if warmup is None:
            items = list(dataset.get_all_iidx())
            for uidx in dataset.get_uidx_with_preferences():
                self.availability[uidx] = dict.fromkeys(items)
        else:
            for uidx, items in sorted(warmup.availability.items()):
                if items:
                    self.availability[uidx] = dict.fromkeys(items)
        self.user_list = list(self.availability.keys())
        self.rng.shuffle(self.user_list)
        self.positions = {uidx: pos for pos, uidx in enumerate(self.user_list)}
        self.num_users = len(self.user_list)
        self.last_removed_index = -1

    def _remove_user(self, uidx):
        """Swap-remove `uidx` from the user list. """
        pos = self.positions.pop(uidx, None)
        if pos is None:
            return
        last = self.user_list.pop()
        if last != uidx:
            self.user_list[pos] = last
            self.positions[last] = pos
        self.num_users -= 1
        self.last_removed_index = pos

    def select_target(self):
        index = self.user_selector.next(self.num_users, self.last_removed_index)
        self.last_removed_index = -1
        if index < 0:
            return -1
        if self.user_selector.reshuffle():
            self.rng.shuffle(self.user_list)
            self.positions = {uidx: pos for pos, uidx in enumerate(self.user_list)}
        return self.user_list[index]

    def select_candidates(self, uidx):
        items = self.availability.get(uidx)
        if not items:
            self._remove_user(uidx)
            return None
        return list(items)

    def update(self, uidx, iidx, value):
        items = self.availability.get(uidx)
        if items is None:
            return
        items.pop(iidx, None)
        if not items:
            self._remove_user(uidx)

    def is_available(self, uidx, iidx):
        return uidx in self.availability and iidx in self.availability[uidx]


class LimitedCandidatePoolSelection(Selection):
    def __init__(self, seed, num_candidates):
        """Random target, with a fixed-size candidate set which contains at least one relevant item.

        Args:
            seed: int
            num_candidates: int, size of the candidate set
        """
        self.seed = seed
        self.num_candidates = num_candidates
        self.rng = np.random.default_rng(seed)
        self.positives = {}
        self.users = []
        self.num_items = 0

    def init(self, dataset, warmup=None):
        self.rng = np.random.default_rng(self.seed)
        self.num_items = dataset.num_items()
        self.positives = {}
        for uidx in dataset.get_uidx_with_preferences():
            relevant = [iidx for iidx, value in dataset.get_uidx_preferences(uidx) if dataset.is_relevant(value)]
            if relevant:
                self.positives[uidx] = sorted(relevant)
        self.users = sorted(self.positives)

    def select_target(self):
        if not self.users:
            return -1
        return self.users[int(self.rng.integers(len(self.users)))]

    def select_candidates(self, uidx):
        positives = self.positives.get(uidx)
        if not positives:
            return None
        if self.num_candidates >= self.num_items:
            return list(range(self.num_items))
        first = positives[int(self.rng.integers(len(positives)))]
        candidates = [first]
        chosen = {first}
        while len(candidates) < self.num_candidates:
            iidx = int(self.rng.integers(self.num_items))
            if iidx not in chosen:
                chosen.add(iidx)
                candidates.append(iidx)
        return candidates


class SequentialSelection(Selection):
    def __init__(self):
        """Target and candidates are dictated by the position in a stream log.

        Every call to `select_target` moves the log one register forward, so a
        register whose recommendation did not match the log is also consumed.
        """
        self.stream = None
        self.ended = True

    def init(self, dataset, warmup=None):
        # private cursor: parallel runs share the dataset
        self.stream = dataset.copy()
        self.stream.restart()
        self.ended = False
        offset = warmup.offset if warmup is not None else 0
        for _ in range(offset):
            if not self._advance():
                break

    def _advance(self):
        try:
            record = self.stream.advance()
        except IOError as e:
            logger.warning('Stream could not be read, finishing: %s', e)
            record = None
        self.ended = record is None
        return not self.ended

    def current_stream(self):
        """Return: the log positioned on the current register, None once it is exhausted. """
        return None if self.ended else self.stream

    def select_target(self):
        if self.ended:
            return -1
        if not self._advance():
            return -1
        return self.stream.get_current_uidx()

    def select_candidates(self, uidx):
        if self.ended:
            return None
        return self.stream.get_candidate_iidx()

    def replay_target(self, uidx):
        # registers skipped by the recorded run are consumed as well
        while self._advance():
            if self.stream.get_current_uidx() == uidx:
                return True
        return False


class SequentialLimitedCandidatePoolSelection(SequentialSelection):
    def __init__(self, seed, num_extra):
        """Stream selection where the candidates are the featured item plus `num_extra` random items. """
        super(SequentialLimitedCandidatePoolSelection, self).__init__()
        self.seed = seed
        self.num_extra = num_extra
        self.rng = np.random.default_rng(seed)
        self.num_items = 0

    def init(self, dataset, warmup=None):
        super(SequentialLimitedCandidatePoolSelection, self).init(dataset, warmup)
        self.rng = np.random.default_rng(self.seed)
        self.num_items = dataset.num_items()

    def select_candidates(self, uidx):
        if self.ended:
            return None
        featured = self.stream.get_featured_iidx()
        if featured < 0:
            return None
        if self.num_extra >= self.num_items - 1:
            return list(range(self.num_items))
        candidates = [featured]
        chosen = {featured}
        while len(candidates) < self.num_extra + 1:
            iidx = int(self.rng.integers(self.num_items))
            if iidx not in chosen:
                chosen.add(iidx)
                candidates.append(iidx)
        return candidates
