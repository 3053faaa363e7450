import pytest

from core.dataset import StreamDataset
from core.selection import (NonSequentialSelection, LimitedCandidatePoolSelection, SequentialSelection,
                            SequentialLimitedCandidatePoolSelection)
from core.user_selector import RandomUserSelector, RoundRobinSelector, RandomRoundRobinSelector
from core.warmup import Warmup


def exhaust(selection, max_steps=1000):
    """Recommend the first candidate until no target is left; return the (uidx, iidx) pairs served. """
    served = []
    for _ in range(max_steps):
        uidx = selection.select_target()
        if uidx < 0:
            return served
        candidates = selection.select_candidates(uidx)
        if not candidates:
            continue
        served.append((uidx, candidates[0]))
        selection.update(uidx, candidates[0], 1.0)
    raise AssertionError('selection did not run out of targets')


class TestUserSelectors:
    def test_round_robin_cycles(self):
        selector = RoundRobinSelector()
        selector.init()
        assert [selector.next(3, -1) for _ in range(4)] == [0, 1, 2, 0]

    def test_round_robin_stays_on_swapped_position(self):
        selector = RoundRobinSelector()
        selector.init()
        selector.next(3, -1)
        assert selector.next(3, -1) == 1
        # the user at position 1 was removed and replaced by the last one
        assert selector.next(2, 1) == 1
        assert selector.next(2, -1) == 0

    def test_empty_pool(self):
        for selector in (RoundRobinSelector(), RandomRoundRobinSelector(), RandomUserSelector(1)):
            selector.init()
            assert selector.next(0, -1) == -1

    def test_random_round_robin_reshuffles_on_wrap(self):
        selector = RandomRoundRobinSelector()
        selector.init()
        selector.next(2, -1)
        assert selector.reshuffle()
        selector.next(2, -1)
        assert not selector.reshuffle()

    def test_random_selector_is_deterministic(self):
        a, b = RandomUserSelector(5), RandomUserSelector(5)
        a.init()
        b.init()
        assert [a.next(10, -1) for _ in range(20)] == [b.next(10, -1) for _ in range(20)]


class TestNonSequentialSelection:
    @pytest.mark.parametrize('user_selector', [RandomUserSelector(3), RoundRobinSelector(), RandomRoundRobinSelector()])
    def test_every_pair_is_served_once(self, dataset, user_selector):
        selection = NonSequentialSelection(3, user_selector)
        selection.init(dataset)
        served = exhaust(selection)
        assert len(served) == 3 * 4
        assert len(set(served)) == len(served)
        assert selection.select_target() == -1

    def test_warmup_availability(self, dataset):
        warmup = Warmup([], [], {0: [1], 1: [], 2: [0, 3]}, 0)
        selection = NonSequentialSelection(0, RoundRobinSelector())
        selection.init(dataset, warmup)
        assert selection.is_available(0, 1)
        assert not selection.is_available(0, 0)
        assert not selection.is_available(1, 0)
        assert sorted(exhaust(selection)) == [(0, 1), (2, 0), (2, 3)]

    def test_same_seed_same_targets(self, dataset):
        runs = []
        for _ in range(2):
            selection = NonSequentialSelection(11, RandomUserSelector(11))
            selection.init(dataset)
            runs.append(exhaust(selection))
        assert runs[0] == runs[1]


class TestLimitedCandidatePoolSelection:
    def test_candidates_contain_a_relevant_item(self, dataset):
        selection = LimitedCandidatePoolSelection(4, 2)
        selection.init(dataset)
        for _ in range(50):
            uidx = selection.select_target()
            candidates = selection.select_candidates(uidx)
            assert len(candidates) == 2
            assert len(set(candidates)) == 2
            assert dataset.is_relevant(dataset.get_preference(uidx, candidates[0]))

    def test_large_pool_is_the_catalog(self, dataset):
        selection = LimitedCandidatePoolSelection(4, 10)
        selection.init(dataset)
        uidx = selection.select_target()
        assert selection.select_candidates(uidx) == [0, 1, 2, 3]


class TestSequentialSelection:
    def test_follows_the_log(self, stream_dataset):
        selection = SequentialSelection()
        selection.init(stream_dataset)
        targets = []
        while True:
            uidx = selection.select_target()
            if uidx < 0:
                break
            targets.append((uidx, selection.select_candidates(uidx)))
        assert targets == [(0, [1, 2]), (1, [0, 1, 2]), (0, [2, 0]), (2, [1])]
        assert selection.current_stream() is None
        assert selection.select_target() == -1

    def test_skips_warmup_offset(self, stream_dataset):
        selection = SequentialSelection()
        selection.init(stream_dataset, Warmup([], [], {}, 0, 2))
        assert selection.select_target() == 0
        assert selection.current_stream().get_featured_iidx() == 2
        assert selection.current_stream().get_featured_item_rating() == 1.0

    def test_private_cursor(self, stream_dataset):
        a, b = SequentialSelection(), SequentialSelection()
        a.init(stream_dataset)
        b.init(stream_dataset)
        a.select_target()
        a.select_target()
        assert b.select_target() == 0
        assert stream_dataset.current is None

    def test_unreadable_stream_ends_the_run(self, log_records):
        def broken():
            yield log_records[0]
            raise IOError('disk gone')

        selection = SequentialSelection()
        selection.init(StreamDataset(3, 3, broken))
        assert selection.select_target() == 0
        assert selection.select_target() == -1
        assert selection.select_candidates(0) is None

    def test_limited_pool(self, stream_dataset):
        selection = SequentialLimitedCandidatePoolSelection(1, 1)
        selection.init(stream_dataset)
        uidx = selection.select_target()
        candidates = selection.select_candidates(uidx)
        assert candidates[0] == 1
        assert len(candidates) == 2
        assert len(set(candidates)) == 2
