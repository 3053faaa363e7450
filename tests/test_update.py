import math

import pytest

from core.dataset import ContactDataset, ONLY_KNOWN, ONLY_UNKNOWN
from core.rating import Rating
from core.selection import NonSequentialSelection, SequentialSelection
from core.update import GeneralUpdate, ContactUpdate, KnowledgeUpdate, ReplayerUpdate
from core.user_selector import RoundRobinSelector
from core.warmup import Warmup


def open_selection(dataset):
    selection = NonSequentialSelection(0, RoundRobinSelector())
    selection.init(dataset)
    return selection


class TestGeneralUpdate:
    def test_reveals_ground_truth(self, dataset):
        update, selection = GeneralUpdate(), open_selection(dataset)
        update.init(dataset)
        rec, metric = update.select_update(0, 0, selection)
        assert rec == metric == [Rating(0, 0, 1.0)]

    def test_absent_pair_is_nan(self, dataset):
        update, selection = GeneralUpdate(), open_selection(dataset)
        update.init(dataset)
        rec, metric = update.select_update(0, 3, selection)
        assert math.isnan(rec[0].value)
        assert math.isnan(metric[0].value)

    def test_unavailable_pair_is_skipped(self, dataset):
        update, selection = GeneralUpdate(), open_selection(dataset)
        update.init(dataset)
        selection.update(0, 0, 1.0)
        assert update.select_update(0, 0, selection) == ([], [])


class TestContactUpdate:
    def test_undirected_mirrors_the_link(self):
        dataset = ContactDataset(3, [(0, 1)], directed=False)
        update, selection = ContactUpdate(), open_selection(dataset)
        update.init(dataset)
        rec, metric = update.select_update(0, 1, selection)
        assert rec == [Rating(0, 1, 1.0), Rating(1, 0, 1.0)]
        assert metric == [Rating(0, 1, 1.0)]

    def test_not_reciprocal_reveals_the_reverse(self, contact_dataset):
        update, selection = ContactUpdate(not_reciprocal=True), open_selection(contact_dataset)
        update.init(contact_dataset)
        rec, _ = update.select_update(0, 1, selection)
        assert rec == [Rating(0, 1, 1.0), Rating(1, 0, 1.0)]
        rec, _ = update.select_update(1, 2, selection)
        assert rec == [Rating(1, 2, 1.0), Rating(2, 1, 0.0)]

    def test_directed_keeps_one_rating(self, contact_dataset):
        update, selection = ContactUpdate(), open_selection(contact_dataset)
        update.init(contact_dataset)
        rec, metric = update.select_update(1, 2, selection)
        assert rec == metric == [Rating(1, 2, 1.0)]

    def test_training_list_is_mirrored_for_undirected_graphs(self):
        dataset = ContactDataset(3, [(0, 1), (1, 2)], directed=False)
        update = ContactUpdate()
        update.init(dataset)
        warmup = Warmup([Rating(0, 1, 1.0)], [Rating(0, 1, 1.0)], {}, 1)
        assert update.get_list(warmup) == [Rating(0, 1, 1.0), Rating(1, 0, 1.0)]
        assert warmup.full_training == [Rating(0, 1, 1.0)]


class TestKnowledgeUpdate:
    def test_only_known(self, knowledge_dataset):
        update, selection = KnowledgeUpdate(ONLY_KNOWN), open_selection(knowledge_dataset)
        update.init(knowledge_dataset)
        rec, _ = update.select_update(0, 0, selection)
        assert rec == [Rating(0, 0, 1.0)]
        rec, _ = update.select_update(0, 1, selection)
        assert math.isnan(rec[0].value)

    def test_only_unknown(self, knowledge_dataset):
        update, selection = KnowledgeUpdate(ONLY_UNKNOWN), open_selection(knowledge_dataset)
        update.init(knowledge_dataset)
        rec, _ = update.select_update(1, 2, selection)
        assert rec == [Rating(1, 2, 1.0)]

    def test_unknown_data_use(self):
        with pytest.raises(ValueError):
            KnowledgeUpdate('SOME')


class TestReplayerUpdate:
    def test_rewards_only_the_logged_item(self, stream_dataset):
        update, selection = ReplayerUpdate(), SequentialSelection()
        selection.init(stream_dataset)
        update.init(stream_dataset)
        uidx = selection.select_target()
        assert update.select_update(uidx, 2, selection) == ([], [])
        rec, metric = update.select_update(uidx, 1, selection)
        assert rec == metric == [Rating(0, 1, 1.0)]

    def test_training_list(self, stream_dataset):
        update = ReplayerUpdate()
        update.init(stream_dataset)
        assert update.get_list(None) == []
