import math

import pytest

from core.dataset import ContactDataset
from core.rating import Rating
from core.warmup import load_general_warmup, load_contact_warmup, load_stream_warmup, FULL, ONLY_RATINGS


class TestGeneralWarmup:
    def test_full(self, dataset):
        warmup = load_general_warmup(dataset, [(0, 0), (0, 3), (1, 0)], FULL)
        assert warmup.clean_training == [Rating(0, 0, 1.0), Rating(1, 0, 1.0)]
        assert len(warmup.full_training) == 3
        assert math.isnan(warmup.full_training[1].value)
        assert warmup.availability[0] == [1, 2]
        assert warmup.availability[1] == [1, 2, 3]
        assert warmup.availability[2] == [0, 1, 2, 3]
        assert warmup.num_rel == 2
        assert warmup.offset == 0

    def test_only_ratings(self, dataset):
        warmup = load_general_warmup(dataset, [(0, 0), (0, 3)], ONLY_RATINGS)
        assert warmup.full_training == warmup.clean_training == [Rating(0, 0, 1.0)]
        assert warmup.availability[0] == [1, 2, 3]

    def test_unknown_type(self, dataset):
        with pytest.raises(ValueError):
            load_general_warmup(dataset, [], 'SOMETIMES')


class TestContactWarmup:
    def test_self_links_are_never_available(self, contact_dataset):
        warmup = load_contact_warmup(contact_dataset, [])
        for uidx in range(4):
            assert uidx not in warmup.availability[uidx]

    def test_directed_with_reciprocal(self, contact_dataset):
        warmup = load_contact_warmup(contact_dataset, [(0, 1), (0, 2)], FULL)
        assert warmup.clean_training == [Rating(0, 1, 1.0)]
        assert len(warmup.full_training) == 2
        assert warmup.availability[0] == [3]
        assert warmup.availability[1] == [0, 2, 3]
        assert warmup.num_rel == 1

    def test_without_reciprocal_both_directions_are_removed(self, contact_edges):
        dataset = ContactDataset(4, contact_edges, directed=True, use_reciprocal=False)
        warmup = load_contact_warmup(dataset, [(1, 2)], ONLY_RATINGS)
        assert 2 not in warmup.availability[1]
        assert 1 not in warmup.availability[2]


class TestStreamWarmup:
    def test_matching_registers(self, stream_dataset):
        warmup = load_stream_warmup(stream_dataset, [(0, 1), (1, 2)])
        assert warmup.clean_training == [Rating(0, 1, 1.0)]
        assert warmup.offset == 2
        assert warmup.num_rel == 1
        assert stream_dataset.current is None

    def test_longer_than_the_log(self, stream_dataset):
        warmup = load_stream_warmup(stream_dataset, [(0, 0)] * 10)
        assert warmup.offset == 4
        assert warmup.clean_training == []
