import math

import pytest

from core.metrics import (ClickthroughRate, CumulativeRecall, CumulativeHits, CumulativeCounter, CumulativeGini,
                          CumulativeEPC, GiniAtK, EPCAtK)
from core.rating import Rating, NOT_RATED


class TestCumulativeMetrics:
    def test_clickthrough_rate(self, dataset):
        ctr = ClickthroughRate()
        ctr.initialize(dataset)
        assert ctr.compute() == 0.0
        ctr.update(0, 0, 1.0)
        ctr.update(0, 1, 0.0)
        ctr.update(2, 3, NOT_RATED)
        assert ctr.compute() == pytest.approx(1.0 / 3)

    def test_recall_discounts_training(self, dataset):
        recall = CumulativeRecall(threshold=0.5)
        recall.initialize(dataset, [Rating(0, 0, 1.0), Rating(0, 1, 0.0), Rating(2, 3, NOT_RATED)])
        recall.update(0, 2, 1.0)
        recall.update(1, 0, 1.0)
        recall.update(1, 1, NOT_RATED)
        assert recall.compute() == pytest.approx(2.0 / 4)

    def test_recall_without_relevant_ratings(self, dataset):
        recall = CumulativeRecall(num_rel=0)
        recall.initialize(dataset)
        recall.update(0, 0, 1.0)
        assert recall.compute() == 0.0

    def test_hits_and_counter(self, dataset):
        hits, counter = CumulativeHits(), CumulativeCounter()
        for metric in (hits, counter):
            metric.initialize(dataset)
        for uidx, iidx, value in [(0, 0, 1.0), (0, 1, 0.0), (1, 3, 1.0), (2, 0, NOT_RATED)]:
            hits.update(uidx, iidx, value)
            counter.update(uidx, iidx, value)
        assert hits.compute() == 2.0
        assert counter.compute() == 4.0
        counter.reset()
        assert counter.compute() == 0.0

    def test_gini(self, dataset):
        gini = CumulativeGini()
        gini.initialize(dataset)
        assert math.isnan(gini.compute())
        gini.update(0, 0, 1.0)
        gini.update(1, 0, 1.0)
        assert gini.compute() == pytest.approx(0.0)
        gini.update(2, 1, 1.0)
        assert gini.compute() == pytest.approx(2.0 / 9)

    def test_epc(self, dataset):
        epc = CumulativeEPC()
        epc.initialize(dataset)
        assert math.isnan(epc.compute())
        epc.update(0, 0, 1.0)
        assert epc.compute() == pytest.approx(2.0 / 3)
        epc.update(1, 0, 1.0)
        assert epc.compute() == pytest.approx(1.0 / 3)

    def test_epc_counts_training_popularity(self, dataset):
        epc = CumulativeEPC()
        epc.initialize(dataset, [Rating(2, 0, 1.0)])
        epc.update(0, 0, 1.0)
        assert epc.compute() == pytest.approx(1.0 - 3.0 / 3)


class TestMetricsAtK:
    def test_gini_at_k(self, dataset):
        gini = GiniAtK(2)
        gini.initialize(dataset)
        gini.update(0, 0, 1.0)
        assert gini.compute() == pytest.approx(0.0)
        for iidx in (1, 0, 2):
            gini.update(0, iidx, 1.0)
            assert gini.compute() == pytest.approx(1.0 / 3)
        gini.update(0, 2, 1.0)
        assert gini.compute() == pytest.approx(0.0)

    def test_epc_at_k(self, dataset):
        epc = EPCAtK(1)
        epc.initialize(dataset)
        epc.update(0, 0, 1.0)
        assert epc.compute() == pytest.approx(2.0 / 3)
        epc.update(1, 0, 1.0)
        assert epc.compute() == pytest.approx(0.0)
        epc.reset()
        assert math.isnan(epc.compute())
