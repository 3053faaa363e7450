"""Define the recommendation loop: select a target, recommend, reveal the
rating and update every component, until the end condition or the pool of
targets is exhausted.
"""

import logging
import time
from collections import namedtuple

from core.end_condition import NoLimitsEndCondition
from core.rating import Rating, NOT_RATED

logger = logging.getLogger(__name__)

# A single step of a simulation: the iteration number, the target user, the
# recommended items (best first) and the time taken by the recommender in ms.
TraceRecord = namedtuple('TraceRecord', ['iteration', 'uidx', 'items', 'time'])

UNINITIALIZED = 'UNINITIALIZED'
INITIALIZED = 'INITIALIZED'
RUNNING = 'RUNNING'
FINISHED = 'FINISHED'


class RecommendationLoop(object):
    def __init__(self, dataset, selection, update, recommender_factory, end_condition=None, metrics=None, seed=0,
                 cutoff=1):
        """Args:
                dataset: the ground truth (offline or stream dataset)
                selection: Selection
                update: UpdateStrategy
                recommender_factory: callable (num_users, num_items, seed) -> InteractiveRecommender
                end_condition: EndCondition, NoLimitsEndCondition if None
                metrics: dict, key: metric name, value: CumulativeMetric
                seed: int, seed of the recommender
                cutoff: int, number of items recommended at each iteration
        """
        self.dataset = dataset
        self.selection = selection
        self.update = update
        self.recommender = recommender_factory(dataset.num_users(), dataset.num_items(), seed)
        self.end_condition = end_condition if end_condition is not None else NoLimitsEndCondition()
        self.metrics = metrics or {}
        self.metric_names = sorted(self.metrics)
        self.seed = seed
        self.cutoff = cutoff
        self.num_iter = 0
        self.state = UNINITIALIZED

    def init(self, warmup=None):
        self.selection.init(self.dataset, warmup)
        self.update.init(self.dataset)
        training = self.update.get_list(warmup)
        self.recommender.init(training)
        self.end_condition.init()
        train = warmup.full_training if warmup is not None else None
        for name in self.metric_names:
            self.metrics[name].initialize(self.dataset, train)
        self.num_iter = 0
        self.state = INITIALIZED
        logger.debug('Loop initialized with %d training ratings', len(training))

    def _check_initialized(self):
        if self.state == UNINITIALIZED:
            raise RuntimeError('The recommendation loop has not been initialized')

    def has_ended(self):
        if self.state == FINISHED:
            return True
        if self.end_condition.has_ended():
            self.state = FINISHED
        return self.state == FINISHED

    def get_current_iteration(self):
        return self.num_iter

    def next_recommendation(self):
        """Return: (uidx, list of iidx) for the next target, None once no target can be served. """
        self._check_initialized()
        if self.has_ended():
            return None
        while True:
            uidx = self.selection.select_target()
            if uidx < 0:
                self.state = FINISHED
                return None
            candidates = self.selection.select_candidates(uidx)
            if not candidates:
                continue
            if self.cutoff <= 1:
                iidx = self.recommender.next(uidx, candidates)
                items = [iidx] if iidx >= 0 else []
            else:
                items = self.recommender.next_k(uidx, candidates, self.cutoff)
            if not items:
                continue
            self.state = RUNNING
            return uidx, items

    def _reveal(self, uidx, iidx):
        """Feed the ratings revealed for (uidx, iidx) to the recommender, the selection and the metrics.

        Return:
            the list of metric ratings of the pair
        """
        rec_ratings, metric_ratings = self.update.select_update(uidx, iidx, self.selection)
        for rating in rec_ratings:
            self.recommender.update(rating.uidx, rating.iidx, rating.value)
            self.selection.update(rating.uidx, rating.iidx, rating.value)
        for rating in metric_ratings:
            for name in self.metric_names:
                self.metrics[name].update(rating.uidx, rating.iidx, rating.value)
        return metric_ratings

    def fast_update(self, uidx, items):
        """Reveal the ratings of the recommended items and update every component.

        The end condition is updated once per iteration, with the rating of the
        best item (NaN when nothing was revealed for it).
        """
        if isinstance(items, int):
            items = [items]
        primary = None
        for iidx in items:
            metric_ratings = self._reveal(uidx, iidx)
            if primary is None:
                primary = metric_ratings[0] if metric_ratings else Rating(uidx, iidx, NOT_RATED)
        if primary is not None:
            self.end_condition.update(primary.uidx, primary.iidx, primary.value)

    def advance(self):
        """Run one iteration.

        Return:
            TraceRecord of the iteration, None if the loop has finished.
        """
        start = time.time()
        rec = self.next_recommendation()
        elapsed = int(round((time.time() - start) * 1000))
        if rec is None:
            return None
        uidx, items = rec
        self.fast_update(uidx, items)
        self.num_iter += 1
        return TraceRecord(self.num_iter, uidx, items, elapsed)

    def replay(self, records):
        """Apply the updates of previously recorded iterations, e.g. to resume an interrupted run. """
        self._check_initialized()
        for record in records:
            if not self.selection.replay_target(record.uidx):
                logger.warning('Recorded iteration %d cannot be replayed, stopping the replay', record.iteration)
                break
            self.fast_update(record.uidx, list(record.items))
            self.num_iter += 1
        if self.num_iter > 0:
            self.state = RUNNING

    def get_metrics(self):
        """Return: dict, key: metric name, value: current value. """
        return {name: self.metrics[name].compute() for name in self.metric_names}
