"""Run experiment: simulate every configured algorithm on one dataset, for a
number of trials, and store the traces plus a summary of the final metrics.
"""

import json
import logging
import os
import re

from configs.params import parse_args
from core.end_condition import NoLimitsEndCondition, NumIterEndCondition, PercentagePositiveRatingsEndCondition
from core.loop import RecommendationLoop
from core.metrics import (ClickthroughRate, CumulativeRecall, CumulativeHits, CumulativeCounter, CumulativeGini,
                          CumulativeEPC, GiniAtK, EPCAtK)
from core.registry import AlgorithmSelector
from core.runner import LoopJob, run_parallel, summarize
from core.selection import (NonSequentialSelection, LimitedCandidatePoolSelection, SequentialSelection,
                            SequentialLimitedCandidatePoolSelection)
from core.update import GeneralUpdate, ContactUpdate, KnowledgeUpdate, ReplayerUpdate
from core.user_selector import RandomUserSelector, RoundRobinSelector, RandomRoundRobinSelector
from core.warmup import load_general_warmup, load_contact_warmup, load_stream_warmup
from utils.data_util import (load_general_dataset, load_contact_dataset, load_knowledge_dataset,
                             load_stream_dataset, load_pairs)
from utils.log_util import setup_logger
from utils.seeds import SeedService

logger = logging.getLogger(__name__)

SEQUENTIAL = ('sequential', 'sequential-limited')


def load_data(args):
    """Return: (dataset, user IdIndex, item IdIndex). """
    if args.dataset_type == 'general':
        return load_general_dataset(args.data, args.threshold, args.use_ratings, args.separator)
    elif args.dataset_type == 'contact':
        dataset, users = load_contact_dataset(args.data, args.directed, args.reciprocal, args.separator)
        return dataset, users, users
    elif args.dataset_type == 'knowledge':
        return load_knowledge_dataset(args.data, args.threshold, args.use_ratings, args.separator)
    elif args.dataset_type == 'stream':
        return load_stream_dataset(args.data, args.threshold, args.separator)
    else:
        raise NotImplementedError


def load_warmup(args, dataset, users, items):
    if args.training is None:
        return None
    pairs = load_pairs(args.training, users, items, args.separator)
    if args.dataset_type == 'stream':
        return load_stream_warmup(dataset, pairs)
    elif args.dataset_type == 'contact':
        return load_contact_warmup(dataset, pairs, args.warmup_type)
    return load_general_warmup(dataset, pairs, args.warmup_type)


def build_selection(args, seed):
    if args.selection == 'random':
        return NonSequentialSelection(seed, RandomUserSelector(seed))
    elif args.selection == 'roundrobin':
        return NonSequentialSelection(seed, RoundRobinSelector())
    elif args.selection == 'random-roundrobin':
        return NonSequentialSelection(seed, RandomRoundRobinSelector())
    elif args.selection == 'limited':
        return LimitedCandidatePoolSelection(seed, args.num_candidates)
    elif args.selection == 'sequential':
        return SequentialSelection()
    elif args.selection == 'sequential-limited':
        return SequentialLimitedCandidatePoolSelection(seed, args.num_candidates - 1)
    else:
        raise NotImplementedError


def build_update(args):
    if args.dataset_type == 'contact':
        return ContactUpdate(args.not_reciprocal)
    elif args.dataset_type == 'knowledge':
        return KnowledgeUpdate(args.data_use)
    elif args.dataset_type == 'stream':
        return ReplayerUpdate()
    return GeneralUpdate()


def build_end_condition(args, dataset, warmup):
    if args.num_iter > 0:
        return NumIterEndCondition(args.num_iter)
    if args.perc_rel > 0:
        total_rel = dataset.get_num_rel() - (warmup.num_rel if warmup is not None else 0)
        return PercentagePositiveRatingsEndCondition(total_rel, args.perc_rel, args.threshold)
    return NoLimitsEndCondition()


def build_metrics(args):
    """Return: dict, key: metric name, value: a fresh CumulativeMetric. """
    metrics = {
        'ctr': ClickthroughRate(),
        'hits': CumulativeHits(),
        'count': CumulativeCounter(),
        'gini': CumulativeGini(),
        'epc': CumulativeEPC(),
    }
    if args.dataset_type != 'stream':
        metrics['recall'] = CumulativeRecall(threshold=args.threshold)
    if args.metric_k > 0:
        metrics['gini@{}'.format(args.metric_k)] = GiniAtK(args.metric_k)
        metrics['epc@{}'.format(args.metric_k)] = EPCAtK(args.metric_k)
    return metrics


def file_label(label):
    return re.sub(r'[^A-Za-z0-9_.=-]+', '_', label)


def make_job(args, dataset, warmup, label, factory, trial, seed, trace_dir):
    def build():
        loop = RecommendationLoop(dataset, build_selection(args, seed), build_update(args), factory,
                                  build_end_condition(args, dataset, warmup), build_metrics(args), seed, args.cutoff)
        loop.init(warmup)
        return loop

    ext = 'bin' if args.binary else 'txt'
    trace_path = os.path.join(trace_dir, '{}-{}.{}'.format(trial, file_label(label), ext))
    return LoopJob('{}#{}'.format(label, trial), build, trace_path, args.binary, args.resume, args.interval)


def main(argv=None):
    args = parse_args(argv)
    os.makedirs(args.result_path, exist_ok=True)
    setup_logger(None, log_dir=args.result_path, level=getattr(logging, args.log_level.upper()))
    logger.info(args)

    if args.dataset_type == 'stream' and args.selection not in SEQUENTIAL:
        raise ValueError('A stream dataset needs a sequential selection, got {}'.format(args.selection))
    if args.dataset_type != 'stream' and args.selection in SEQUENTIAL:
        raise ValueError('Selection {} needs a stream dataset'.format(args.selection))

    selector = AlgorithmSelector()
    with open(args.algorithms, 'r') as f:
        selector.configure(f)

    dataset, users, items = load_data(args)
    warmup = load_warmup(args, dataset, users, items)

    seeds = SeedService(args.seed).configure(args.n_trials, args.result_path, args.resume)

    trace_dir = os.path.join(args.result_path, 'trial')
    os.makedirs(trace_dir, exist_ok=True)
    jobs, keys = [], []
    for label in selector.names():
        factory = selector.get_factory(label)
        for trial, seed in enumerate(seeds):
            jobs.append(make_job(args, dataset, warmup, label, factory, trial, seed, trace_dir))
            keys.append((label, trial, seed))

    with open(os.path.join(args.result_path, 'args.json'), 'wt') as f:
        json.dump(vars(args), f, indent=4)

    results = run_parallel(jobs, args.num_workers)
    for result, (label, trial, seed) in zip(results, keys):
        result.update({'algorithm': label, 'trial': trial, 'seed': seed})
    df = summarize(results)
    summary_path = os.path.join(args.result_path, 'summary.csv')
    df.to_csv(summary_path)
    logger.info('Summary saved to %s\n%s', summary_path, df.groupby('algorithm').mean(numeric_only=True))
    return df


if __name__ == '__main__':
    main()
