"""Define the runners of an experiment: drive one recommendation loop to the
end, or several independent loops on a pool of workers, and summarize them.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

import pandas as pd
from tqdm import tqdm

from utils.log_util import format_metrics
from utils.trace_io import get_writer, get_reader

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 10000


def run_loop(loop, writer=None, resume=None, interval=DEFAULT_INTERVAL, name='loop', progress=True):
    """Run an initialized loop until it ends.

    Args:
        loop: RecommendationLoop, already initialized
        writer: TraceWriter, open writer receiving each TraceRecord (optional)
        resume: list of TraceRecord already run, replayed before the first new iteration
        interval: int, log a metric snapshot every `interval` iterations (<= 0 disables it)
        name: str, label of the run in logs and in the summary
        progress: bool, show a tqdm progress bar
    Return:
        summary: dict, key: 'name', 'iterations', 'time', plus one key per metric
    """
    if resume:
        loop.replay(resume)
        logger.info('[%s] resumed after %d iterations', name, loop.get_current_iteration())

    total_time = 0
    pbar = tqdm(desc=name, initial=loop.get_current_iteration(), disable=not progress, leave=False)
    try:
        while not loop.has_ended():
            record = loop.advance()
            if record is None:
                break
            total_time += record.time
            if writer is not None:
                writer.write(record)
            pbar.update(1)
            if interval > 0 and record.iteration % interval == 0:
                logger.info('[%s] iteration %d: %s', name, record.iteration, format_metrics(loop.get_metrics()))
                if writer is not None:
                    writer.flush()
    finally:
        pbar.close()

    summary = {'name': name, 'iterations': loop.get_current_iteration(), 'time': total_time}
    summary.update(loop.get_metrics())
    logger.info('[%s] finished after %d iterations: %s', name, summary['iterations'],
                format_metrics(loop.get_metrics()))
    return summary


class LoopJob(object):
    def __init__(self, name, build, trace_path=None, binary=False, resume=False, interval=DEFAULT_INTERVAL):
        """One independent simulation of an experiment.

        Args:
            name: str, label of the run
            build: callable () -> initialized RecommendationLoop; it must not share mutable state with other jobs
            trace_path: str, where the trace is written, no trace if None
            binary: bool, binary trace format
            resume: bool, replay an existing trace and append the new iterations to it
            interval: int, iterations between metric snapshots
        """
        self.name = name
        self.build = build
        self.trace_path = trace_path
        self.binary = binary
        self.resume = resume
        self.interval = interval

    def previous_records(self):
        if not self.resume or self.trace_path is None or not os.path.exists(self.trace_path):
            return []
        return get_reader(self.trace_path, self.binary).read()

    def run(self, progress=False):
        loop = self.build()
        previous = self.previous_records()
        if self.trace_path is None:
            return run_loop(loop, None, previous, self.interval, self.name, progress)
        writer = get_writer(self.trace_path, self.binary)
        with writer.open(append=bool(previous)):
            return run_loop(loop, writer, previous, self.interval, self.name, progress)


def run_parallel(jobs, num_workers=1):
    """Run independent jobs, on a thread pool when `num_workers` > 1.

    Return:
        list of summaries, in the order of `jobs`
    """
    jobs = list(jobs)
    t_start = time.time()
    if num_workers <= 1:
        results = [job.run(progress=True) for job in jobs]
    else:
        results = [None] * len(jobs)
        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            futures = {executor.submit(job.run): pos for pos, job in enumerate(jobs)}
            for future in tqdm(as_completed(futures), total=len(futures), desc='runs'):
                pos = futures[future]
                # errors of a run propagate to the caller
                results[pos] = future.result()
    logger.info('%d runs finished in %.1fs', len(jobs), time.time() - t_start)
    return results


def summarize(results):
    """Return: pandas.DataFrame with one row per run summary, indexed by run name. """
    df = pd.DataFrame(list(results))
    if df.empty:
        return df
    return df.set_index('name')
