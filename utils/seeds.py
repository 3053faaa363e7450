"""Deterministic seeds for the runs of an experiment.

Every random decision of a run (user shuffling, tie breaking, sampling inside
the recommenders) comes from generators seeded here, so an experiment is
reproducible from its master seed. The list of seeds can be persisted next to
the results (`rngseedlist`, one seed per line) to resume an interrupted
experiment with the same seeds.
"""

import logging
import os

import numpy as np

logger = logging.getLogger(__name__)

SEED_FILE = 'rngseedlist'


class SeedService(object):
    def __init__(self, master_seed=0):
        self.master_seed = master_seed
        self.seed_list = []
        self.counter = -1

    def seeds(self, n):
        """Return: list of `n` int seeds derived from the master seed. The first k of seeds(n) equal seeds(k). """
        if n <= 0:
            return []
        state = np.random.SeedSequence(self.master_seed).generate_state(n, dtype=np.uint32)
        # keep them inside the int32 range of the trace files and of the seed list
        return [int(s) & 0x7fffffff for s in state]

    def spawn(self, k):
        """Return: `k` independent numpy Generators. """
        return [np.random.default_rng(s) for s in np.random.SeedSequence(self.master_seed).spawn(k)]

    def configure(self, k=1, directory=None, resume=False):
        """Prepare the list of `k` run seeds.

        Args:
            k: int, number of seeds
            directory: str, where `rngseedlist` is read (when resuming) and written; nothing is stored if None
            resume: bool, reuse the seeds stored in `directory`
        Return:
            list of int seeds
        """
        stored = []
        path = os.path.join(directory, SEED_FILE) if directory is not None else None
        if resume and path is not None and os.path.exists(path):
            stored = load_seeds(path)
            logger.info('Loaded %d seeds from %s', len(stored), path)
        generated = self.seeds(k)
        self.seed_list = stored[:k] + generated[len(stored):]
        self.counter = -1
        if path is not None:
            save_seeds(path, self.seed_list)
        return list(self.seed_list)

    def next_seed(self):
        """Cycle through the configured seeds. """
        if not self.seed_list:
            self.configure(1)
        self.counter = (self.counter + 1) % len(self.seed_list)
        return self.seed_list[self.counter]


def load_seeds(path):
    with open(path, 'r') as f:
        return [int(line) for line in f if line.strip()]


def save_seeds(path, seeds):
    with open(path, 'w') as f:
        for seed in seeds:
            f.write('{}\n'.format(seed))
