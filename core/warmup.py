"""Build the warm-up snapshot replayed before a simulation starts. """

import logging
from collections import namedtuple

from core.rating import Rating, NOT_RATED

logger = logging.getLogger(__name__)

FULL = 'FULL'
ONLY_RATINGS = 'ONLY_RATINGS'
WARMUP_TYPES = (FULL, ONLY_RATINGS)

# clean_training: list of Rating present in the ground truth
# full_training: clean_training plus NaN ratings for pairs absent from the ground truth
# availability: dict, key: uidx, value: list of iidx still available after the warm-up
# num_rel: int, number of relevant ratings in the warm-up
# offset: int, number of stream registers consumed by the warm-up (0 for offline data)
Warmup = namedtuple('Warmup', ['clean_training', 'full_training', 'availability', 'num_rel', 'offset'],
                    defaults=(0,))


def _check_type(warmup_type):
    if warmup_type not in WARMUP_TYPES:
        raise ValueError('Unknown warm-up type: {}'.format(warmup_type))


def load_general_warmup(dataset, pairs, warmup_type=FULL):
    """Warm-up for an offline dataset.

    Args:
        dataset: OfflineDataset
        pairs: list of (uidx, iidx) training pairs
        warmup_type: FULL (absent pairs become NaN ratings) or ONLY_RATINGS
    Return:
        Warmup
    """
    _check_type(warmup_type)
    availability = {uidx: list(dataset.get_all_iidx()) for uidx in dataset.get_all_uidx()}
    removed = {uidx: set() for uidx in availability}
    clean, full = [], []
    num_rel = 0
    for uidx, iidx in pairs:
        value = dataset.get_preference(uidx, iidx)
        if value is not None:
            clean.append(Rating(uidx, iidx, value))
            full.append(Rating(uidx, iidx, value))
            removed[uidx].add(iidx)
        elif warmup_type == FULL:
            full.append(Rating(uidx, iidx, NOT_RATED))
            removed[uidx].add(iidx)
        if dataset.is_relevant(0.0 if value is None else value):
            num_rel += 1

    for uidx, items in removed.items():
        if items:
            availability[uidx] = [iidx for iidx in availability[uidx] if iidx not in items]
    logger.info('General warm-up: %d clean ratings, %d full ratings, %d relevant', len(clean), len(full), num_rel)
    return Warmup(clean, full, availability, num_rel)


def load_contact_warmup(dataset, pairs, warmup_type=FULL):
    """Warm-up for a contact dataset: self links are never available, and
    reciprocal links are discarded together with the original one when the
    graph is undirected or reciprocity is not allowed.
    """
    _check_type(warmup_type)
    symmetric = (not dataset.is_directed()) or (not dataset.use_reciprocal())
    removed = {uidx: {uidx} for uidx in dataset.get_all_uidx()}
    clean, full = [], []
    num_rel = 0
    for uidx, vidx in pairs:
        value = dataset.get_preference(uidx, vidx)
        if value is not None:
            clean.append(Rating(uidx, vidx, value))
            full.append(Rating(uidx, vidx, value))
        elif warmup_type == FULL:
            full.append(Rating(uidx, vidx, NOT_RATED))
        else:
            continue
        removed[uidx].add(vidx)
        if symmetric:
            removed[vidx].add(uidx)
        if dataset.is_relevant(0.0 if value is None else value):
            num_rel += 1

    availability = {}
    for uidx in dataset.get_all_uidx():
        availability[uidx] = [vidx for vidx in dataset.get_all_iidx() if vidx not in removed[uidx]]
    logger.info('Contact warm-up: %d clean ratings, %d full ratings, %d relevant', len(clean), len(full), num_rel)
    return Warmup(clean, full, availability, num_rel)


def load_stream_warmup(dataset, pairs):
    """Warm-up for a stream dataset: replays the log from the start, keeping the
    training pairs which coincide with the logged (user, featured item).
    The shared dataset is not moved: the replay runs on a private cursor and
    the number of consumed registers is kept as the warm-up offset.
    """
    stream = dataset.copy()
    stream.restart()
    clean = []
    num_rel = 0
    offset = 0
    for uidx, iidx in pairs:
        record = stream.advance()
        if record is None:
            break
        offset += 1
        if record.uidx == uidx and record.iidx == iidx:
            clean.append(Rating(uidx, iidx, record.rating))
            if dataset.is_relevant(record.rating):
                num_rel += 1
    logger.info('Stream warm-up: %d ratings, %d relevant', len(clean), num_rel)
    return Warmup(clean, list(clean), {}, num_rel, offset)
