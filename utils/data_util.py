"""Define utils for data: readers for the rating, contact, knowledge and stream
files, which map external identifiers to dense indices.

All files are separator-delimited text without header:
    ratings:   user  item  rating
    contacts:  user  user
    knowledge: user  item  rating  known (1/0)
    stream:    user  item  rating  [candidate items ...]
    pairs:     user  item
"""

import logging

import pandas as pd

from core.dataset import OfflineDataset, ContactDataset, KnowledgeDataset, StreamDataset, LogRecord

logger = logging.getLogger(__name__)


class IdIndex(object):
    """Bidirectional map between external ids and dense indices, in order of first appearance. """

    def __init__(self, ids=()):
        self.id2idx = {}
        self.idx2id = []
        for id_ in ids:
            self.add(id_)

    def add(self, id_):
        if id_ not in self.id2idx:
            self.id2idx[id_] = len(self.idx2id)
            self.idx2id.append(id_)
        return self.id2idx[id_]

    def get(self, id_, default=-1):
        return self.id2idx.get(id_, default)

    def __len__(self):
        return len(self.idx2id)

    def __contains__(self, id_):
        return id_ in self.id2idx


def _read_table(path, names, sep):
    logger.info('loading %s', path)
    return pd.read_csv(path, sep=sep, header=None, names=names, usecols=range(len(names)),
                       dtype={name: str for name in names if name in ('user', 'item', 'contact')},
                       comment='#', skip_blank_lines=True, engine='python')


def load_general_dataset(path, threshold=0.5, use_ratings=True, sep='\t'):
    """Return: (OfflineDataset, user IdIndex, item IdIndex). """
    df = _read_table(path, ['user', 'item', 'rating'], sep)
    users, items = IdIndex(df['user']), IdIndex(df['item'])
    values = df['rating'].astype(float) if use_ratings else pd.Series(1.0, index=df.index)
    ratings = [(users.get(u), items.get(i), float(v)) for u, i, v in zip(df['user'], df['item'], values)]
    dataset = OfflineDataset(len(users), len(items), ratings, threshold, name=path)
    logger.info('\n%s', dataset)
    return dataset, users, items


def load_contact_dataset(path, directed=True, use_reciprocal=True, sep='\t'):
    """Return: (ContactDataset, user IdIndex). Users and items share the index. """
    df = _read_table(path, ['user', 'contact'], sep)
    users = IdIndex()
    for u, v in zip(df['user'], df['contact']):
        users.add(u)
        users.add(v)
    edges = [(users.get(u), users.get(v)) for u, v in zip(df['user'], df['contact'])]
    dataset = ContactDataset(len(users), edges, directed, use_reciprocal, name=path)
    logger.info('\n%s', dataset)
    return dataset, users


def load_knowledge_dataset(path, threshold=0.5, use_ratings=True, sep='\t'):
    """Return: (KnowledgeDataset, user IdIndex, item IdIndex). """
    df = _read_table(path, ['user', 'item', 'rating', 'known'], sep)
    users, items = IdIndex(df['user']), IdIndex(df['item'])
    values = df['rating'].astype(float) if use_ratings else pd.Series(1.0, index=df.index)
    known = df['known'].astype(int) == 1
    quartets = [(users.get(u), items.get(i), float(v), bool(k))
                for u, i, v, k in zip(df['user'], df['item'], values, known)]
    dataset = KnowledgeDataset(len(users), len(items), quartets, threshold, name=path)
    logger.info('\n%s', dataset)
    return dataset, users, items


def load_stream_dataset(path, threshold=0.5, sep='\t'):
    """Return: (StreamDataset, user IdIndex, item IdIndex). The log is kept in memory.

    Lines with less than three fields are skipped. The candidate list of a line is
    the featured item plus any extra items in the line.
    """
    logger.info('loading %s', path)
    users, items = IdIndex(), IdIndex()
    raw = []
    with open(path, 'r') as f:
        for line in f:
            fields = line.rstrip('\n').split(sep)
            if len(fields) < 3:
                continue
            raw.append(fields)
            users.add(fields[0])
            for item in [fields[1]] + fields[3:]:
                items.add(item)
    records = []
    for fields in raw:
        iidx = items.get(fields[1])
        candidates = [iidx] + [items.get(c) for c in fields[3:] if items.get(c) != iidx]
        records.append(LogRecord(users.get(fields[0]), iidx, float(fields[2]), candidates))
    logger.info('Stream with %d registers, %d users, %d items', len(records), len(users), len(items))
    return StreamDataset(len(users), len(items), records, threshold, name=path), users, items


def load_pairs(path, users, items, sep='\t'):
    """Read (user, item) training pairs and map them to indices; unknown ids are skipped. """
    df = _read_table(path, ['user', 'item'], sep)
    pairs = []
    skipped = 0
    for u, i in zip(df['user'], df['item']):
        uidx, iidx = users.get(u), items.get(i)
        if uidx < 0 or iidx < 0:
            skipped += 1
            continue
        pairs.append((uidx, iidx))
    if skipped:
        logger.warning('%d training pairs with unknown ids were skipped', skipped)
    return pairs
