"""Shared fixtures: tiny datasets small enough to check by hand. """

import pytest

from core.dataset import OfflineDataset, ContactDataset, KnowledgeDataset, StreamDataset, LogRecord


@pytest.fixture
def ratings():
    # 3 users x 4 items, threshold 0.5
    return [
        (0, 0, 1.0), (0, 1, 0.0), (0, 2, 1.0),
        (1, 0, 1.0), (1, 3, 1.0),
        (2, 1, 1.0), (2, 2, 0.0),
    ]


@pytest.fixture
def dataset(ratings):
    return OfflineDataset(3, 4, ratings, relevance_threshold=0.5)


@pytest.fixture
def contact_edges():
    return [(0, 1), (1, 0), (1, 2), (2, 3), (3, 0)]


@pytest.fixture
def contact_dataset(contact_edges):
    return ContactDataset(4, contact_edges, directed=True, use_reciprocal=True)


@pytest.fixture
def knowledge_dataset():
    return KnowledgeDataset(2, 3, [
        (0, 0, 1.0, True), (0, 1, 1.0, False), (1, 1, 0.0, True), (1, 2, 1.0, False),
    ])


@pytest.fixture
def log_records():
    return [
        LogRecord(0, 1, 1.0, [1, 2]),
        LogRecord(1, 0, 0.0, [0, 1, 2]),
        LogRecord(0, 2, 1.0, [2, 0]),
        LogRecord(2, 1, 1.0, [1]),
    ]


@pytest.fixture
def stream_dataset(log_records):
    return StreamDataset(3, 3, log_records)
