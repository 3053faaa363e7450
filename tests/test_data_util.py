import pytest

from core.dataset import LogRecord
from utils.data_util import (IdIndex, load_general_dataset, load_contact_dataset, load_knowledge_dataset,
                             load_stream_dataset, load_pairs)


@pytest.fixture
def ratings_file(tmp_path):
    path = tmp_path / 'ratings.txt'
    path.write_text('u1\ti1\t5\nu2\ti1\t3\nu1\ti2\t1\n')
    return str(path)


def test_id_index():
    index = IdIndex(['b', 'a', 'b'])
    assert len(index) == 2
    assert index.get('b') == 0
    assert index.get('a') == 1
    assert index.get('c') == -1
    assert 'a' in index
    assert index.idx2id == ['b', 'a']


def test_general_dataset(ratings_file):
    dataset, users, items = load_general_dataset(ratings_file, threshold=3)
    assert dataset.num_users() == 2
    assert dataset.num_items() == 2
    assert dataset.get_preference(users.get('u1'), items.get('i1')) == 5.0
    assert dataset.get_num_ratings() == 3
    assert dataset.get_num_rel() == 2


def test_general_dataset_without_ratings(ratings_file):
    dataset, _, _ = load_general_dataset(ratings_file, use_ratings=False)
    assert {r.value for r in dataset.ratings()} == {1.0}


def test_numeric_ids_are_kept_as_text(tmp_path):
    path = tmp_path / 'ratings.txt'
    path.write_text('10\t007\t1\n')
    _, users, items = load_general_dataset(str(path))
    assert users.get('10') == 0
    assert items.get('007') == 0


def test_pairs_skip_unknown_ids(ratings_file, tmp_path):
    _, users, items = load_general_dataset(ratings_file)
    path = tmp_path / 'train.txt'
    path.write_text('u1\ti2\nu9\ti1\nu2\ti1\n')
    assert load_pairs(str(path), users, items) == [(0, 1), (1, 0)]


def test_contact_dataset(tmp_path):
    path = tmp_path / 'edges.txt'
    path.write_text('a\tb\nb\tc\n')
    dataset, users = load_contact_dataset(str(path), directed=False)
    assert dataset.num_users() == dataset.num_items() == 3
    assert dataset.get_preference(users.get('c'), users.get('b')) == 1.0
    assert not dataset.is_directed()


def test_knowledge_dataset(tmp_path):
    path = tmp_path / 'knowledge.txt'
    path.write_text('u1\ti1\t1\t1\nu1\ti2\t1\t0\n')
    dataset, users, items = load_knowledge_dataset(str(path))
    assert dataset.get_num_rel_known() == 1
    assert dataset.get_num_rel_unknown() == 1
    assert dataset.get_known_dataset().get_preference(0, items.get('i2')) is None


def test_stream_dataset(tmp_path):
    path = tmp_path / 'log.txt'
    path.write_text('u1\ti1\t1\ti2\ti3\nbroken\nu2\ti3\t0\n')
    dataset, users, items = load_stream_dataset(str(path))
    dataset.restart()
    assert dataset.advance() == LogRecord(0, 0, 1.0, [0, 1, 2])
    assert dataset.advance() == LogRecord(1, 2, 0.0, [2])
    assert dataset.advance() is None
    assert dataset.has_ended()
