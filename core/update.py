"""Define the update strategies, which turn a (user, recommended item) decision
into the ratings fed to the recommender and to the metrics.
"""

from core.dataset import ALL, KNOWLEDGE_DATA_USES
from core.rating import Rating, NOT_RATED


class UpdateStrategy(object):
    def init(self, dataset):
        self.dataset = dataset

    def select_update(self, uidx, iidx, selection):
        """Args:
                uidx: int, target user
                iidx: int, recommended item
                selection: Selection, used to check whether the pair can still be rated
        Return:
            (rec_ratings, metric_ratings): two lists of Rating
        """
        raise NotImplementedError

    def get_list(self, warmup):
        """Return: the list of Rating used to train the recommender before the run. """
        if warmup is None:
            return []
        return list(warmup.full_training)


class GeneralUpdate(UpdateStrategy):
    def select_update(self, uidx, iidx, selection):
        if not selection.is_available(uidx, iidx):
            return [], []
        value = self.dataset.get_preference(uidx, iidx)
        rating = Rating(uidx, iidx, NOT_RATED if value is None else value)
        return [rating], [rating]


class ContactUpdate(UpdateStrategy):
    def __init__(self, not_reciprocal=False):
        """Args:
                not_reciprocal: bool, whether the reciprocal of a discovered link is also revealed
                    to the recommender (directed graphs only)
        """
        self.not_reciprocal = not_reciprocal

    def select_update(self, uidx, iidx, selection):
        if not selection.is_available(uidx, iidx):
            return [], []
        value = self.dataset.get_preference(uidx, iidx)
        value = NOT_RATED if value is None else value
        rating = Rating(uidx, iidx, value)
        rec_ratings, metric_ratings = [rating], [rating]
        if not self.dataset.is_directed():
            rec_ratings.append(Rating(iidx, uidx, value))
        elif self.not_reciprocal and selection.is_available(iidx, uidx):
            reverse = self.dataset.get_preference(iidx, uidx)
            rec_ratings.append(Rating(iidx, uidx, 0.0 if reverse is None else reverse))
        return rec_ratings, metric_ratings

    def get_list(self, warmup):
        if warmup is None:
            return []
        training = []
        for rating in warmup.full_training:
            training.append(rating)
            if not self.dataset.is_directed():
                training.append(Rating(rating.iidx, rating.uidx, rating.value))
            elif self.not_reciprocal:
                reverse = self.dataset.get_preference(rating.iidx, rating.uidx)
                training.append(Rating(rating.iidx, rating.uidx, 0.0 if reverse is None else reverse))
        return training


class KnowledgeUpdate(UpdateStrategy):
    def __init__(self, data_use=ALL):
        """Args:
                data_use: ALL, ONLY_KNOWN or ONLY_UNKNOWN; ratings outside the subset are revealed as NaN
        """
        if data_use not in KNOWLEDGE_DATA_USES:
            raise ValueError('Unknown knowledge data use: {}'.format(data_use))
        self.data_use = data_use
        self.subset = None

    def init(self, dataset):
        super(KnowledgeUpdate, self).init(dataset)
        self.subset = dataset.get_dataset(self.data_use)

    def select_update(self, uidx, iidx, selection):
        if not selection.is_available(uidx, iidx):
            return [], []
        value = self.subset.get_preference(uidx, iidx)
        rating = Rating(uidx, iidx, NOT_RATED if value is None else value)
        return [rating], [rating]


class ReplayerUpdate(UpdateStrategy):
    """Only a recommendation which matches the logged (user, featured item) is rewarded.
    A mismatch produces no rating at all: the log cannot tell whether the user would have liked it.
    """

    def select_update(self, uidx, iidx, selection):
        stream = selection.current_stream()
        if stream is None or stream.get_current_uidx() != uidx or stream.get_featured_iidx() != iidx:
            return [], []
        rating = Rating(uidx, iidx, stream.get_featured_item_rating())
        return [rating], [rating]
