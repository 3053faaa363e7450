"""Define the conditions which stop a simulation. """

import math


class EndCondition(object):
    def init(self):
        pass

    def update(self, uidx, iidx, value):
        pass

    def has_ended(self):
        raise NotImplementedError


class NoLimitsEndCondition(EndCondition):
    def has_ended(self):
        return False


class NumIterEndCondition(EndCondition):
    def __init__(self, num_iter):
        self.num_iter = num_iter
        self.current = 0

    def init(self):
        self.current = 0

    def update(self, uidx, iidx, value):
        self.current += 1

    def has_ended(self):
        return self.current >= self.num_iter


class PercentagePositiveRatingsEndCondition(EndCondition):
    def __init__(self, total_rel, percentage, threshold):
        """Stops once `ceil(total_rel * percentage)` ratings >= `threshold` have been observed. """
        self.total_rel = total_rel
        self.percentage = percentage
        self.threshold = threshold
        self.num_rel = int(math.ceil(total_rel * percentage))
        self.current = 0

    def init(self):
        self.current = 0

    def update(self, uidx, iidx, value):
        # NaN compares False
        if value >= self.threshold:
            self.current += 1

    def has_ended(self):
        return self.current >= self.num_rel
