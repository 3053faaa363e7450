"""Define how non-sequential selections pick the next target user.

A user selector only sees positions in the selection's user list. The
selection tells it how many users remain and, when a user was just removed,
the position it was removed from.
"""

import numpy as np


class UserSelector(object):
    def init(self):
        pass

    def next(self, num_users, last_removed_index):
        """Args:
                num_users: int, number of users still in the pool
                last_removed_index: int, position of the last removed user, -1 if none was removed
                    since the previous call
        Return:
            position of the next target in the user list, -1 if the pool is empty
        """
        raise NotImplementedError

    def reshuffle(self):
        """Return: True if the selection must reshuffle its user list before reading the position. """
        return False


class RandomUserSelector(UserSelector):
    def __init__(self, seed):
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def init(self):
        self.rng = np.random.default_rng(self.seed)

    def next(self, num_users, last_removed_index):
        if num_users <= 0:
            return -1
        return int(self.rng.integers(num_users))


class RoundRobinSelector(UserSelector):
    def __init__(self):
        self.current_index = -1

    def init(self):
        self.current_index = -1

    def next(self, num_users, last_removed_index):
        if num_users <= 0:
            self.current_index = -1
            return -1
        # after a swap-remove at the current position, that position holds a new user
        if last_removed_index < 0 or last_removed_index != self.current_index:
            self.current_index += 1
        if self.current_index >= num_users:
            self.current_index = 0
        return self.current_index


class RandomRoundRobinSelector(RoundRobinSelector):
    def __init__(self):
        super(RandomRoundRobinSelector, self).__init__()
        self.wrapped = False

    def init(self):
        super(RandomRoundRobinSelector, self).init()
        self.wrapped = False

    def next(self, num_users, last_removed_index):
        index = super(RandomRoundRobinSelector, self).next(num_users, last_removed_index)
        self.wrapped = index == 0
        return index

    def reshuffle(self):
        return self.wrapped
