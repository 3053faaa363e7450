"""Define the rating triple shared by datasets, strategies and recommenders. """

import math
from collections import namedtuple

# value of a (user, item) pair which is absent from the ground truth
NOT_RATED = float('nan')
# value used by recommenders which do not ignore absent pairs
NOT_RATED_NOT_IGNORED = 0.0

Rating = namedtuple('Rating', ['uidx', 'iidx', 'value'])


def is_not_rated(value):
    return value is None or (isinstance(value, float) and math.isnan(value))
