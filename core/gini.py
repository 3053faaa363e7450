"""Incremental Gini index over item frequencies.

Frequencies are kept sorted implicitly: for every distinct frequency value we
store the 1-based interval of ranks [min, max] that value occupies in the
ascending sorted frequency vector. Changing one item's frequency by one unit
only moves the boundaries of the old and new value buckets (and shifts the
buckets in between when the change is larger), so each update costs
O(log n) for the bucket search plus the number of buckets crossed.

The index is

    G = sum_j (2j - n - 1) f_(j) / ((n - 1) sum_j f_(j))

where f_(j) is the j-th smallest frequency.
"""

import bisect
from collections import defaultdict


def bucket_contribution(value, rank_min, rank_max, n):
    """Sum of value * (2j - n - 1) for j in [rank_min, rank_max]. """
    return value * (rank_max - rank_min + 1) * (rank_max + rank_min - n - 1)


class GiniIndex(object):
    def __init__(self, num_items, frequencies=None):
        """Args:
                num_items: int, size of the catalog
                frequencies: optional dict, key: iidx, value: initial (non-negative) frequency
        """
        self.num_items = num_items
        self.initial = dict(frequencies) if frequencies else {}
        self.reset()

    def reset(self):
        n = self.num_items
        self.frequencies = defaultdict(float)
        self.values = [] # sorted distinct frequencies
        self.mins = {} # key: frequency, value: first rank
        self.maxs = {} # key: frequency, value: last rank
        self.freq_sum = 0.0
        self.num_sum = 0.0
        if n <= 0:
            return
        if not self.initial:
            self.values = [0.0]
            self.mins[0.0] = 1
            self.maxs[0.0] = n
            return
        freqs = [0.0] * n
        for idx, freq in self.initial.items():
            self._check_index(idx)
            if freq < 0:
                raise ValueError('Negative frequency {} for item {}'.format(freq, idx))
            freqs[idx] = float(freq)
            if freq != 0:
                self.frequencies[idx] = float(freq)
        freqs.sort()
        for rank, freq in enumerate(freqs, 1):
            if freq not in self.mins:
                self.values.append(freq)
                self.mins[freq] = rank
            self.maxs[freq] = rank
            self.num_sum += freq * (2 * rank - n - 1)
            self.freq_sum += freq

    def _check_index(self, idx):
        if idx < 0 or idx >= self.num_items:
            raise ValueError('Item index {} out of range [0, {})'.format(idx, self.num_items))

    def get_frequency(self, idx):
        self._check_index(idx)
        return self.frequencies.get(idx, 0.0)

    def get_value(self):
        """Return: the Gini index, NaN if there are less than two items or every frequency is zero. """
        if self.num_items <= 1 or self.freq_sum == 0.0:
            return float('nan')
        return self.num_sum / ((self.num_items - 1) * self.freq_sum)

    def _contribution(self, value):
        return bucket_contribution(value, self.mins[value], self.maxs[value], self.num_items)

    def _remove_value(self, value):
        del self.mins[value]
        del self.maxs[value]
        del self.values[bisect.bisect_left(self.values, value)]

    def _insert_value(self, value, rank_min, rank_max):
        bisect.insort(self.values, value)
        self.mins[value] = rank_min
        self.maxs[value] = rank_max

    def update_frequency(self, idx, delta):
        """Add `delta` to the frequency of item `idx`.

        Raises:
            ValueError: if `idx` is out of range or the frequency would become negative.
        """
        self._check_index(idx)
        old = self.frequencies.get(idx, 0.0)
        new = old + delta
        if new < 0:
            raise ValueError('Frequency of item {} cannot become negative ({})'.format(idx, new))
        if delta == 0:
            return
        if delta > 0:
            self._increase(old, new)
        else:
            self._decrease(old, new)
        if new == 0.0:
            self.frequencies.pop(idx, None)
        else:
            self.frequencies[idx] = new
        self.freq_sum += delta

    def _increase(self, old, new):
        """The item moves from the top rank of the `old` bucket to the bottom rank of the `new` bucket. """
        lo = bisect.bisect_right(self.values, old)
        hi = bisect.bisect_left(self.values, new)
        between = self.values[lo:hi] # values strictly between old and new
        new_exists = hi < len(self.values) and self.values[hi] == new

        # the rank freed at the top of `old` is taken by the bucket below `new`
        target_rank = self.maxs[between[-1]] if between else self.maxs[old]

        self.num_sum -= self._contribution(old)
        for value in between:
            self.num_sum -= self._contribution(value)
        if new_exists:
            self.num_sum -= self._contribution(new)

        for value in between:
            self.mins[value] -= 1
            self.maxs[value] -= 1
        if self.mins[old] == self.maxs[old]:
            self._remove_value(old)
        else:
            self.maxs[old] -= 1
            self.num_sum += self._contribution(old)
        if new_exists:
            self.mins[new] -= 1
        else:
            self._insert_value(new, target_rank, target_rank)

        for value in between:
            self.num_sum += self._contribution(value)
        self.num_sum += self._contribution(new)

    def _decrease(self, old, new):
        """The item moves from the bottom rank of the `old` bucket to the top rank of the `new` bucket. """
        lo = bisect.bisect_right(self.values, new)
        hi = bisect.bisect_left(self.values, old)
        between = self.values[lo:hi]
        new_exists = lo > 0 and self.values[lo - 1] == new

        target_rank = self.mins[between[0]] if between else self.mins[old]

        self.num_sum -= self._contribution(old)
        for value in between:
            self.num_sum -= self._contribution(value)
        if new_exists:
            self.num_sum -= self._contribution(new)

        for value in between:
            self.mins[value] += 1
            self.maxs[value] += 1
        if self.mins[old] == self.maxs[old]:
            self._remove_value(old)
        else:
            self.mins[old] += 1
            self.num_sum += self._contribution(old)
        if new_exists:
            self.maxs[new] += 1
        else:
            self._insert_value(new, target_rank, target_rank)

        for value in between:
            self.num_sum += self._contribution(value)
        self.num_sum += self._contribution(new)
