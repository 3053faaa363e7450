from core.end_condition import NoLimitsEndCondition, NumIterEndCondition, PercentagePositiveRatingsEndCondition
from core.rating import NOT_RATED


def test_no_limits_never_ends():
    end = NoLimitsEndCondition()
    end.init()
    for _ in range(1000):
        end.update(0, 0, 1.0)
    assert not end.has_ended()


def test_num_iter():
    end = NumIterEndCondition(3)
    end.init()
    for _ in range(2):
        end.update(0, 0, 0.0)
        assert not end.has_ended()
    end.update(0, 0, NOT_RATED)
    assert end.has_ended()
    end.init()
    assert not end.has_ended()


def test_zero_iterations_ends_immediately():
    end = NumIterEndCondition(0)
    end.init()
    assert end.has_ended()


def test_percentage_positive_ratings():
    # ceil(5 * 0.5) = 3 relevant ratings needed
    end = PercentagePositiveRatingsEndCondition(5, 0.5, 0.5)
    end.init()
    assert end.num_rel == 3
    for value in (1.0, 0.0, NOT_RATED, 0.5):
        end.update(0, 0, value)
    assert not end.has_ended()
    end.update(0, 0, 2.0)
    assert end.has_ended()
