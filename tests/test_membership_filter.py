import threading

import pytest

from compass.core.membership_filter import BloomLayer, ScalableMembershipFilter


def test_no_false_negatives_across_growth():
    membership = ScalableMembershipFilter(initial_capacity=1_000, error_rate=0.01)
    emails = [f"traveller{i}@example.com" for i in range(12_000)]

    membership.insert_many(emails)

    assert membership.layer_count > 1
    assert all(membership.may_contain(email) for email in emails)


def test_false_positive_rate_stays_near_target():
    error_rate = 0.01
    membership = ScalableMembershipFilter(initial_capacity=10_000, error_rate=error_rate)
    membership.insert_many(f"member-{i}" for i in range(10_000))

    lookups = 20_000
    false_positives = sum(membership.may_contain(f"absent-{i}") for i in range(lookups))

    assert false_positives / lookups < error_rate * 3


def test_grows_by_growth_factor_when_layer_is_full():
    membership = ScalableMembershipFilter(initial_capacity=10, error_rate=0.01, growth_factor=2)

    membership.insert_many(f"user{i}" for i in range(15))

    assert membership.layer_count == 2
    assert membership.capacity == 30


def test_duplicate_insert_does_not_consume_capacity():
    membership = ScalableMembershipFilter(initial_capacity=10, error_rate=0.01)

    for _ in range(50):
        membership.insert("same@example.com")

    assert len(membership) == 1
    assert membership.layer_count == 1


def test_empty_filter_reports_absent():
    membership = ScalableMembershipFilter()

    assert "anyone@example.com" not in membership


def test_concurrent_inserts_are_all_visible():
    membership = ScalableMembershipFilter(initial_capacity=100, error_rate=0.01)

    def worker(offset):
        for i in range(500):
            membership.insert(f"user-{offset}-{i}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(membership.may_contain(f"user-{n}-{i}") for n in range(4) for i in range(500))


def test_layer_sizing_follows_capacity_and_error_rate():
    layer = BloomLayer(capacity=1_000, error_rate=0.01)

    assert layer.size == 9586
    assert layer.hash_count == 7


@pytest.mark.parametrize(
    "kwargs",
    [
        {"initial_capacity": 0},
        {"error_rate": 0},
        {"error_rate": 1.5},
        {"growth_factor": 0},
    ],
)
def test_invalid_parameters_are_rejected(kwargs):
    with pytest.raises(ValueError):
        ScalableMembershipFilter(**kwargs)
