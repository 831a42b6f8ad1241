import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from django.db import connection, transaction

from core.models import Counter
from core.services.counters import allocate_hostel_id, counter_key, peek_sequence, prefix_for_gender

pytestmark = pytest.mark.django_db

DAY = date(2024, 7, 1)


def test_prefix_by_gender():
    assert prefix_for_gender('Male') == 'BH'
    assert prefix_for_gender('Female') == 'GH'
    assert prefix_for_gender('Other') == 'GH'
    assert prefix_for_gender(None) == 'GH'


def test_sequences_are_per_prefix_and_year():
    assert allocate_hostel_id('Male', today=DAY) == 'BH24001'
    assert allocate_hostel_id('Male', today=DAY) == 'BH24002'
    assert allocate_hostel_id('Female', today=DAY) == 'GH24001'
    assert allocate_hostel_id('Male', today=date(2025, 1, 2)) == 'BH25001'
    assert Counter.objects.get(key=counter_key('BH', '24')).sequence == 2


def test_sequence_wider_than_three_digits_is_not_truncated():
    Counter.objects.create(key=counter_key('GH', '24'), sequence=999)
    assert allocate_hostel_id('Female', today=DAY) == 'GH241000'


def test_rolled_back_allocation_does_not_skip_numbers():
    with pytest.raises(RuntimeError):
        with transaction.atomic():
            allocate_hostel_id('Male', today=DAY)
            raise RuntimeError('record creation failed')
    assert peek_sequence('BH', '24') == 0
    assert allocate_hostel_id('Male', today=DAY) == 'BH24001'


@pytest.mark.django_db(transaction=True)
def test_concurrent_allocations_are_distinct_and_consecutive():
    workers = 8
    start = threading.Barrier(workers)

    def allocate():
        start.wait()
        try:
            return allocate_hostel_id('Female', today=DAY)
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        ids = list(pool.map(lambda _: allocate(), range(workers)))
    assert sorted(ids) == [f'GH24{n:03d}' for n in range(1, workers + 1)]
    assert peek_sequence('GH', '24') == workers
