# pethero/utils/test_datetime_utils.py
"""
시간 유틸리티 테스트

사용법: python -m pytest pethero/utils/test_datetime_utils.py -v
"""

from datetime import datetime, date, timezone
from types import SimpleNamespace

from pethero.utils.datetime_utils import DateTimeUtils


def test_now_is_utc_aware():
    assert DateTimeUtils.now().tzinfo == timezone.utc


def test_now_ms_is_epoch_milliseconds():
    before = int(datetime.now(timezone.utc).timestamp() * 1000)
    value = DateTimeUtils.now_ms()
    assert isinstance(value, int)
    assert value >= before


def test_for_firestore():
    """Firestore 변환 테스트"""
    test_data = {
        'createdAt': datetime(2024, 1, 15, 10, 30),
        'nested': {'day': date(2023, 12, 25)},
        'list_data': [{'processedAt': datetime(2024, 1, 1)}],
        'credits': 3,
    }

    converted = DateTimeUtils.for_firestore(test_data)

    assert converted['createdAt'].tzinfo == timezone.utc
    assert converted['nested']['day'] == datetime(2023, 12, 25, tzinfo=timezone.utc)
    assert converted['list_data'][0]['processedAt'].tzinfo == timezone.utc
    assert converted['credits'] == 3


def test_from_firestore_normalizes_timestamps():
    naive = datetime(2024, 1, 15, 10, 30)
    timestamp_like = SimpleNamespace(timestamp=lambda: 0.0)

    converted = DateTimeUtils.from_firestore({'a': naive, 'b': timestamp_like, 'c': 'text'})

    assert converted['a'] == naive.replace(tzinfo=timezone.utc)
    assert converted['b'] == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert converted['c'] == 'text'
