"""
Tests for request validation and body parsing.
"""
import base64
import json
from datetime import timedelta
from decimal import Decimal

import pytest

from fakes import create_body
from shared.errors import InvalidInputError
from shared.utils import parse_body
from shared.validation import (
    parse_create_request,
    parse_edit_request,
    parse_message,
    parse_page,
    parse_relist_window,
)


class TestCreateRequest:

    def test_valid_request_is_trimmed(self):
        request = parse_create_request(create_body(name='  Translate  '))
        assert request['name'] == 'Translate'
        assert request['payAmount'] == Decimal('500')

    @pytest.mark.parametrize('field, value', [
        ('name', ''),
        ('name', '   '),
        ('description', None),
        ('categoryId', 42),
        ('payAmount', 0),
        ('payAmount', Decimal('-1')),
        ('payAmount', 'lots'),
        ('payAmount', True),
        ('timeToCompleteSeconds', 0),
        ('timeToCompleteSeconds', Decimal('1.5')),
        ('timeToCompleteSeconds', True),
        ('expirySeconds', -60),
        ('expirySeconds', '3600'),
        ('expirySeconds', 10 ** 12),
        ('timeToCompleteSeconds', 10 ** 12),
    ])
    def test_invalid_fields(self, field, value):
        with pytest.raises(InvalidInputError):
            parse_create_request(create_body(**{field: value}))

    def test_integral_decimal_seconds(self):
        request = parse_create_request(create_body(timeToCompleteSeconds=Decimal('60')))
        assert request['timeToCompleteSeconds'] == 60
        assert isinstance(request['timeToCompleteSeconds'], int)

    def test_name_too_long(self):
        with pytest.raises(InvalidInputError):
            parse_create_request(create_body(name='x' * 201))


class TestEditRequest:

    def test_subset(self):
        assert parse_edit_request({'name': 'New', 'ownerId': 'hijack'}) == {'name': 'New'}

    def test_nothing_editable(self):
        with pytest.raises(InvalidInputError):
            parse_edit_request({'ownerId': 'hijack'})

    @pytest.mark.parametrize('field', ['expirySeconds', 'timeToCompleteSeconds'])
    def test_duration_beyond_limit(self, field):
        with pytest.raises(InvalidInputError):
            parse_edit_request({field: 10 ** 12})

    def test_duration_at_limit(self):
        changes = parse_edit_request({'expirySeconds': 365 * 24 * 3600})
        assert changes == {'expirySeconds': 365 * 24 * 3600}


class TestRelistWindow:

    def test_default(self):
        assert parse_relist_window({}) == timedelta(days=7)

    def test_explicit(self):
        assert parse_relist_window({'expiryDays': 30}) == timedelta(days=30)

    @pytest.mark.parametrize('days', [0, -3, 91, 'ten', 2.5])
    def test_out_of_range(self, days):
        with pytest.raises(InvalidInputError):
            parse_relist_window({'expiryDays': days})


class TestMessagesAndPages:

    def test_message(self):
        assert parse_message({'message': '  good  '}, 'message') == 'good'
        assert parse_message({'message': '   '}, 'message') is None
        assert parse_message({}, 'reason') is None
        with pytest.raises(InvalidInputError):
            parse_message({'reason': ['no']}, 'reason')

    def test_page(self):
        assert parse_page(None, None) == {'offset': 0, 'limit': 20}
        assert parse_page('40', '10') == {'offset': 40, 'limit': 10}
        for offset, limit in [('-1', '10'), ('0', '0'), ('0', '101'), ('a', '1')]:
            with pytest.raises(InvalidInputError):
                parse_page(offset, limit)


class TestParseBody:

    def test_json_numbers_become_decimals(self):
        body = parse_body({'body': '{"payAmount": 12.5}'})
        assert body['payAmount'] == Decimal('12.5')

    def test_base64_body(self):
        raw = base64.b64encode(json.dumps({'name': 'x'}).encode()).decode()
        assert parse_body({'body': raw, 'isBase64Encoded': True}) == {'name': 'x'}

    def test_empty_body(self):
        assert parse_body({'body': None}) == {}
        assert parse_body({}) == {}

    @pytest.mark.parametrize('raw', ['{not json', '[1, 2]', '"text"'])
    def test_bad_body(self, raw):
        with pytest.raises(InvalidInputError):
            parse_body({'body': raw})
