"""
Tests for the API Gateway and scheduler Lambda handlers.
"""
import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from fakes import create_body
from handlers.jobs import (
    approve_job,
    claim_job,
    create_job,
    delete_job,
    edit_job,
    job_statistics,
    list_jobs,
    reject_job,
    relist_job,
    submit_job,
    view_job,
)
from handlers.schedulers import expire_jobs, timeout_claims
from shared.auth import CognitoIdentityResolver
from shared.events import EventEmitter
from shared.logging import log_event
from shared.sweepers import ExpirySweeper
from shared.utils import DecimalEncoder

API_MODULES = [
    approve_job, claim_job, create_job, delete_job, edit_job, job_statistics,
    list_jobs, reject_job, relist_job, submit_job, view_job,
]


def api_event(sub='owner-1', groups=None, body=None, job_id=None, query=None):
    claims = {}
    if sub:
        claims['sub'] = sub
        claims['email'] = f"{sub}@example.com"
    if groups:
        claims['cognito:groups'] = groups
    return {
        'httpMethod': 'POST',
        'requestContext': {'authorizer': {'claims': claims}},
        'pathParameters': {'jobId': job_id} if job_id else None,
        'queryStringParameters': query,
        'body': json.dumps(body, cls=DecimalEncoder) if body is not None else None,
    }


def payload(response):
    return json.loads(response['body'])


@pytest.fixture(autouse=True)
def wired(engine):
    resolver = CognitoIdentityResolver(cognito_client=MagicMock(), user_pool_id='', admin_group='admin')
    patches = []
    for module in API_MODULES:
        patches.append(patch.object(module, 'get_engine', return_value=engine))
        patches.append(patch.object(module, 'get_identity_resolver', return_value=resolver))
    for p in patches:
        p.start()
    yield
    for p in patches:
        p.stop()


def create(body=None):
    response = create_job.handler(api_event(body=body or create_body()), None)
    assert response['statusCode'] == 201
    return payload(response)['job']


class TestJobRoutes:

    def test_create(self):
        response = create_job.handler(api_event(body=create_body()), None)

        assert response['statusCode'] == 201
        assert response['headers']['Access-Control-Allow-Origin'] == '*'
        job = payload(response)['job']
        assert job['status'] == 'open'
        assert job['payAmount'] == 500
        assert 'ttl' not in job

    def test_create_without_identity(self):
        response = create_job.handler(api_event(sub=None, body=create_body()), None)

        assert response['statusCode'] == 401
        assert payload(response)['error'] == 'Unauthorized'

    def test_create_with_bad_json(self):
        event = api_event()
        event['body'] = '{"name": '

        response = create_job.handler(event, None)
        assert response['statusCode'] == 400
        assert payload(response) == {'error': 'InvalidInput', 'message': 'Invalid JSON'}

    def test_claim_conflict_has_reason(self):
        job = create()
        first = claim_job.handler(api_event(sub='seeker-a', job_id=job['jobId']), None)
        second = claim_job.handler(api_event(sub='seeker-b', job_id=job['jobId']), None)

        assert first['statusCode'] == 200
        assert payload(first)['job']['claimerId'] == 'seeker-a'
        assert second['statusCode'] == 409
        assert payload(second)['reason'] == 'already_claimed'

    def test_review_flow(self):
        job = create()
        job_id = job['jobId']
        claim_job.handler(api_event(sub='seeker-a', job_id=job_id), None)
        submit = submit_job.handler(api_event(sub='seeker-a', job_id=job_id), None)
        assert payload(submit)['job']['status'] == 'submitted'

        forbidden = approve_job.handler(api_event(sub='seeker-a', job_id=job_id), None)
        assert forbidden['statusCode'] == 403

        rejected = reject_job.handler(
            api_event(sub='admin-1', groups='admin', job_id=job_id, body={'reason': 'Incomplete'}), None)
        assert rejected['statusCode'] == 200
        assert payload(rejected)['job']['rejectionMessage'] == 'Incomplete'
        assert 'claimerId' not in payload(rejected)['job']

        claim_job.handler(api_event(sub='seeker-b', job_id=job_id), None)
        submit_job.handler(api_event(sub='seeker-b', job_id=job_id), None)
        approved = approve_job.handler(api_event(job_id=job_id, body={'message': 'Thanks'}), None)
        assert payload(approved)['job']['status'] == 'approved'

    def test_view_edit_delete(self):
        job_id = create()['jobId']

        viewed = view_job.handler(api_event(sub='seeker-a', job_id=job_id), None)
        assert payload(viewed)['job']['jobId'] == job_id

        edited = edit_job.handler(api_event(job_id=job_id, body={'name': 'Renamed'}), None)
        assert payload(edited)['job']['name'] == 'Renamed'

        deleted = delete_job.handler(api_event(job_id=job_id), None)
        assert payload(deleted)['jobId'] == job_id

        missing = view_job.handler(api_event(job_id=job_id), None)
        assert missing['statusCode'] == 404
        assert payload(missing)['error'] == 'NotFound'

    def test_missing_job_id(self):
        response = claim_job.handler(api_event(sub='seeker-a'), None)
        assert response['statusCode'] == 400

    def test_relist_validates_window(self, clock):
        job_id = create(create_body(expirySeconds=60))['jobId']
        clock.advance(seconds=61)

        bad = relist_job.handler(api_event(job_id=job_id, body={'expiryDays': 365}), None)
        assert bad['statusCode'] == 400

        ok = relist_job.handler(api_event(job_id=job_id, body={'expiryDays': 3}), None)
        assert ok['statusCode'] == 200
        assert payload(ok)['job']['relistedAt']

    def test_list(self):
        create(create_body(name='Alpha'))
        create(create_body(name='Beta'))

        response = list_jobs.handler(api_event(query={'type': 'posted', 'q': 'alpha', 'limit': '5'}), None)

        body = payload(response)
        assert response['statusCode'] == 200
        assert [j['name'] for j in body['jobs']] == ['Alpha']
        assert body['filters']['type'] == 'posted'

    def test_list_bad_limit(self):
        response = list_jobs.handler(api_event(query={'limit': '1000'}), None)
        assert response['statusCode'] == 400

    def test_statistics(self):
        create()

        assert job_statistics.handler(api_event(), None)['statusCode'] == 403
        response = job_statistics.handler(api_event(sub='admin-1', groups='admin'), None)
        assert payload(response)['statistics']['totalJobs'] == 1

    def test_unexpected_error_is_500(self, engine):
        with patch.object(engine, 'claim', side_effect=RuntimeError('boom')):
            response = claim_job.handler(api_event(sub='seeker-a', job_id='job-1'), None)

        assert response['statusCode'] == 500
        assert payload(response)['error'] == 'Internal'


class TestSchedulers:

    def test_expire_jobs(self, engine, store, bus, clock):
        create(create_body(expirySeconds=60))
        clock.advance(seconds=61)
        sweeper = ExpirySweeper(store, EventEmitter(bus), clock=clock)

        with patch.object(expire_jobs, 'get_expiry_sweeper', return_value=sweeper):
            response = expire_jobs.handler({'source': 'aws.events'}, None)

        assert response['statusCode'] == 200
        assert response['body'] == {'checked': 1, 'transitioned': 1, 'skipped': 0, 'failed': 0}

    def test_timeout_claims_propagates_scan_failure(self):
        sweeper = MagicMock()
        sweeper.run.side_effect = RuntimeError('scan failed')

        with patch.object(timeout_claims, 'get_timeout_sweeper', return_value=sweeper):
            with pytest.raises(RuntimeError):
                timeout_claims.handler({'source': 'aws.events'}, None)


class TestEventLogging:

    def test_log_event_redacts_payload_and_claims(self, caplog):
        event = api_event(sub='seeker-a', groups='admin', body={'name': 'secret draft'}, job_id='job-1')
        event['headers'] = {'Authorization': 'Bearer abc'}

        with caplog.at_level(logging.INFO, logger='jobs'):
            log_event(event)

        assert 'seeker-a' in caplog.text
        assert 'job-1' in caplog.text
        assert 'seeker-a@example.com' not in caplog.text
        assert 'Bearer' not in caplog.text
        assert 'secret draft' not in caplog.text
