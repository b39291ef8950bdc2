"""
Tests for Cognito caller resolution.
"""
from unittest.mock import MagicMock

import pytest

from shared.auth import CognitoIdentityResolver, get_user_groups, is_admin
from shared.errors import UnauthorizedError


def event_with_claims(**claims):
    return {'requestContext': {'authorizer': {'claims': claims}}}


class TestClaims:

    @pytest.mark.parametrize('raw, expected', [
        ('admin', ['admin']),
        ('admin,owners', ['admin', 'owners']),
        ('[admin owners]', ['admin', 'owners']),
        (['owners'], ['owners']),
        ('', []),
    ])
    def test_group_formats(self, raw, expected):
        assert get_user_groups(event_with_claims(sub='u', **{'cognito:groups': raw})) == expected

    def test_is_admin(self):
        assert is_admin(event_with_claims(sub='u', **{'cognito:groups': 'Admin'}))
        assert not is_admin(event_with_claims(sub='u'))
        assert not is_admin({})


class TestCognitoIdentityResolver:

    def test_resolves_caller_from_token(self):
        client = MagicMock()
        resolver = CognitoIdentityResolver(cognito_client=client, user_pool_id='pool', admin_group='admin')

        caller = resolver.resolve(event_with_claims(
            sub='user-1', email='u@example.com', **{'cognito:groups': 'admin'}))

        assert caller.user_id == 'user-1'
        assert caller.is_admin
        assert caller.email == 'u@example.com'
        client.admin_list_groups_for_user.assert_not_called()

    def test_missing_sub_is_unauthorized(self):
        resolver = CognitoIdentityResolver(cognito_client=MagicMock(), user_pool_id='')
        with pytest.raises(UnauthorizedError):
            resolver.resolve({'requestContext': {}})

    def test_falls_back_to_user_pool_groups(self):
        client = MagicMock()
        client.admin_list_groups_for_user.return_value = {'Groups': [{'GroupName': 'admin'}]}
        resolver = CognitoIdentityResolver(cognito_client=client, user_pool_id='pool', admin_group='admin')

        caller = resolver.resolve(event_with_claims(sub='user-1', **{'cognito:username': 'jdoe'}))

        assert caller.is_admin
        client.admin_list_groups_for_user.assert_called_once_with(Username='jdoe', UserPoolId='pool')

    def test_lookup_failure_means_not_admin(self):
        client = MagicMock()
        client.admin_list_groups_for_user.side_effect = Exception('throttled')
        resolver = CognitoIdentityResolver(cognito_client=client, user_pool_id='pool')

        assert not resolver.resolve(event_with_claims(sub='user-1')).is_admin

    def test_no_pool_configured(self):
        client = MagicMock()
        resolver = CognitoIdentityResolver(cognito_client=client, user_pool_id='')

        assert not resolver.resolve(event_with_claims(sub='user-1')).is_admin
        client.admin_list_groups_for_user.assert_not_called()
