"""
Authentication utilities for extracting user info from Cognito tokens.
"""
from typing import Optional

import boto3

from .config import config
from .errors import UnauthorizedError
from .logging import logger
from .models import Caller


def get_claims(event: dict) -> dict:
    """Cognito authorizer claims, or an empty dict when the request is anonymous."""
    try:
        return event['requestContext']['authorizer']['claims'] or {}
    except (KeyError, TypeError):
        return {}


def get_user_sub(event: dict) -> Optional[str]:
    """
    Extract user sub (unique ID) from Cognito authorizer claims.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        User sub string or None if not authenticated
    """
    return get_claims(event).get('sub') or None


def get_user_email(event: dict) -> Optional[str]:
    """Extract user email from Cognito claims."""
    return get_claims(event).get('email')


def get_user_groups(event: dict) -> list:
    """Extract user groups from Cognito claims."""
    groups = get_claims(event).get('cognito:groups', '')
    if isinstance(groups, str):
        # API Gateway flattens the list to "a,b" or "[a b]" depending on the authorizer
        groups = groups.strip('[]').replace(',', ' ').split()
    return [g for g in (groups or []) if g]


def _is_admin_group(group: str, admin_group: str) -> bool:
    return group.lower() == admin_group.lower()


def is_admin(event: dict) -> bool:
    """Check if user belongs to admin group."""
    return any(_is_admin_group(g, config.ADMIN_GROUP_NAME) for g in get_user_groups(event))


class CognitoIdentityResolver:
    """
    Resolves the caller of an API Gateway request.

    Admin membership comes from the token's group claim. Tokens without group
    claims fall back to asking the user pool, when one is configured.
    """

    def __init__(self, cognito_client=None, user_pool_id: str = None, admin_group: str = None):
        self._client = cognito_client
        self.user_pool_id = user_pool_id if user_pool_id is not None else config.USER_POOL_ID
        self.admin_group = admin_group or config.ADMIN_GROUP_NAME

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client('cognito-idp', region_name=config.AWS_REGION)
        return self._client

    def resolve(self, event: dict) -> Caller:
        user_id = get_user_sub(event)
        if not user_id:
            raise UnauthorizedError('Unauthorized: User ID not found')

        groups = get_user_groups(event)
        if groups:
            admin = any(_is_admin_group(g, self.admin_group) for g in groups)
        else:
            username = get_claims(event).get('cognito:username') or user_id
            admin = self._lookup_admin(username)

        return Caller(user_id=user_id, is_admin=admin, email=get_user_email(event))

    def _lookup_admin(self, username: str) -> bool:
        if not self.user_pool_id:
            return False
        try:
            response = self.client.admin_list_groups_for_user(
                Username=username,
                UserPoolId=self.user_pool_id
            )
        except Exception as e:
            logger.warning(f"Could not look up groups for {username}: {e}")
            return False
        return any(_is_admin_group(g.get('GroupName', ''), self.admin_group)
                   for g in response.get('Groups', []))
