"""
Category lookups.

Categories are owned by the categories service; the jobs service only reads
the display name and SNS topic that job.created notifications fan out to.
"""
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .dynamo import get_table
from .errors import InternalError
from .logging import logger
from .models import CategoryInfo


class DynamoCategoryResolver:
    """Reads CategoryInfo from the categories table."""

    def __init__(self, table=None):
        self._table = table

    @property
    def table(self):
        if self._table is None:
            self._table = get_table(config.CATEGORIES_TABLE)
        return self._table

    def resolve(self, category_id: str) -> Optional[CategoryInfo]:
        """Return the category, or None if it does not exist."""
        try:
            response = self.table.get_item(Key={'categoryId': category_id})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error fetching category info for {category_id}: {e}")
            raise InternalError('Category lookup failed') from e

        item = response.get('Item')
        if not item:
            return None

        if not item.get('snsTopicArn'):
            logger.warning(f"Category {category_id} has no SNS topic ARN")

        return CategoryInfo(
            categoryId=category_id,
            name=item.get('name') or 'Unknown',
            snsTopicArn=item.get('snsTopicArn') or ''
        )
