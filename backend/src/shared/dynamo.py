"""
DynamoDB utility functions: expression building and paginated reads.
"""
import boto3
from typing import Any, Dict, Iterable, List, Optional, Tuple
from boto3.dynamodb.conditions import Attr, ConditionBase, Key
from .config import config
from .transitions import After, AllOf, AnyOf, Before, Condition, Equals, Missing, OneOf

CONDITIONAL_CHECK_FAILED = 'ConditionalCheckFailedException'


def get_table(table_name: str, region_name: Optional[str] = None):
    """DynamoDB Table resource for ``table_name``."""
    dynamodb = boto3.resource('dynamodb', region_name=region_name or config.AWS_REGION)
    return dynamodb.Table(table_name)


def to_dynamo_condition(condition: Condition) -> ConditionBase:
    """
    Translate a job condition into a boto3 condition object.

    The resource layer renders the object into ConditionExpression /
    FilterExpression placeholders (#n0, :v0, ...).
    """
    if isinstance(condition, Equals):
        return Attr(condition.attr).eq(condition.value)
    if isinstance(condition, OneOf):
        return Attr(condition.attr).is_in(list(condition.values))
    if isinstance(condition, Missing):
        return Attr(condition.attr).not_exists()
    if isinstance(condition, Before):
        return Attr(condition.attr).lt(condition.value)
    if isinstance(condition, After):
        return Attr(condition.attr).gt(condition.value)
    if isinstance(condition, (AllOf, AnyOf)):
        parts = [to_dynamo_condition(c) for c in condition.conditions]
        combined = parts[0]
        for part in parts[1:]:
            combined = combined & part if isinstance(condition, AllOf) else combined | part
        return combined
    raise TypeError(f"Unsupported condition: {condition!r}")


def build_update_expression(
    set_fields: Dict[str, Any],
    remove_fields: Iterable[str] = ()
) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    """
    Build an UpdateExpression with SET and REMOVE clauses.

    Placeholders are prefixed with ``u`` so they never collide with the ones
    boto3 generates for the condition expression.

    Returns:
        (update_expression, expression_attribute_names, expression_attribute_values)
    """
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    set_parts: List[str] = []
    remove_parts: List[str] = []

    for idx, (attr, value) in enumerate(set_fields.items()):
        names[f'#u{idx}'] = attr
        values[f':u{idx}'] = value
        set_parts.append(f'#u{idx} = :u{idx}')

    offset = len(set_fields)
    for idx, attr in enumerate(remove_fields, start=offset):
        names[f'#u{idx}'] = attr
        remove_parts.append(f'#u{idx}')

    clauses = []
    if set_parts:
        clauses.append('SET ' + ', '.join(set_parts))
    if remove_parts:
        clauses.append('REMOVE ' + ', '.join(remove_parts))

    return ' '.join(clauses), names, values


def scan_all(table, filter_expression: Optional[ConditionBase] = None) -> List[Dict[str, Any]]:
    """
    Scan a whole table, following LastEvaluatedKey.

    Errors propagate: a partial scan must not look like a complete one.
    """
    params: Dict[str, Any] = {}
    if filter_expression is not None:
        params['FilterExpression'] = filter_expression

    items: List[Dict[str, Any]] = []
    while True:
        response = table.scan(**params)
        items.extend(response.get('Items', []))
        last_key = response.get('LastEvaluatedKey')
        if not last_key:
            return items
        params['ExclusiveStartKey'] = last_key


def query_all(
    table,
    index_name: str,
    key_name: str,
    key_value: Any,
    scan_forward: bool = False
) -> List[Dict[str, Any]]:
    """Query a GSI by its partition key, following LastEvaluatedKey."""
    params: Dict[str, Any] = {
        'IndexName': index_name,
        'KeyConditionExpression': Key(key_name).eq(key_value),
        'ScanIndexForward': scan_forward,
    }

    items: List[Dict[str, Any]] = []
    while True:
        response = table.query(**params)
        items.extend(response.get('Items', []))
        last_key = response.get('LastEvaluatedKey')
        if not last_key:
            return items
        params['ExclusiveStartKey'] = last_key
