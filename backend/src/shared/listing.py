"""
Read-side helpers for job listings and admin statistics.
"""
from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .models import Job, JobStatus
from .utils import format_timestamp, parse_timestamp

SORT_KEYS = {
    'newest': lambda job: job.createdAt,
    'created': lambda job: job.createdAt,
    'updated': lambda job: job.updatedAt,
    'pay': lambda job: job.payAmount,
    'expiry': lambda job: job.expiryDate,
}


def parse_statuses(value: Optional[str]) -> List[str]:
    """Comma separated status filter."""
    if not value:
        return []
    return [s.strip().lower() for s in value.split(',') if s.strip()]


def matches_query(job: Job, query: Optional[str]) -> bool:
    """Case-insensitive search in name and description."""
    if not query or not query.strip():
        return True
    term = query.strip().lower()
    return term in job.name.lower() or term in job.description.lower()


def filter_jobs(
    jobs: Iterable[Job],
    statuses: Iterable[str] = (),
    category_id: Optional[str] = None,
    query: Optional[str] = None,
) -> List[Job]:
    statuses = set(statuses)
    return [
        job for job in jobs
        if (not statuses or job.status in statuses)
        and (category_id is None or job.categoryId == category_id)
        and matches_query(job, query)
    ]


def sort_jobs(jobs: List[Job], sort_by: str = 'newest', sort_order: str = 'desc') -> List[Job]:
    key = SORT_KEYS.get((sort_by or 'newest').lower(), SORT_KEYS['newest'])
    return sorted(jobs, key=key, reverse=(sort_order or 'desc').lower() != 'asc')


def summarize(jobs: Iterable[Job]) -> Dict[str, int]:
    """Per-status counts, with every status present."""
    counts = Counter(job.status for job in jobs)
    return {status: counts.get(status, 0) for status in JobStatus.ALL}


def paginate(jobs: List[Job], offset: int, limit: int) -> Dict[str, Any]:
    page = jobs[offset:offset + limit]
    return {
        'jobs': [job.to_view() for job in page],
        'count': len(page),
        'total': len(jobs),
        'offset': offset,
        'limit': limit,
        'hasMore': len(jobs) > offset + limit,
        'summary': summarize(jobs),
    }


def dedupe(jobs: Iterable[Job]) -> List[Job]:
    seen = {}
    for job in jobs:
        seen.setdefault(job.jobId, job)
    return list(seen.values())


def job_statistics(jobs: Iterable[Job], now: datetime) -> Dict[str, Any]:
    """
    Aggregate figures over every job.

    Rejections are counted from the rejectedAt annotation: a rejected job goes
    back to open, so there is no rejected status to count.
    """
    jobs = list(jobs)
    last_7 = format_timestamp(now - timedelta(days=7))
    last_30 = format_timestamp(now - timedelta(days=30))
    total_pay = sum((job.payAmount for job in jobs), Decimal('0'))

    return {
        'totalJobs': len(jobs),
        'statusCounts': summarize(jobs),
        'rejectedCount': sum(1 for job in jobs if job.rejectedAt),
        'recentJobs': {
            'last7Days': sum(1 for job in jobs if job.createdAt >= last_7),
            'last30Days': sum(1 for job in jobs if job.createdAt >= last_30),
        },
        'financials': {
            'totalPayAmount': total_pay,
            'averagePayAmount': (total_pay / len(jobs)).quantize(Decimal('0.01')) if jobs else Decimal('0'),
        },
        'timestamps': {'generatedAt': format_timestamp(now)},
    }


def is_available(job: Job, now: datetime) -> bool:
    """Open, unclaimed and still before its posting deadline."""
    return (
        job.status == JobStatus.OPEN
        and not job.has_claim
        and parse_timestamp(job.expiryDate) > now
    )
