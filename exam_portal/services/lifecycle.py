"""
Test Lifecycle
Pure status transitions for released tests

Status is applied lazily: readers call :func:`next_status` and persist the
result themselves when it differs from what is stored.
"""
from datetime import datetime
from typing import Optional

from exam_portal.models.test import TestRecord, TestStatus


def next_status(
    current: TestStatus,
    now: datetime,
    scheduled_for: Optional[datetime] = None,
    scheduled_end: Optional[datetime] = None
) -> TestStatus:
    """
    Status a test should have at ``now``.

    Transition rules:
    - scheduled → active once scheduled_for has passed
    - active → inactive once scheduled_end has passed
    - inactive stays inactive

    Both transitions can happen in one call when a scheduled test was never
    read during its whole window.
    """
    status = TestStatus(current)

    if status == TestStatus.SCHEDULED and scheduled_for is not None and scheduled_for <= now:
        status = TestStatus.ACTIVE

    if status == TestStatus.ACTIVE and scheduled_end is not None and scheduled_end <= now:
        status = TestStatus.INACTIVE

    return status


def is_expired(test: TestRecord, now: datetime) -> bool:
    """True once the scheduled end of ``test`` has passed"""
    return test.scheduledEnd is not None and test.scheduledEnd <= now


def initial_status(release_option: str) -> TestStatus:
    return TestStatus.ACTIVE if release_option == "now" else TestStatus.SCHEDULED
