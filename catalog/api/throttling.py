"""
Throttle classes for the catalog API.
"""

from rest_framework.throttling import UserRateThrottle


class ProcessingTriggerThrottle(UserRateThrottle):
    """
    Throttle for endpoints that start or resume processing runs.

    Rate: 30 requests per hour per user.
    Applied to: /api/v1/processing/start/, /api/v1/processing/resume/
    """

    rate = "30/hour"
    scope = "processing_trigger"


class MatchingThrottle(UserRateThrottle):
    """
    Throttle for the matching runs, which scan the whole catalog.

    Rate: 20 requests per hour per user.
    Applied to: /api/v1/equivalences/analyze/, /api/v1/vehicle-years/match/
    """

    rate = "20/hour"
    scope = "matching"
