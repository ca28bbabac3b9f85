"""
Domain exceptions for analytics app.

This module defines domain-specific exceptions that are raised by the
analytics services layer. These exceptions represent invalid report
requests, separate from HTTP concerns.

Exception Hierarchy:
    AnalyticsServiceError (base)
    ├── InvalidDateRangeError
    ├── InvalidGroupingError
    └── InvalidMethodError

Usage:
    from apps.analytics.exceptions import InvalidMethodError

    if method not in SEGMENTATION_METHODS:
        raise InvalidMethodError(f"Invalid segmentation method: {method}")
"""


class AnalyticsServiceError(Exception):
    """
    Base exception for all analytics service errors.

    All domain-specific exceptions in the analytics app inherit from this
    class, making it easy to catch all analytics errors in views:

        try:
            data = segment_customers(customers, method='invalid')
        except AnalyticsServiceError as e:
            return Response({'error': str(e)}, status=400)
    """

    pass


class InvalidDateRangeError(AnalyticsServiceError):
    """
    Raised when date range is invalid.

    Typically when start_date is after end_date.

    Example:
        raise InvalidDateRangeError("Start date must be before end date")
    """

    pass


class InvalidGroupingError(AnalyticsServiceError):
    """
    Raised when an invalid period grouping is specified.

    Valid groupings are: day, week, month.

    Example:
        raise InvalidGroupingError(
            "Invalid grouping: 'year'. Valid options: day, week, month"
        )
    """

    pass


class InvalidMethodError(AnalyticsServiceError):
    """
    Raised when an unknown segmentation or forecast method is requested.

    Example:
        raise InvalidMethodError("Invalid forecast method: 'arima'")
    """

    pass
