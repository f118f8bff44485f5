"""
Analytics Exceptions

Insufficient data is never an error here: the reports return documented
neutral values instead. These exceptions cover genuine failures that must
reach the caller.
"""

from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    """Base exception for all analytics engine errors"""

    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured output"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class QueryError(AnalyticsError):
    """Raised when the underlying store cannot answer a query"""

    def __init__(self, operation: str, company_id: str, reason: str):
        self.operation = operation
        self.company_id = company_id
        super().__init__(
            message=f"Query '{operation}' failed for company {company_id}: {reason}",
            error_code="QUERY_FAILED",
            details={"operation": operation, "company_id": company_id, "reason": reason},
        )
