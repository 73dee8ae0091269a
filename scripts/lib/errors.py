"""
Custom error classes for the Interaction KPI Hub.
Structured error handling with error codes across all modules.

Hierarchy:
    HubError
    ├── DataError
    │   ├── ConfigError
    │   ├── SchemaValidationError
    │   └── DataFetchError
    └── AnalyticsError
        └── CalculationError

None of these reach a dashboard caller: the KPI service masks them with
demo data and records the message in its calculation status.
"""


class HubError(Exception):
    """Base exception for all hub errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- Data Errors ---

class DataError(HubError):
    """Base class for data access errors."""
    pass


class ConfigError(DataError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, config_key: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"config_key": config_key},
        )


class SchemaValidationError(DataError):
    """A row from the record source doesn't match the expected shape."""

    def __init__(self, message: str, field: str = None, record_id: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID",
            details={"field": field, "record_id": record_id},
        )


class DataFetchError(DataError):
    """Failed to fetch records from the record source."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )


# --- Analytics Errors ---

class AnalyticsError(HubError):
    """Base class for KPI engine errors."""
    pass


class CalculationError(AnalyticsError):
    """A metric family could not be computed."""

    def __init__(self, family: str, cause: Exception = None):
        msg = f"Calculation of '{family}' failed"
        if cause:
            msg += f": {cause}"
        super().__init__(
            msg, code="CALCULATION_FAILED", details={"family": family},
        )
