"""Error taxonomy for production monitoring operations"""


class ProductionMonitoringError(Exception):
    """Base class for errors the API maps onto a client-facing status"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ProductionMonitoringError):
    """Malformed input; nothing has been written"""
    status_code = 400


class InvalidOperatorError(ValidationError):
    def __init__(self, message: str = 'Invalid operator specified'):
        super().__init__(message)


class InvalidMoldError(ValidationError):
    def __init__(self, message: str = 'Invalid mold ID specified'):
        super().__init__(message)


class NotFoundError(ProductionMonitoringError):
    status_code = 404


class AccessDeniedError(ProductionMonitoringError):
    status_code = 403


class StorageError(ProductionMonitoringError):
    """Raised by the database layer when a query or connection fails"""
    status_code = 500
