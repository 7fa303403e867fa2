"""
Exception types raised by the COSHH risk classification engine.
"""


class CoshhError(Exception):
    """Base exception for the risk classification engine"""
    pass


class InvalidArgument(CoshhError, TypeError):
    """Raised when a calculator input has the wrong type or shape"""
    pass


class RangeViolation(CoshhError, ValueError):
    """Raised when a numeric input is outside its allowed domain"""
    pass


class NotFound(CoshhError, LookupError):
    """Raised when a key is absent from a fixed knowledge table"""
    pass


class DocumentError(CoshhError):
    """Raised when a safety data sheet or inventory file cannot be read"""
    pass
