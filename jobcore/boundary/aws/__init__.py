"""
AWS boundary modules.

Exports: S3ObjectClient, S3ObjectError, S3ObjectNotFoundError
"""

from .s3_client import S3ObjectClient, S3ObjectError, S3ObjectNotFoundError

__all__ = ["S3ObjectClient", "S3ObjectError", "S3ObjectNotFoundError"]
