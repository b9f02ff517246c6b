"""Third-party service wrappers."""

from lablinc.integrations.s3_client import S3Client, S3ClientError, build_s3_client
from lablinc.integrations.stripe_client import (
    PaymentIntent,
    StripeClient,
    StripeClientError,
)

__all__ = [
    "PaymentIntent",
    "S3Client",
    "S3ClientError",
    "StripeClient",
    "StripeClientError",
    "build_s3_client",
]
