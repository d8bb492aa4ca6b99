"""
Party Registration Service Utilities
====================================

Shared helper modules for the registration funnel and SMS notification
handlers. It includes:

- logger.py          → structured JSON logging
- config.py          → environment-driven configuration values
- secrets.py         → AWS Secrets Manager integration
- errors.py          → exceptions shared by the handlers
- validation.py      → registration form rules per deployment variant
- images.py          → photo recompression before upload
- blobs.py           → S3 photo storage and public URLs
- store.py           → DynamoDB access for registrations / event settings
- registration.py    → validate → upload → insert workflow
- solapi_client.py   → HMAC-signed Solapi SMS gateway client
- notifier.py        → compose, send and mark a registration as notified
- http.py            → API Gateway request/response helpers

Lambda entry points live beside this package in src/:
- register.py   → registration form submission (/registrations)
- notify.py     → database-insert trigger (webhook or DynamoDB Stream)
- send_sms.py   → manual approval SMS from the admin page (/send-sms)
- events.py     → event dates, capacity gauges and calendar (/events)
- health.py     → health and version checks (/healthz, /version)

Environment variables expected:
  • AWS_REGION                 - AWS region for all resources (default ap-northeast-2)
  • SOLAPI_SECRET_NAME         - Secrets Manager secret holding the Solapi credentials
  • REGISTRATIONS_TABLE        - DynamoDB table for registrations
  • EVENT_SETTINGS_TABLE       - DynamoDB table for per-date cohort counts
  • REGISTRATIONS_BUCKET       - S3 bucket for applicant photos
  • PUBLIC_ASSET_BASE_URL      - Public URL prefix for photos (optional)
  • FORM_VARIANT               - Form rule set: basic | sadang (default basic)
  • APPROVAL_MESSAGE_TEMPLATE  - Override for the approval SMS text (optional)
  • LOG_LEVEL                  - Log verbosity (default: INFO)

All functions in this package are stateless and thread-safe, suitable for
AWS Lambda execution.
"""

from party_utils.logger import get_logger

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "get_logger",
]
