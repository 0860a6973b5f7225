"""
Records Service application package.

- records: key naming, path resolution and the RecordService orchestrator
- storage: S3 persistence of the service data document
- cache: Redis cache tier
- handlers: request/response envelopes
- main: FastAPI service; lambda_handler: AWS Lambda entry points
"""
