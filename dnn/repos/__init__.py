"""
Repository implementations for the DNN domain.

- memory: dictionary-backed implementations for tests and local runs
- minio: JSON documents in Minio buckets
- temporal: activity wrappers and workflow proxies around the above
"""
