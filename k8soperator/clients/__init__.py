"""
The API client wrappers: authentication, requests, streams, and writes.

The wrappers are built directly on ``aiohttp`` and know nothing about
the operator's handlers or queues -- they only talk to the K8s API.
"""
