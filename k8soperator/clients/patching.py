"""
Writing the status and the finalizers of the objects.

All the writes carry the resource version as it was seen by the operator,
so that the API server rejects them with HTTP 409 Conflict if the object
has changed since then (optimistic concurrency). The conflicts are not retried:
a newer version of the object arrives via the watch-stream anyway.
"""
from typing import Any, List

from k8soperator.clients import api, auth
from k8soperator.helpers import typedefs
from k8soperator.structs import bodies, configuration, references

MERGE_PATCH_HEADERS = {'Content-Type': 'application/merge-patch+json'}


def build_status_body(meta: references.ResourceMeta, status: Any) -> bodies.RawBody:
    body: bodies.RawBody = {
        'apiVersion': meta.api_version,
        'kind': meta.kind,
        'metadata': {
            'name': meta.name,
            'resourceVersion': meta.resource_version,
        },
        'status': status,
    }
    if meta.namespace:
        body['metadata']['namespace'] = meta.namespace
    return body


async def replace_status(
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        url: str,
        meta: references.ResourceMeta,
        status: Any,
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Replace the status subresource as a whole (HTTP PUT).
    """
    replaced_body: bodies.RawBody = await api.put(
        url=url,
        payload=build_status_body(meta, status),
        context=context,
        settings=settings,
        logger=logger,
    )
    return replaced_body


async def patch_status(
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        url: str,
        meta: references.ResourceMeta,
        status: Any,
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Patch the status subresource in the JSON Merge Patch format (RFC 7386).

    Only the fields present in the status are changed; ``None`` values
    remove the fields.
    """
    patched_body: bodies.RawBody = await api.patch(
        url=url,
        headers=MERGE_PATCH_HEADERS,
        payload=build_status_body(meta, status),
        context=context,
        settings=settings,
        logger=logger,
    )
    return patched_body


async def patch_finalizers(
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        url: str,
        meta: references.ResourceMeta,
        finalizers: List[str],
        logger: typedefs.Logger,
) -> bodies.RawBody:
    """
    Replace the list of finalizers of an object (lists are not merged in RFC 7386).

    The resource version is sent the same way as for the status: if the object
    has changed since it was seen, the write is rejected with HTTP 409 Conflict.
    """
    patched_body: bodies.RawBody = await api.patch(
        url=url,
        headers=MERGE_PATCH_HEADERS,
        payload={'metadata': {'finalizers': finalizers,
                              'resourceVersion': meta.resource_version}},
        context=context,
        settings=settings,
        logger=logger,
    )
    return patched_body
