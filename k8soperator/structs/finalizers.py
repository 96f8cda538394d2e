"""
All the functions to manipulate the object finalization and deletion.

Finalizers are used to block the actual deletion until the finalizers
are removed, meaning that the operator has done all its duties
to "release" the object (e.g. cleanups; delete-actions in our case).

The functions never modify the bodies, but return new lists of finalizers,
which are then sent to the API as a whole.
"""
from typing import Any, List, Mapping


def is_deletion_ongoing(body: Mapping[str, Any]) -> bool:
    return body.get('metadata', {}).get('deletionTimestamp', None) is not None


def is_deletion_blocked(body: Mapping[str, Any], finalizer: str) -> bool:
    finalizers = body.get('metadata', {}).get('finalizers') or []
    return finalizer in finalizers


def block_deletion(body: Mapping[str, Any], finalizer: str) -> List[str]:
    finalizers = list(body.get('metadata', {}).get('finalizers') or [])
    if finalizer not in finalizers:
        finalizers.append(finalizer)
    return finalizers


def allow_deletion(body: Mapping[str, Any], finalizer: str) -> List[str]:
    finalizers = body.get('metadata', {}).get('finalizers') or []
    return [f for f in finalizers if f != finalizer]
