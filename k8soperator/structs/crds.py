"""
Custom resource definitions (CRDs) as read from the YAML manifests.

Only the fields needed to watch the defined resources are extracted;
the manifest itself is sent to the API as is.
"""
from typing import Any, List, Mapping, NamedTuple

import yaml

CRD_API_GROUP = 'apiextensions.k8s.io'


class CustomResourceInfo(NamedTuple):
    group: str
    versions: List[Mapping[str, Any]]
    plural: str


def read_manifest(path: str) -> Mapping[str, Any]:
    with open(path, encoding='utf-8') as f:
        manifest = yaml.safe_load(f.read())
    if not isinstance(manifest, Mapping):
        raise ValueError(f"Invalid CRD yaml (expected a mapping): {path}")
    return manifest


def validate_manifest(manifest: Mapping[str, Any]) -> None:
    api_version = manifest.get('apiVersion')
    if not api_version or not str(api_version).startswith(f'{CRD_API_GROUP}/'):
        raise ValueError(f"Invalid CRD yaml (expected {CRD_API_GROUP!r})")


def get_info(manifest: Mapping[str, Any]) -> CustomResourceInfo:
    spec = manifest.get('spec', {})
    return CustomResourceInfo(
        group=spec.get('group'),
        versions=list(spec.get('versions', [])),
        plural=spec.get('names', {}).get('plural'),
    )
