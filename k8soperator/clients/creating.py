from typing import Any, Mapping, Optional

from k8soperator.clients import api, auth, errors
from k8soperator.helpers import typedefs
from k8soperator.structs import bodies, configuration, references


async def create_crd(
        *,
        context: auth.APIContext,
        settings: configuration.OperatorSettings,
        manifest: Mapping[str, Any],
        logger: typedefs.Logger,
) -> Optional[bodies.RawBody]:
    """
    Create a custom resource definition, unless it already exists.

    Returns ``None`` if the definition already exists (HTTP 409 Conflict).
    The existing definition is neither compared nor updated.
    All other API errors are escalated.
    """
    name = manifest.get('metadata', {}).get('name')
    try:
        created_body: bodies.RawBody = await api.post(
            url=references.CRD_RESOURCE.get_url(),
            payload=manifest,
            context=context,
            settings=settings,
            logger=logger,
        )
    except errors.APIConflictError:
        logger.debug(f"Custom resource definition {name!r} already exists.")
        return None
    else:
        logger.info(f"Registered custom resource definition {name!r}.")
        return created_body
