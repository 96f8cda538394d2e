"""
The main module of the operator runtime for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the package's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from k8soperator.clients.errors import (
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
)
from k8soperator.clients.watching import (
    WatchingError,
)
from k8soperator.engines.loggers import (
    LogFormat,
    ObjectLogger,
    configure,
)
from k8soperator.helpers.typedefs import (
    Logger,
)
from k8soperator.helpers.versions import (
    version as __version__,
)
from k8soperator.reactor.finalizing import (
    DeleteAction,
)
from k8soperator.reactor.queueing import (
    EventHandler,
)
from k8soperator.reactor.running import (
    Controller,
    Operator,
    run,
    operator,
    register_crds,
    terminate_process,
)
from k8soperator.structs.bodies import (
    ResourceEvent,
    ResourceEventType,
)
from k8soperator.structs.configuration import (
    OperatorSettings,
)
from k8soperator.structs.crds import (
    CustomResourceInfo,
)
from k8soperator.structs.credentials import (
    ConnectionInfo,
    LoginError,
)
from k8soperator.structs.references import (
    MalformedEventError,
    Resource,
    ResourceMeta,
)

__all__ = [
    'APIError',
    'APIUnauthorizedError',
    'APIForbiddenError',
    'APINotFoundError',
    'APIConflictError',
    'WatchingError',
    'LogFormat',
    'ObjectLogger',
    'configure',
    'Logger',
    'DeleteAction',
    'EventHandler',
    'Controller',
    'Operator',
    'run',
    'operator',
    'register_crds',
    'terminate_process',
    'ResourceEvent',
    'ResourceEventType',
    'OperatorSettings',
    'CustomResourceInfo',
    'ConnectionInfo',
    'LoginError',
    'MalformedEventError',
    'Resource',
    'ResourceMeta',
]
