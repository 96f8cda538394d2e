import os.path

import k8soperator

CRD_FILE = os.path.join(os.path.dirname(__file__), '..', 'crd.yaml')


class MinimalController:

    async def init(self, operator: k8soperator.Operator) -> None:
        info = await operator.register_custom_resource_definition(CRD_FILE)
        for version in info.versions:
            await operator.watch_resource(info.group, version['name'], info.plural, self.on_event)

    async def on_event(self, event: k8soperator.ResourceEvent) -> None:
        print(f"{event.type.value}: {event.meta.namespace}/{event.meta.name} "
              f"(resourceVersion={event.meta.resource_version})")
