import os.path

import k8soperator

CRD_FILE = os.path.join(os.path.dirname(__file__), '..', 'crd.yaml')
FINALIZER = 'k8soperator.dev/cleanup'


class FinalizingController:
    """
    Keeps a status on every object, and cleans up when the object is deleted.
    """

    def __init__(self) -> None:
        super().__init__()
        self.operator: k8soperator.Operator

    async def init(self, operator: k8soperator.Operator) -> None:
        self.operator = operator
        await operator.register_custom_resource_definition(CRD_FILE)
        await operator.watch_resource('k8soperator.dev', 'v1', 'operatorexamples', self.on_event)
        await operator.watch_resource('', 'v1', 'configmaps', self.on_configmap, namespace='default')

    async def on_event(self, event: k8soperator.ResourceEvent) -> None:
        if await self.operator.handle_resource_finalizer(event, FINALIZER, self.on_delete):
            return
        if event.type == k8soperator.ResourceEventType.DELETED:
            return

        items = event.object.get('spec', {}).get('items', [])
        meta = await self.operator.patch_resource_status(event.meta, {'itemsCount': len(items)})
        if meta is None:
            print(f"Failed to update the status of {event.meta.name}; see the logs.")

    async def on_delete(self, event: k8soperator.ResourceEvent) -> None:
        print(f"Cleaning up after {event.meta.namespace}/{event.meta.name}.")

    async def on_configmap(self, event: k8soperator.ResourceEvent) -> None:
        print(f"ConfigMap {event.meta.name} is {event.type.value.lower()}.")


if __name__ == '__main__':
    k8soperator.configure(verbose=True)
    k8soperator.run(FinalizingController())
