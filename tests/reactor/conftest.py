import pytest

from k8soperator.structs.bodies import ResourceEvent, ResourceEventType
from k8soperator.structs.references import build_meta

ID = 'operatorexamples.k8soperator.dev/v1'


@pytest.fixture()
def make_event(make_body):
    """ A resource event of the test resource, with the body as specified. """
    def make_event_fn(type_='ADDED', **kwargs):
        body = make_body(**kwargs)
        return ResourceEvent(meta=build_meta(ID, body), type=ResourceEventType(type_), object=body)
    return make_event_fn
