import pytest

from k8soperator.structs.bodies import ResourceEvent, ResourceEventType, build_event
from k8soperator.structs.references import MalformedEventError

ID = 'operatorexamples.k8soperator.dev/v1'


@pytest.mark.parametrize('type_', ['ADDED', 'MODIFIED', 'DELETED'])
def test_event_is_built_with_meta_and_object(make_body, type_):
    body = make_body(finalizers=['x'])
    event = build_event(ID, {'type': type_, 'object': body})
    assert isinstance(event, ResourceEvent)
    assert event.type == ResourceEventType(type_)
    assert event.type == type_
    assert event.object is body
    assert event.meta.id == ID
    assert event.meta.name == 'name1'
    assert event.meta.namespace == 'ns'
    assert event.meta.resource_version == '1'


def test_event_with_malformed_object():
    with pytest.raises(MalformedEventError):
        build_event(ID, {'type': 'ADDED', 'object': {'metadata': {'name': 'name1'}}})
