import dataclasses

import pytest

from k8soperator.structs.references import MalformedEventError, ResourceMeta, \
                                           build_meta, make_id

ID = 'operatorexamples.k8soperator.dev/v1'
BODY = {
    'apiVersion': 'k8soperator.dev/v1',
    'kind': 'OperatorExample',
    'metadata': {
        'name': 'name1',
        'namespace': 'ns1',
        'resourceVersion': '123',
        'uid': 'uid1',
    },
}


def test_make_id():
    assert make_id('plural', 'group/v1') == 'plural.group/v1'
    assert make_id('pods', 'v1') == 'pods.v1'


def test_meta_of_namespaced_object():
    meta = build_meta(ID, BODY)
    assert meta == ResourceMeta(
        id=ID,
        name='name1',
        namespace='ns1',
        resource_version='123',
        api_version='k8soperator.dev/v1',
        kind='OperatorExample',
    )


def test_meta_of_cluster_scoped_object():
    body = dict(BODY, metadata={'name': 'name1', 'resourceVersion': '123'})
    meta = build_meta(ID, body)
    assert meta.namespace is None
    assert meta.name == 'name1'


def test_meta_keeps_the_id_as_given():
    meta = build_meta('something.else/v2', BODY)
    assert meta.id == 'something.else/v2'


def test_meta_is_immutable():
    meta = build_meta(ID, BODY)
    with pytest.raises(dataclasses.FrozenInstanceError):
        meta.name = 'name2'  # type: ignore


@pytest.mark.parametrize('body', [
    pytest.param({k: v for k, v in BODY.items() if k != 'apiVersion'}, id='no-apiversion'),
    pytest.param({k: v for k, v in BODY.items() if k != 'kind'}, id='no-kind'),
    pytest.param({k: v for k, v in BODY.items() if k != 'metadata'}, id='no-metadata'),
    pytest.param(dict(BODY, metadata={'resourceVersion': '123'}), id='no-name'),
    pytest.param(dict(BODY, metadata={'name': 'name1'}), id='no-resourceversion'),
    pytest.param(dict(BODY, metadata={'name': '', 'resourceVersion': '123'}), id='empty-name'),
    pytest.param(dict(BODY, kind=''), id='empty-kind'),
    pytest.param({}, id='empty'),
])
def test_malformed_objects(body):
    with pytest.raises(MalformedEventError) as err:
        build_meta(ID, body)
    assert err.value.id == ID
    assert str(err.value) == f"Malformed event object for {ID!r}"
