import textwrap

import pytest

from k8soperator.structs.crds import CustomResourceInfo, get_info, read_manifest, \
                                     validate_manifest

CRD_YAML = textwrap.dedent("""
    apiVersion: apiextensions.k8s.io/v1
    kind: CustomResourceDefinition
    metadata:
      name: operatorexamples.k8soperator.dev
    spec:
      scope: Namespaced
      group: k8soperator.dev
      names:
        kind: OperatorExample
        plural: operatorexamples
        singular: operatorexample
      versions:
        - name: v1
          served: true
          storage: true
        - name: v1beta1
          served: true
          storage: false
""")


@pytest.fixture()
def crd_file(tmp_path):
    path = tmp_path / 'crd.yaml'
    path.write_text(CRD_YAML)
    return str(path)


def test_reading_a_manifest(crd_file):
    manifest = read_manifest(crd_file)
    assert manifest['kind'] == 'CustomResourceDefinition'
    assert manifest['metadata']['name'] == 'operatorexamples.k8soperator.dev'


def test_reading_a_non_mapping(tmp_path):
    path = tmp_path / 'crd.yaml'
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match=r"Invalid CRD yaml"):
        read_manifest(str(path))


def test_reading_an_absent_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_manifest(str(tmp_path / 'absent.yaml'))


def test_valid_manifest(crd_file):
    manifest = read_manifest(crd_file)
    validate_manifest(manifest)


@pytest.mark.parametrize('api_version', [None, 'v1', 'apps/v1', 'apiextensions.k8s.io'])
def test_invalid_manifest(api_version):
    manifest = {'apiVersion': api_version, 'kind': 'CustomResourceDefinition'}
    with pytest.raises(ValueError) as err:
        validate_manifest(manifest)
    assert str(err.value) == "Invalid CRD yaml (expected 'apiextensions.k8s.io')"


def test_info_extraction(crd_file):
    manifest = read_manifest(crd_file)
    info = get_info(manifest)
    assert isinstance(info, CustomResourceInfo)
    assert info.group == 'k8soperator.dev'
    assert info.plural == 'operatorexamples'
    assert [version['name'] for version in info.versions] == ['v1', 'v1beta1']
