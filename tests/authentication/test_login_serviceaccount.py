import pytest

from k8soperator.clients.piggybacking import login_with_service_account


@pytest.fixture()
def sa_dir(tmp_path, monkeypatch):
    monkeypatch.delenv('KUBERNETES_SERVICE_HOST', raising=False)
    monkeypatch.delenv('KUBERNETES_SERVICE_PORT', raising=False)
    return tmp_path


def test_no_service_account_without_the_token(sa_dir):
    (sa_dir / 'namespace').write_text('ns')
    assert login_with_service_account(str(sa_dir)) is None


def test_service_account_with_the_token_only(sa_dir):
    (sa_dir / 'token').write_text(' tkn \n')
    info = login_with_service_account(str(sa_dir))
    assert info is not None
    assert info.server == 'https://kubernetes.default.svc'
    assert info.token == 'tkn'
    assert info.ca_path is None
    assert info.default_namespace is None


def test_service_account_with_all_files(sa_dir):
    (sa_dir / 'token').write_text('tkn')
    (sa_dir / 'namespace').write_text('ns\n')
    (sa_dir / 'ca.crt').write_text('...')
    info = login_with_service_account(str(sa_dir))
    assert info is not None
    assert info.token == 'tkn'
    assert info.ca_path == str(sa_dir / 'ca.crt')
    assert info.default_namespace == 'ns'


def test_empty_token_is_no_token(sa_dir):
    (sa_dir / 'token').write_text('\n')
    info = login_with_service_account(str(sa_dir))
    assert info is not None
    assert info.token is None


@pytest.mark.parametrize('host, port, expected', [
    ('10.0.0.1', '443', 'https://10.0.0.1:443'),
    ('fd00::1', '6443', 'https://[fd00::1]:6443'),
    ('10.0.0.1', '', 'https://kubernetes.default.svc'),
    ('', '443', 'https://kubernetes.default.svc'),
])
def test_service_address_from_envvars(sa_dir, monkeypatch, host, port, expected):
    (sa_dir / 'token').write_text('tkn')
    monkeypatch.setenv('KUBERNETES_SERVICE_HOST', host)
    monkeypatch.setenv('KUBERNETES_SERVICE_PORT', port)
    info = login_with_service_account(str(sa_dir))
    assert info is not None
    assert info.server == expected
