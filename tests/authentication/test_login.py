import pytest

from k8soperator.clients.piggybacking import login
from k8soperator.structs.credentials import ConnectionInfo, LoginError

KUBECONFIG_INFO = ConnectionInfo(server='https://from-kubeconfig')
SERVICEACCOUNT_INFO = ConnectionInfo(server='https://from-serviceaccount')


@pytest.fixture()
def from_kubeconfig(mocker):
    return mocker.patch('k8soperator.clients.piggybacking.login_with_kubeconfig',
                        return_value=None)


@pytest.fixture()
def from_service_account(mocker):
    return mocker.patch('k8soperator.clients.piggybacking.login_with_service_account',
                        return_value=None)


def test_kubeconfig_is_preferred(from_kubeconfig, from_service_account, logger):
    from_kubeconfig.return_value = KUBECONFIG_INFO
    from_service_account.return_value = SERVICEACCOUNT_INFO
    assert login(logger=logger) is KUBECONFIG_INFO
    assert not from_service_account.called


def test_service_account_is_used_without_kubeconfig(from_kubeconfig, from_service_account, logger):
    from_service_account.return_value = SERVICEACCOUNT_INFO
    assert login(logger=logger) is SERVICEACCOUNT_INFO
    assert from_kubeconfig.called


def test_no_sources_fail(from_kubeconfig, from_service_account, logger):
    with pytest.raises(LoginError, match=r"Cannot authenticate"):
        login(logger=logger)


def test_kubeconfig_errors_are_not_hidden(from_kubeconfig, from_service_account, logger):
    from_kubeconfig.side_effect = LoginError("Current context is not set in kubeconfigs.")
    from_service_account.return_value = SERVICEACCOUNT_INFO
    with pytest.raises(LoginError, match=r"Current context"):
        login(logger=logger)
