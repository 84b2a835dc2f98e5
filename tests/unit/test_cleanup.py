"""
Tests for the teardown workflows.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from unittest.mock import MagicMock, call

import pytest
from kubernetes.client.rest import ApiException

from aksgpu.core.errors import (
    CancelledError,
    CommandError,
    ConfigurationError,
    ConnectionError,
)
from aksgpu.teardown.cleanup import CleanupManager


@pytest.fixture
def azure():
    mock = MagicMock()
    mock.group_exists.return_value = True
    mock.list_resources.return_value = [
        {"name": "aks-gpu-manual", "type": "Microsoft.ContainerService/managedClusters",
         "location": "eastus"},
    ]
    mock.list_groups.return_value = [
        {"name": "aks-gpu-rg"},
        {"name": "MC_aks-gpu-rg_aks-gpu-cluster_eastus"},
        {"name": "webapp-prod"},
        {"name": "gpu-lab"},
    ]
    return mock


@pytest.fixture
def helm():
    mock = MagicMock()
    mock.release_exists.return_value = True
    return mock


@pytest.fixture
def terraform():
    mock = MagicMock()
    mock.exists = True
    mock.has_state.return_value = True
    mock.output.return_value = "aks-gpu-rg"
    mock.remove_local_state.return_value = ["terraform.tfstate"]
    return mock


@pytest.fixture
def shell():
    mock = MagicMock()
    mock.sh.return_value = "aks-gpu-cluster\nminikube\ngpu-cluster-dev\n"
    return mock


@pytest.fixture
def manager(config, kube, azure, helm, terraform, prompter, rich_console, shell):
    return CleanupManager(
        config,
        kube_factory=lambda: kube,
        azure=azure,
        helm=helm,
        terraform=terraform,
        prompter=prompter,
        console=rich_console,
        shell=shell,
    )


class TestDetectSetup:
    def test_both(self, manager):
        setup = manager.detect_setup()

        assert setup.terraform and setup.manual

    def test_no_state(self, manager, terraform, azure):
        terraform.has_state.return_value = False
        azure.group_exists.side_effect = CommandError("az not logged in")

        setup = manager.detect_setup()

        assert not setup.terraform and not setup.manual


class TestKubernetesCleanup:
    def test_deletes_workloads_operator_and_policy(self, manager, kube, helm):
        assert manager.cleanup_kubernetes() is True

        assert kube.delete_deployment.call_count == 3
        assert kube.delete_job.call_count == 4
        kube.delete_deployment.assert_any_call("multi-gpu-workload", "gpu-workloads")
        kube.delete_namespace.assert_has_calls(
            [call("gpu-workloads"), call("gpu-operator-resources")]
        )
        helm.uninstall.assert_called_once_with("gpu-operator", "gpu-operator-resources")
        kube.delete_cluster_custom_object.assert_called_once_with(
            "nvidia.com", "v1", "clusterpolicies", "cluster-policy"
        )

    def test_release_missing(self, manager, helm):
        helm.release_exists.return_value = False

        manager.cleanup_kubernetes()

        helm.uninstall.assert_not_called()

    def test_unreachable_cluster_skipped(self, manager, kube, helm, output):
        kube.is_reachable.return_value = False

        assert manager.cleanup_kubernetes() is False
        assert "skipping K8s cleanup" in output.getvalue()
        helm.release_exists.assert_not_called()

    def test_connection_failure_skipped(self, config, helm, rich_console, output):
        def factory():
            raise ConnectionError("no kubeconfig")

        manager = CleanupManager(
            config, kube_factory=factory, azure=MagicMock(), helm=helm,
            terraform=MagicMock(), prompter=MagicMock(), console=rich_console,
            shell=MagicMock(),
        )

        assert manager.cleanup_kubernetes() is False

    def test_api_errors_are_warnings(self, manager, kube, output):
        kube.delete_job.side_effect = ApiException(status=403, reason="Forbidden")
        kube.delete_cluster_custom_object.side_effect = ApiException(status=500, reason="Boom")

        assert manager.cleanup_kubernetes() is True
        text = output.getvalue()
        assert "Could not delete job gpu-test: Forbidden" in text
        assert "Could not delete ClusterPolicy: Boom" in text

    def test_unknown_workload_kind(self, manager, config):
        config["cleanup"]["workloads"] = [{"kind": "statefulset", "name": "x"}]

        with pytest.raises(ConfigurationError, match="statefulset"):
            manager.cleanup_kubernetes()


class TestTerraformCleanup:
    def test_destroy(self, manager, terraform, prompter):
        manager.cleanup_terraform()

        prompter.confirm_word.assert_called_once()
        assert prompter.confirm_word.call_args.args[1] == "DELETE"
        terraform.destroy.assert_called_once()
        terraform.remove_local_state.assert_called_once()

    def test_declined(self, manager, terraform, prompter):
        prompter.confirm_word.return_value = False

        with pytest.raises(CancelledError, match="Terraform cleanup cancelled"):
            manager.cleanup_terraform()

        terraform.destroy.assert_not_called()

    def test_no_state(self, manager, terraform, prompter):
        terraform.has_state.return_value = False

        manager.cleanup_terraform()

        prompter.confirm_word.assert_not_called()
        terraform.destroy.assert_not_called()

    def test_missing_directory(self, manager, terraform):
        terraform.exists = False

        with pytest.raises(ConfigurationError, match="Terraform directory not found"):
            manager.cleanup_terraform()


class TestManualCleanup:
    def test_deletes_group(self, manager, azure, prompter, output):
        prompter.ask.return_value = "aks-gpu-manual-rg"

        manager.cleanup_manual_azure()

        prompter.ask.assert_called_once_with(
            "Enter resource group name", default="aks-gpu-manual-rg"
        )
        azure.delete_group.assert_called_once_with("aks-gpu-manual-rg", no_wait=True)
        assert "managedClusters" in output.getvalue()

    def test_missing_group(self, manager, azure, prompter):
        prompter.ask.return_value = "nope"
        azure.group_exists.return_value = False

        manager.cleanup_manual_azure()

        prompter.confirm_word.assert_not_called()
        azure.delete_group.assert_not_called()

    def test_declined(self, manager, azure, prompter):
        prompter.ask.return_value = "aks-gpu-manual-rg"
        prompter.confirm_word.return_value = False

        with pytest.raises(CancelledError, match="Manual cleanup cancelled"):
            manager.cleanup_manual_azure()

        azure.delete_group.assert_not_called()


class TestLocalConfigCleanup:
    def test_matching_contexts(self, manager):
        assert manager.matching_contexts() == ["aks-gpu-cluster", "gpu-cluster-dev"]

    def test_removes_contexts_and_clears_cache(self, manager, shell, azure):
        manager.cleanup_local_config()

        shell.sh.assert_any_call(
            ["kubectl", "config", "delete-context", "aks-gpu-cluster"], canFail=True
        )
        shell.sh.assert_any_call(
            ["kubectl", "config", "delete-context", "gpu-cluster-dev"], canFail=True
        )
        azure.account_clear.assert_called_once()

    def test_declined(self, manager, shell, azure, prompter):
        prompter.confirm.return_value = False

        manager.cleanup_local_config()

        shell.sh.assert_not_called()
        azure.account_clear.assert_not_called()


class TestEmergencyCleanup:
    def test_deletes_matching_groups(self, manager, azure, prompter):
        started = manager.emergency_cleanup()

        assert started == ["aks-gpu-rg", "MC_aks-gpu-rg_aks-gpu-cluster_eastus", "gpu-lab"]
        assert "webapp-prod" not in started
        words = [c.args[1] for c in prompter.confirm_word.call_args_list]
        assert words == ["EMERGENCY", "DELETE ALL"]

    def test_custom_keywords(self, manager, config):
        config["cleanup"]["emergency_keywords"] = ["lab"]

        assert manager.emergency_cleanup() == ["gpu-lab"]

    def test_keywords_ignore_case(self, manager, azure, config):
        config["cleanup"]["emergency_keywords"] = ["GPU"]
        azure.list_groups.return_value = [
            {"name": "AKS-Prod-GPU"}, {"name": "Gpu-Lab"}, {"name": "webapp-prod"}
        ]

        assert manager.emergency_cleanup() == ["AKS-Prod-GPU", "Gpu-Lab"]

    def test_first_word_declined(self, manager, azure, prompter):
        prompter.confirm_word.return_value = False

        assert manager.emergency_cleanup() == []
        azure.list_groups.assert_not_called()

    def test_one_failure_does_not_stop_the_rest(self, manager, azure):
        azure.delete_group.side_effect = [CommandError("locked"), None, None]

        assert manager.emergency_cleanup() == ["MC_aks-gpu-rg_aks-gpu-cluster_eastus", "gpu-lab"]

    def test_nothing_found(self, manager, azure, prompter):
        azure.list_groups.return_value = [{"name": "webapp-prod"}]

        assert manager.emergency_cleanup() == []
        assert prompter.confirm_word.call_count == 1


class TestInteractive:
    def test_exit(self, manager, prompter, kube, terraform):
        prompter.choose.return_value = "7"

        assert manager.run_interactive() is None
        kube.is_reachable.assert_not_called()
        terraform.destroy.assert_not_called()

    def test_menu_offers_seven_options(self, manager, prompter):
        prompter.choose.return_value = "7"

        manager.run_interactive()

        assert prompter.choose.call_args.args[1] == ["1", "2", "3", "4", "5", "6", "7"]

    def test_full_cleanup_prefers_terraform(self, manager, prompter, terraform, azure):
        prompter.choose.return_value = "4"

        assert manager.run_interactive() == "4"
        terraform.destroy.assert_called_once()
        azure.delete_group.assert_not_called()
        azure.account_clear.assert_called_once()

    def test_full_cleanup_manual(self, manager, prompter, terraform, azure):
        terraform.has_state.return_value = False
        prompter.choose.return_value = "4"
        prompter.ask.return_value = "aks-gpu-manual-rg"

        manager.run_interactive()

        terraform.destroy.assert_not_called()
        azure.delete_group.assert_called_once_with("aks-gpu-manual-rg", no_wait=True)

    def test_terraform_option_without_state(self, manager, prompter, terraform, output):
        terraform.has_state.return_value = False
        prompter.choose.return_value = "2"

        manager.run_interactive()

        assert "No Terraform deployment found" in output.getvalue()
        terraform.destroy.assert_not_called()

    def test_local_config_not_repeated_after_emergency(self, manager, prompter, azure):
        prompter.choose.return_value = "6"
        prompter.confirm_word.return_value = False

        manager.run_interactive()

        prompter.confirm.assert_not_called()
        azure.account_clear.assert_not_called()
