"""
Tests for Terraform variable validation.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json

import pytest

from aksgpu.config.terraform_vars import TerraformVariables
from aksgpu.core.errors import ConfigurationError, ValidationError


class TestTerraformVariables:
    def test_defaults_are_valid(self):
        variables = TerraformVariables.defaults()

        assert variables.location == "eastus"
        assert variables.gpu_node_vm_size == "Standard_NC6s_v3"
        assert variables.problems() == []

    def test_unknown_variable_rejected(self):
        with pytest.raises(ConfigurationError, match="gpu_count"):
            TerraformVariables.from_dict({"gpu_count": 2})

    def test_overrides_applied(self):
        variables = TerraformVariables.from_dict({"gpu_node_count": 2, "location": "westeurope"})

        assert variables.gpu_node_count == 2
        assert variables.location == "westeurope"
        assert variables.cluster_name == "aks-gpu-cluster"

    @pytest.mark.parametrize("overrides,fragment", [
        ({"location": "East US"}, "location"),
        ({"resource_group_name": "rg."}, "resource_group_name"),
        ({"cluster_name": "-bad"}, "cluster_name"),
        ({"dns_prefix": "a" * 60}, "dns_prefix"),
        ({"kubernetes_version": "latest"}, "kubernetes_version"),
        ({"system_node_vm_size": "D4s_v3"}, "system_node_vm_size"),
        ({"gpu_node_vm_size": "Standard_D4s_v3"}, "not an N-series GPU size"),
        ({"system_node_count": 0}, "system_node_count"),
        ({"gpu_node_count": "1"}, "gpu_node_count must be an integer"),
        ({"log_analytics_retention_days": 7}, "log_analytics_retention_days"),
        ({"enable_gpu_autoscaling": "yes"}, "enable_gpu_autoscaling"),
        ({"vnet_address_space": "10.0.0.0/33"}, "vnet_address_space"),
        ({"subnet_address_prefix": "192.168.0.0/24"}, "must lie inside"),
        ({"tags": {"owner": 7}}, "tags"),
    ])
    def test_problems(self, overrides, fragment):
        problems = TerraformVariables.from_dict(overrides).problems()

        assert any(fragment in problem for problem in problems), problems

    def test_autoscaling_bounds(self):
        variables = TerraformVariables.from_dict({
            "enable_gpu_autoscaling": True,
            "gpu_node_min_count": 2,
            "gpu_node_count": 1,
            "gpu_node_max_count": 3,
        })

        assert any("gpu_node_min_count <= gpu_node_count" in p for p in variables.problems())

    def test_autoscaling_bounds_ignored_when_disabled(self):
        variables = TerraformVariables.from_dict({"gpu_node_min_count": 5, "gpu_node_count": 1})

        assert variables.problems() == []

    def test_validate_collects_all_problems(self):
        variables = TerraformVariables.from_dict({"location": "East US", "gpu_node_count": -1})

        with pytest.raises(ValidationError, match="2 invalid Terraform variable") as exc_info:
            variables.validate()

        assert len(exc_info.value.suggestions) == 2


class TestTfvarsFiles:
    def test_write_and_load(self, tmp_path):
        target = tmp_path / "terraform" / "terraform.tfvars.json"
        variables = TerraformVariables.from_dict({"gpu_node_count": 2})

        path = variables.write_tfvars_json(str(target))

        data = json.loads(path.read_text())
        assert data["gpu_node_count"] == 2
        assert data["tags"]["managed-by"] == "terraform"
        assert TerraformVariables.load(str(path)) == variables

    def test_write_refuses_invalid(self, tmp_path):
        target = tmp_path / "terraform.tfvars.json"

        with pytest.raises(ValidationError):
            TerraformVariables.from_dict({"gpu_node_count": 500}).write_tfvars_json(str(target))

        assert not target.exists()

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "vars.yaml"
        path.write_text("location: westus2\ngpu_node_vm_size: Standard_NC24ads_A100_v4\n")

        variables = TerraformVariables.load(str(path))

        assert variables.location == "westus2"
        assert variables.problems() == []

    def test_load_missing(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            TerraformVariables.load(str(tmp_path / "missing.json"))

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "bad.tfvars.json"
        path.write_text("{location: }")

        with pytest.raises(ConfigurationError, match="Could not parse"):
            TerraformVariables.load(str(path))
