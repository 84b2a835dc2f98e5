"""
Tests for time-slicing profiles and the device plugin ConfigMap.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import pytest
import yaml

from aksgpu.config.timeslicing import (
    GPUArchitectureProfile,
    TimeSlicingConfig,
    advertised_gpus,
    parse_replicas,
)
from aksgpu.core.errors import ValidationError


@pytest.fixture
def time_slicing(config):
    return TimeSlicingConfig.from_config(config["time_slicing"])


class TestGPUArchitectureProfile:
    def test_device_plugin_document(self):
        document = GPUArchitectureProfile("ampere", 8).to_device_plugin_config()

        assert document["version"] == "v1"
        assert document["flags"] == {"migStrategy": "none"}
        sharing = document["sharing"]["timeSlicing"]
        assert sharing["renameByDefault"] is False
        assert sharing["failRequestsGreaterThanOne"] is False
        assert sharing["resources"] == [{"name": "nvidia.com/gpu", "replicas": 8}]

    @pytest.mark.parametrize("replicas", [0, -2, "4", 2.5, True])
    def test_rejects_bad_replicas(self, replicas):
        with pytest.raises(ValidationError):
            GPUArchitectureProfile("any", replicas).validate()

    @pytest.mark.parametrize("name", ["", "has space", "slash/name"])
    def test_rejects_bad_names(self, name):
        with pytest.raises(ValidationError, match="Invalid profile name"):
            GPUArchitectureProfile(name, 4).validate()

    def test_single_replica_is_valid(self):
        GPUArchitectureProfile("volta", 1).validate()


class TestTimeSlicingConfig:
    def test_from_config(self, time_slicing):
        assert set(time_slicing.profiles) == {
            "any", "turing", "volta", "ampere", "ada-lovelace", "hopper"
        }
        assert time_slicing.default_profile == "any"
        assert time_slicing.profiles["hopper"].replicas == 8
        time_slicing.validate()

    def test_with_replicas_returns_copy(self, time_slicing):
        updated = time_slicing.with_replicas("ampere", 2)

        assert updated.profiles["ampere"].replicas == 2
        assert time_slicing.profiles["ampere"].replicas == 8

    def test_with_replicas_adds_profile(self, time_slicing):
        updated = time_slicing.with_replicas("blackwell", 16)

        assert "blackwell" in updated.profiles
        assert "blackwell" not in time_slicing.profiles

    def test_requires_profiles(self):
        with pytest.raises(ValidationError, match="At least one"):
            TimeSlicingConfig().validate()

    def test_unknown_default_profile(self, time_slicing):
        time_slicing.default_profile = "pascal"

        with pytest.raises(ValidationError, match="Default profile 'pascal'"):
            time_slicing.validate()

    def test_invalid_mig_strategy(self, time_slicing):
        time_slicing.mig_strategy = "all"

        with pytest.raises(ValidationError, match="MIG strategy"):
            time_slicing.validate()

    def test_render_unknown_profile(self, time_slicing):
        with pytest.raises(ValidationError, match="Unknown time-slicing profile"):
            time_slicing.render_profile("pascal")

    def test_configmap_manifest(self, time_slicing):
        manifest = time_slicing.to_configmap("gpu-operator-resources")

        assert manifest["kind"] == "ConfigMap"
        assert manifest["metadata"]["name"] == "time-slicing-config"
        assert manifest["metadata"]["namespace"] == "gpu-operator-resources"
        assert set(manifest["data"]) == set(time_slicing.profiles)
        ampere = yaml.safe_load(manifest["data"]["ampere"])
        assert ampere["sharing"]["timeSlicing"]["resources"][0]["replicas"] == 8

    def test_configmap_validates_first(self, time_slicing):
        bad = time_slicing.with_replicas("any", 0)

        with pytest.raises(ValidationError):
            bad.to_configmap("gpu-operator-resources")

    def test_to_yaml_is_parseable(self, time_slicing):
        manifest = yaml.safe_load(time_slicing.to_yaml("ns"))

        assert manifest["apiVersion"] == "v1"
        assert parse_replicas(manifest["data"], "turing") == 4

    def test_flags_propagate(self, config):
        section = dict(config["time_slicing"], mig_strategy="single", rename_by_default=True)
        rendered = yaml.safe_load(TimeSlicingConfig.from_config(section).render_profile("any"))

        assert rendered["flags"]["migStrategy"] == "single"
        assert rendered["sharing"]["timeSlicing"]["renameByDefault"] is True


class TestParseReplicas:
    def test_missing_data(self):
        assert parse_replicas(None, "any") is None
        assert parse_replicas({}, "any") is None

    def test_falls_back_to_text_search(self):
        data = {"any": "version: v1\n# hand edited\nreplicas: 6\n"}

        assert parse_replicas(data, "any") == 6

    def test_unparseable(self):
        assert parse_replicas({"any": "version: v1\n"}, "any") is None


@pytest.mark.parametrize("physical,replicas,expected", [(1, 4, 4), (2, 8, 16), (0, 4, 0)])
def test_advertised_gpus(physical, replicas, expected):
    assert advertised_gpus(physical, replicas) == expected
