#!/usr/bin/env python3
"""
Configuration loader with multi-layer merging.

Layers (low to high priority):
1. System defaults (built-in presets)
2. User file (--config-file, JSON or YAML)
3. User CLI (--config, JSON string)
4. Environment overrides (AKSGPU_*)

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from aksgpu.core.errors import ConfigurationError, create_error_context


ENV_OVERRIDES = {
    "AKSGPU_KUBECONFIG": ("kubeconfig",),
    "AKSGPU_GRAFANA_PASSWORD": ("monitoring", "grafana_admin_password"),
    "AKSGPU_TERRAFORM_DIR": ("terraform", "directory"),
}


class ConfigLoader:
    """Smart configuration loader with preset support."""

    PRESET_DIR = Path(__file__).parent / "presets"

    @classmethod
    def load_preset(cls, preset_path: str) -> Dict[str, Any]:
        """
        Load a preset JSON file.

        Args:
            preset_path: Relative path to preset file from PRESET_DIR

        Returns:
            Dict containing preset configuration

        Raises:
            ConfigurationError: If the preset is missing or not valid JSON
        """
        full_path = cls.PRESET_DIR / preset_path
        try:
            with open(full_path, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigurationError(
                f"Could not load preset {preset_path}: {e}",
                context=create_error_context(
                    operation="load_preset", file_path=str(full_path)
                ),
                cause=e,
            ) from e

    @classmethod
    def deep_merge(cls, base: Dict, override: Dict) -> Dict:
        """
        Deep merge two dictionaries. Override wins conflicts.
        Nested dicts are merged, lists/primitives are replaced.

        Args:
            base: Base dictionary
            override: Override dictionary

        Returns:
            Merged dictionary
        """
        result = deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls.deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    @classmethod
    def strip_comments(cls, config: Dict) -> Dict:
        """Drop documentation keys (leading underscore) at every level."""
        return {
            key: cls.strip_comments(value) if isinstance(value, dict) else value
            for key, value in config.items()
            if not key.startswith("_")
        }

    @classmethod
    def load_user_file(cls, path: str) -> Dict[str, Any]:
        """Read a JSON or YAML configuration file."""
        file_path = Path(path)
        context = create_error_context(operation="load_config", file_path=str(file_path))
        if not file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {path}", context=context
            )
        try:
            with open(file_path) as f:
                if file_path.suffix.lower() in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Invalid configuration file {path}: {e}", context=context, cause=e
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {path} must contain a mapping", context=context
            )
        return data

    @classmethod
    def parse_inline(cls, config_json: Optional[str]) -> Dict[str, Any]:
        """Parse the --config JSON string."""
        if not config_json:
            return {}
        try:
            data = json.loads(config_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in --config: {e}",
                context=create_error_context(operation="parse_config"),
                suggestions=['Example: --config \'{"namespace": "gpu-operator"}\''],
                cause=e,
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError("--config must be a JSON object")
        return data

    @classmethod
    def env_overrides(cls, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for variable, path in ENV_OVERRIDES.items():
            value = environ.get(variable)
            if not value:
                continue
            node = overrides
            for key in path[:-1]:
                node = node.setdefault(key, {})
            node[path[-1]] = value
        return overrides

    @classmethod
    def load_config(
        cls,
        config_file: Optional[str] = None,
        config_json: Optional[str] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Load the complete configuration with all layers applied.

        Built-in time-slicing profiles are folded in underneath any
        user-supplied ``time_slicing.profiles``.
        """
        config = cls.load_preset("defaults.json")
        config["time_slicing"]["profiles"] = cls.load_preset("time-slicing-profiles.json")

        if config_file:
            config = cls.deep_merge(config, cls.load_user_file(config_file))
        config = cls.deep_merge(config, cls.parse_inline(config_json))
        config = cls.deep_merge(config, cls.env_overrides(environ))

        return cls.strip_comments(config)
