import json
import os

import jsonschema

from .exceptions import ECSImagesError


class ConfigLoader:
    DEFAULTS = {
        "cluster_includes": [],
        "max_pool_connections": 10,
        "output": "text",
    }

    SCHEMA = {
        "type": "object",
        "properties": {
            "profile": {"type": "string"},
            "region": {"type": "string"},
            "credentials": {
                "type": "object",
                "properties": {
                    "aws_access_key": {"type": "string"},
                    "aws_secret_key": {"type": "string"},
                    "aws_sts_token": {"type": "string"},
                },
                "required": ["aws_access_key", "aws_secret_key"],
                "additionalProperties": False,
            },
            "cluster_includes": {"type": "array", "items": {"type": "string"}},
            "max_pool_connections": {"type": "integer", "minimum": 1},
            "output": {"enum": ["text", "json"]},
        },
        "additionalProperties": False,
    }

    def __init__(self, config_path=None):
        self.config_path = config_path

    def validate_schema(self, config):
        try:
            jsonschema.validate(instance=config, schema=self.SCHEMA)
        except jsonschema.exceptions.ValidationError as e:
            raise ECSImagesError(f"Configuration validation failed: {e.message}")

    def validate_credentials_source(self, config):
        if "profile" in config and "credentials" in config:
            raise ECSImagesError(
                "Configuration sets both 'profile' and 'credentials', use only one"
            )

    def fold_defaults(self, config):
        for key, value in self.DEFAULTS.items():
            config.setdefault(key, value)

    def merge_overrides(self, config, **overrides):
        """Apply command line values over the configuration, ignoring unset ones."""
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "profile":
                config.pop("credentials", None)
            config[key] = value
        self.validate_schema(config)
        return config

    def load_config(self):
        """Load, validate and return the configuration, or the defaults without a file."""
        if self.config_path is None:
            config = {}
        else:
            if not os.path.exists(self.config_path):
                raise ECSImagesError(f"Config file not found: {self.config_path}")

            with open(self.config_path, "r") as f:
                try:
                    config = json.load(f)
                except json.JSONDecodeError as e:
                    raise ECSImagesError(f"Failed to parse JSON config: {e}")

        self.validate_schema(config)
        self.validate_credentials_source(config)
        self.fold_defaults(config)
        return config
