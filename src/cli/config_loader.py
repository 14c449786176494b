"""YAML configuration loading and validation.

The wiki-store command reads its settings from a YAML file whose keys are
the fields of WikiOptions:

    repository_root: ./wiki-data
    branch_name: main
    neutral_culture: en
    use_page_level_permissions: true
    allowed_media_extensions: [".png", ".jpg"]

The environment variables WIKI_REPOSITORY_ROOT, WIKI_BRANCH and
WIKI_NEUTRAL_CULTURE override the file. They may also come from a ``.env``
file in the working directory.
"""

import dataclasses
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from src.cli.errors import ConfigError, ConfigFilesystemError
from src.models.wiki_options import TEMP_MEDIA_ID_TOKEN, WikiOptions
from src.page_store.input_validator import is_valid_culture


class ConfigLoader:
    """Handles configuration file loading, validation, and saving."""

    # Required fields (after environment overrides)
    REQUIRED_FIELDS = {'repository_root'}

    # Environment variable -> option field
    ENV_OVERRIDES = {
        'WIKI_REPOSITORY_ROOT': 'repository_root',
        'WIKI_BRANCH': 'branch_name',
        'WIKI_NEUTRAL_CULTURE': 'neutral_culture',
    }

    STRING_FIELDS = {
        'repository_root', 'wiki_repository_name', 'branch_name',
        'neutral_culture', 'home_page_name', 'temp_media_url_template',
    }
    BOOL_FIELDS = {'use_page_level_permissions', 'allow_anonymous_viewing'}
    NUMBER_FIELDS = {
        'rules_cache_ttl_seconds',
        'temp_media_cleanup_interval_seconds',
        'temp_media_max_age_seconds',
    }
    LIST_FIELDS = {'allowed_media_extensions'}

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> WikiOptions:
        """Load options from a YAML file and the environment.

        Args:
            config_path: Path to the YAML file; a missing file is allowed when
                the environment provides every required field

        Returns:
            Validated WikiOptions

        Raises:
            ConfigFilesystemError: If the file exists but cannot be read
            ConfigError: If the configuration is invalid
        """
        load_dotenv()

        config_dict: Dict[str, Any] = {}
        if config_path and os.path.exists(config_path):
            config_dict = cls._read_file(config_path)

        for env_name, field_name in cls.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                config_dict[field_name] = value

        return cls._parse_config(config_dict)

    @classmethod
    def _read_file(cls, config_path: str) -> Dict[str, Any]:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except PermissionError:
            raise ConfigFilesystemError(config_path, 'read', 'Permission denied')
        except OSError as e:
            raise ConfigFilesystemError(config_path, 'read', str(e))

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            return {}
        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )
        return config_dict

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> WikiOptions:
        """Validate a raw configuration dictionary.

        Raises:
            ConfigError: If a field is missing, unknown or of the wrong type
        """
        known_fields = {f.name for f in dataclasses.fields(WikiOptions)}
        unknown = set(config_dict) - known_fields
        if unknown:
            raise ConfigError(f"Unknown fields: {', '.join(sorted(unknown))}")

        missing = cls.REQUIRED_FIELDS - set(config_dict)
        if missing:
            raise ConfigError(
                f"Missing required fields: {', '.join(sorted(missing))}"
            )

        values: Dict[str, Any] = {}
        for name, raw in config_dict.items():
            if name in cls.STRING_FIELDS:
                value = str(raw).strip() if raw is not None else ""
                if not value:
                    raise ConfigError(f"Field '{name}' cannot be empty", name)
            elif name in cls.BOOL_FIELDS:
                if not isinstance(raw, bool):
                    raise ConfigError(f"Field '{name}' must be true or false", name)
                value = raw
            elif name in cls.NUMBER_FIELDS:
                try:
                    value = float(raw)
                except (ValueError, TypeError):
                    raise ConfigError(f"Field '{name}' must be a number", name)
                if value <= 0:
                    raise ConfigError(f"Field '{name}' must be positive, got {value}", name)
            else:
                if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
                    raise ConfigError(f"Field '{name}' must be a list of strings", name)
                value = [v if v.startswith('.') else f'.{v}' for v in raw]
            values[name] = value

        if not is_valid_culture(values.get('neutral_culture', 'en')):
            raise ConfigError(
                "Field 'neutral_culture' must look like 'en' or 'en-US'",
                'neutral_culture'
            )
        template = values.get('temp_media_url_template')
        if template is not None and template.count(TEMP_MEDIA_ID_TOKEN) != 1:
            raise ConfigError(
                f"Field 'temp_media_url_template' must contain {TEMP_MEDIA_ID_TOKEN} exactly once",
                'temp_media_url_template'
            )

        return WikiOptions(**values)

    @classmethod
    def save(cls, config_path: str, options: WikiOptions) -> None:
        """Write options to a YAML file.

        Raises:
            ConfigFilesystemError: If the file cannot be written
        """
        yaml_str = yaml.safe_dump(
            dataclasses.asdict(options),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )

        config_dir = os.path.dirname(config_path)
        try:
            if config_dir:
                os.makedirs(config_dir, exist_ok=True)
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(yaml_str)
        except PermissionError:
            raise ConfigFilesystemError(config_path, 'write', 'Permission denied')
        except OSError as e:
            raise ConfigFilesystemError(config_path, 'write', str(e))
