import os
import re
from configparser import ConfigParser, NoOptionError, NoSectionError
from typing import Dict, Any, Optional, List, Tuple


class ConfigManager:
    """
    Immutable configuration manager - reads config files once and provides
    harness-specific configuration objects
    """

    def __init__(self, config_file: Optional[str] = None):
        self.base_config = self._load_configs(config_file)

    def _load_configs(self, config_file: Optional[str] = None) -> ConfigParser:
        """
        Load and merge configuration files
        :param config_file: optional path to a custom config file
        :return: ConfigParser object
        """
        # Get the default config file path and make sure it exists
        default_config_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.ini')
        if not os.path.exists(default_config_file):
            raise FileNotFoundError(f'Could not find the default config file at {default_config_file}')

        config = ConfigParser()
        config.read(default_config_file)

        # Get the user config location from the default config file and check and read it
        if 'user_config' in config['DEFAULT']:
            user_config = self.resolve_file_path(config['DEFAULT']['user_config'])
            if user_config is not None:
                config.read(user_config)

        # If a custom config file was specified, check and read it
        if config_file is not None:
            file = self.resolve_file_path(config_file)
            if file is None:
                raise FileNotFoundError(f'Could not find the custom config file at {config_file}')
            config.read(file)

        return config

    def create_harness_config(self, overrides: Optional[Dict[str, Any]] = None) -> 'HarnessConfig':
        """Create a mutable config for one harness run"""
        return HarnessConfig(self.base_config, overrides or {})

    @staticmethod
    def fix_values(value: Any) -> Any:
        """Fix some values due to how they are stored and retrieved with ConfigParser"""
        if isinstance(value, str):
            value = value.strip()

            # Handle path expansion only for strings that clearly look like paths
            if (value.startswith(('~', './', '/', '\\')) and
                    not value.startswith(('{', '[', '"', "'"))):
                expanded = os.path.expanduser(value)
                if expanded != value:
                    value = expanded

            # Handle dict-like strings
            if value.startswith('{') and value.endswith('}'):
                pairs = re.findall(r'(\w+)\s*:\s*(\[.*?]|[^,]+)(?=\s*(?:,|$))', value[1:-1])
                return {k.strip(): ConfigManager.fix_values(v.strip()) for k, v in pairs}

            # Handle list-like strings
            if value.startswith('[') and value.endswith(']'):
                return [ConfigManager.fix_values(item.strip()) for item in re.findall(r'<[^>]+>|[^,\s]+', value[1:-1])]

            # Check for integer values
            if value.isdigit():
                return int(value)

            # Check for simple float values (timeouts)
            if re.fullmatch(r'\d+\.\d+', value):
                return float(value)

            # Handle boolean values
            lower_value = value.lower()
            if lower_value in ('true', 'yes'):
                return True
            if lower_value in ('false', 'no'):
                return False

            # Remove quotes if present
            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                return value[1:-1]

        # Return as is for other cases
        return value

    @staticmethod
    def resolve_file_path(file_name: str, base_dir: Optional[str] = None) -> Optional[str]:
        """
        Works out the path to a file based on the filename and optional base directory
        :param file_name: name of the file to resolve the path to
        :param base_dir: optional base directory to resolve the path from
        :return: absolute path to the file or None
        """
        if file_name is None:
            return None

        # If base_dir is not specified, use the current working directory
        if base_dir is None:
            base_dir = os.getcwd()
        # If base_dir is a relative path, convert it to an absolute path based on this directory
        elif not os.path.isabs(base_dir):
            main_dir = os.path.dirname(os.path.abspath(__file__))
            base_dir = os.path.abspath(os.path.join(main_dir, base_dir))
        base_dir = os.path.expanduser(base_dir)

        if not os.path.isdir(base_dir):
            return None

        file_name = os.path.expanduser(file_name)
        if os.path.isabs(file_name):
            return file_name if os.path.isfile(file_name) else None

        full_path = os.path.join(base_dir, file_name)
        if os.path.isfile(full_path):
            return full_path
        return None


class HarnessConfig:
    """
    Mutable configuration for a harness run.
    Runtime overrides win over file values, regardless of section.
    """

    def __init__(self, base_config: ConfigParser, overrides: Optional[Dict[str, Any]] = None):
        self.base_config = base_config
        self.overrides = overrides or {}

    def set_option(self, key: str, value: Any) -> None:
        """Set a runtime override"""
        self.overrides[key] = value

    def get_option(self, section: str, option: str, fallback: Any = None) -> Any:
        """
        Get a setting from the configuration

        :param section: the section to get the setting from
        :param option: the option to get
        :param fallback: the value to return if the option is not found
        :return: the setting value
        """
        if option in self.overrides:
            return self.overrides[option]
        try:
            return ConfigManager.fix_values(self.base_config.get(section, option))
        except (NoSectionError, NoOptionError):
            return fallback

    def get_section(self, section: str) -> Dict[str, Any]:
        """Options defined directly in a section (DEFAULT values excluded)"""
        if not self.base_config.has_section(section):
            return {}
        defaults = set(self.base_config.defaults())
        return {
            option: ConfigManager.fix_values(self.base_config.get(section, option))
            for option in self.base_config.options(section)
            if option not in defaults
        }

    def sections(self, prefix: str = '') -> List[str]:
        return [s for s in self.base_config.sections() if s.startswith(prefix)]

    # --- typed helpers ---------------------------------------------------
    def get_float(self, section: str, option: str, fallback: Optional[float] = None) -> Optional[float]:
        """Float option; zero or negative means 'no limit' and yields None"""
        value = self.get_option(section, option, None)
        if value is None or value == '':
            return fallback
        try:
            number = float(value)
        except (TypeError, ValueError):
            return fallback
        return number if number > 0 else None

    def get_size(self, section: str, option: str, fallback: Tuple[int, int] = (100, 30)) -> Tuple[int, int]:
        """Parse a WIDTHxHEIGHT value such as '100x30'"""
        value = self.get_option(section, option, None)
        return parse_size(value, fallback)


def parse_size(value: Any, fallback: Tuple[int, int] = (100, 30)) -> Tuple[int, int]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return int(value[0]), int(value[1])
    if isinstance(value, str):
        match = re.fullmatch(r'\s*(\d+)\s*[xX]\s*(\d+)\s*', value)
        if match:
            return int(match.group(1)), int(match.group(2))
        raise ValueError(f"Invalid size '{value}', expected WIDTHxHEIGHT")
    return fallback
