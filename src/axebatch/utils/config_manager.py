# src/axebatch/utils/config_manager.py
import os
import json
import yaml
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, TypeVar, Callable

T = TypeVar('T')
_CONFIG_MANAGER_INSTANCE = None
_INITIALIZING = False  # Flag to prevent recursion


def get_config_manager(project_name="axebatch", config_file=None, cli_args=None):
    global _CONFIG_MANAGER_INSTANCE, _INITIALIZING
    if _CONFIG_MANAGER_INSTANCE is None and not _INITIALIZING:
        _INITIALIZING = True
        try:
            _CONFIG_MANAGER_INSTANCE = ConfigurationManager(project_name, config_file, cli_args=cli_args)
        finally:
            _INITIALIZING = False
    return _CONFIG_MANAGER_INSTANCE


# WCAG presets accepted by --wcag
WCAG_PRESETS = {
    "wcag2a": ["wcag2a"],
    "wcag2aa": ["wcag2a", "wcag2aa"],
    "wcag21aa": ["wcag2a", "wcag2aa", "wcag21aa"],
    "wcag22aa": ["wcag2a", "wcag2aa", "wcag21aa", "wcag22aa"],
    "section508": ["section508"],
    "comprehensive": ["wcag2a", "wcag2aa", "wcag21aa", "wcag22aa", "section508"],
}

DEFAULT_CONFIG_SCHEMA = {
    # Audit run
    "AXE_WCAG_TAGS": {
        "type": "list",
        "default": ["wcag2a", "wcag2aa", "wcag21aa", "wcag22aa"],
        "description": "Rule-engine tag filter applied to every page",
        "aliases": ["wcag_tags", "wcag_level"]
    },
    "AXE_PAGE_TIMEOUT": {
        "type": "float",
        "default": 30.0,
        "description": "Per-page navigation timeout in seconds",
        "aliases": ["page_timeout", "timeout"]
    },
    "AXE_SLEEP_TIME": {
        "type": "float",
        "default": 1.0,
        "description": "Settle time after navigation, before the rule engine runs",
        "aliases": ["sleep_time"]
    },
    "AXE_HEADLESS": {
        "type": "bool",
        "default": True,
        "description": "Run Chrome in headless mode",
        "aliases": ["headless"]
    },
    "AXE_CAPTURE_EVIDENCE": {
        "type": "bool",
        "default": True,
        "description": "Capture highlighted screenshots for violation nodes",
        "aliases": ["capture_evidence", "include_screenshots"]
    },
    "CONTINUE_ON_FAILURE": {
        "type": "bool",
        "default": True,
        "description": "Keep auditing remaining URLs after a URL fails",
        "aliases": ["continue_on_failure"]
    },

    # Evidence
    "EVIDENCE_PADDING": {
        "type": "int",
        "default": 20,
        "description": "Padding in pixels around the element crop",
        "aliases": ["padding"]
    },
    "EVIDENCE_SETTLE_DELAY": {
        "type": "float",
        "default": 0.5,
        "description": "Delay after scrolling an element into view",
        "aliases": ["settle_delay"]
    },
    "EVIDENCE_MAX_PER_VIOLATION": {
        "type": "int",
        "default": 0,
        "description": "Maximum screenshots per violation (0 = all nodes)",
        "aliases": ["max_evidence_per_violation"]
    },

    # Report consolidation
    "REPORT_MAX_EXAMPLES": {
        "type": "int",
        "default": 3,
        "description": "Example nodes shown in a consolidated group row",
        "aliases": ["max_examples"]
    },
    "REPORT_MARKUP_LIMIT": {
        "type": "int",
        "default": 100,
        "description": "Characters of markup shown per example node",
        "aliases": ["markup_limit"]
    },

    # CI policy
    "CI_MAX_VIOLATIONS": {
        "type": "int",
        "default": 0,
        "description": "Maximum violated rules allowed per URL",
        "aliases": ["max_violations"]
    },
    "CI_FAIL_ON_VIOLATIONS": {
        "type": "bool",
        "default": True,
        "description": "Fail the CI verdict when the threshold is exceeded",
        "aliases": ["fail_on_violations"]
    },

    # Registry
    "REGISTRY_MAX_RUNS": {
        "type": "int",
        "default": 50,
        "description": "Terminal runs retained in memory before eviction",
        "aliases": ["max_runs"]
    },

    # General
    "OUTPUT_DIR": {
        "type": "path",
        "default": "~/axebatch/output",
        "description": "Base directory for run output",
        "aliases": ["output_dir"]
    },
    "LOG_LEVEL": {
        "type": "str",
        "default": "INFO",
        "description": "Default log level",
        "allowed_values": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        "aliases": ["log_level"]
    },
    "LOG_DIR": {
        "type": "path",
        "default": None,
        "description": "Log directory (defaults to OUTPUT_DIR/logs)",
        "aliases": ["log_dir"]
    },
    "DEBUG": {
        "type": "bool",
        "default": False,
        "description": "Enable debug mode",
        "aliases": ["debug"]
    },
}


class ConfigurationManager:
    """
    Centralized configuration manager combining several sources:
    - Command line arguments (highest priority)
    - Configuration file (.json, .yaml, key=value)
    - Schema defaults (lowest priority)
    """

    def __init__(
        self,
        project_name: str = "axebatch",
        config_file: Optional[Union[str, Path]] = None,
        config_schema: Optional[Dict[str, Dict[str, Any]]] = None,
        cli_args: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the configuration manager.

        Args:
            project_name: Project name
            config_file: Path to the configuration file
            config_schema: Custom configuration schema
            cli_args: Command line arguments
        """
        self.project_name = project_name
        self.config_file = self._find_config_file(config_file)
        self.cli_args = {k: v for k, v in (cli_args or {}).items() if v is not None}

        self.config_schema = config_schema or DEFAULT_CONFIG_SCHEMA.copy()
        self.aliases = self._build_alias_mapping()

        # Simple logger set up directly, get_logger() depends on this class
        self.logger = logging.getLogger(f"{project_name}.config")
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)
            self.logger.propagate = False


        self._file_config: Dict[str, Any] = {}
        self._config_cache: Dict[str, Any] = {}
        self.debug_mode = False

        self.reload_config()

        self.logger.debug(f"ConfigurationManager initialized: {project_name}")
        self.logger.debug(f"Configuration file: {self.config_file}")

    def _build_alias_mapping(self) -> Dict[str, str]:
        """Build a mapping from alias to standard key."""
        aliases = {}
        for key, config in self.config_schema.items():
            for alias in config.get("aliases", []):
                aliases[alias] = key
        return aliases

    def _find_config_file(self, config_file: Optional[Union[str, Path]]) -> Optional[Path]:
        if config_file:
            return Path(config_file)
        search_paths = [
            Path.cwd() / 'axebatch.json',
            Path.cwd() / 'axebatch.yaml',
            Path.cwd() / 'axebatch.yml',
            Path.home() / '.config' / 'axebatch' / 'config.yaml',
        ]
        for path in search_paths:
            if path.exists():
                return path
        return None

    def reload_config(self) -> bool:
        """Reload every configuration source."""
        self._config_cache = {}
        self._load_file_config()
        self.logger.debug("Configuration reloaded")
        return True

    def _load_file_config(self) -> Dict[str, Any]:
        """Load the configuration file."""
        self._file_config = {}
        if not self.config_file or not self.config_file.exists():
            return {}
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                if self.config_file.suffix.lower() == '.json':
                    self._file_config = json.load(f) or {}
                elif self.config_file.suffix.lower() in ('.yaml', '.yml'):
                    self._file_config = yaml.safe_load(f) or {}
                else:
                    # key=value file
                    for line in f:
                        line = line.strip()
                        if not line or line.startswith('#'):
                            continue
                        if '=' in line:
                            key, value = line.split('=', 1)
                            self._file_config[key.strip()] = value.strip()
            if self.debug_mode:
                self.logger.debug(f"Loaded configuration from file: {self.config_file}")
            return self._file_config
        except Exception as e:
            self.logger.error(f"Error loading configuration file {self.config_file}: {e}")
            self._file_config = {}
            return {}

    def _normalize_key(self, key: str) -> str:
        """Normalize a configuration key through the alias table."""
        if key in self.config_schema:
            return key
        if key in self.aliases:
            standardized = self.aliases[key]
            if self.debug_mode:
                self.logger.debug(f"Normalized alias '{key}' to '{standardized}'")
            return standardized
        return key

    def get(
        self,
        key: str,
        default: Optional[T] = None,
        transform: Optional[Callable[[Any], T]] = None,
        use_cache: bool = True
    ) -> T:
        """
        Get a configuration value honouring source priority.

        Priority order:
        1. Command line arguments
        2. Configuration file
        3. Schema default
        4. Provided default
        """
        std_key = self._normalize_key(key)

        cache_key = f"{std_key}_{key}"
        if not use_cache and cache_key in self._config_cache:
            del self._config_cache[cache_key]
        if use_cache and cache_key in self._config_cache:
            return self._config_cache[cache_key]

        schema_default = None
        if std_key in self.config_schema:
            schema_default = self.config_schema[std_key].get('default')

        final_default = default if default is not None else schema_default

        if std_key in self.cli_args:
            value = self.cli_args[std_key]
            source = "CLI args (std key)"
        elif key in self.cli_args:
            value = self.cli_args[key]
            source = "CLI args (alias)"
        else:
            file_value = None

            # Nested lookup (e.g. "audit.timeout")
            if '.' in std_key:
                config = self._file_config
                for part in std_key.split('.'):
                    if not isinstance(config, dict) or part not in config:
                        config = None
                        break
                    config = config[part]
                file_value = config
            else:
                if std_key in self._file_config:
                    file_value = self._file_config[std_key]
                elif key in self._file_config:
                    file_value = self._file_config[key]
                else:
                    # Aliases used as file keys
                    for alias, target in self.aliases.items():
                        if target == std_key and alias in self._file_config:
                            file_value = self._file_config[alias]
                            break

            if file_value is not None:
                value = file_value
                source = "config file"
            else:
                value = final_default
                source = "default value"

        if transform and value is not None:
            try:
                value = transform(value)
            except Exception as e:
                self.logger.warning(f"Error transforming value for {key}: {e}")
                value = final_default

        # Schema validation
        if std_key in self.config_schema:
            schema = self.config_schema[std_key]

            expected_type = schema.get('type')
            if expected_type == 'int' and not isinstance(value, int):
                try:
                    value = int(value)
                except (ValueError, TypeError):
                    self.logger.warning(f"Invalid type for {std_key} (expected int): {value}")
                    value = schema.get('default')
            elif expected_type == 'bool' and not isinstance(value, bool):
                if isinstance(value, str):
                    value = value.lower() in ('1', 'true', 'yes', 'y', 'on')
                else:
                    value = bool(value)
            elif expected_type == 'float' and not isinstance(value, float):
                try:
                    value = float(value)
                except (ValueError, TypeError):
                    self.logger.warning(f"Invalid type for {std_key} (expected float): {value}")
                    value = schema.get('default')

            allowed_values = schema.get('allowed_values')
            if allowed_values and value not in allowed_values:
                self.logger.warning(f"Invalid value for {std_key}: {value}. Allowed values: {allowed_values}")
                value = schema.get('default')

        if self.debug_mode:
            self.logger.debug(f"Config get: {key} ({std_key}) = {value} (from {source})")

        self._config_cache[cache_key] = value
        return value

    def get_bool(self, key: str, default: bool = None) -> bool:
        """
        Get a boolean value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Boolean value
        """
        schema_default = None
        std_key = self._normalize_key(key)

        if std_key in self.config_schema and self.config_schema[std_key]['type'] == 'bool':
            schema_default = self.config_schema[std_key].get('default')

        final_default = default if default is not None else schema_default

        return self.get(key, final_default, lambda v: self._to_bool(v, final_default))

    def _to_bool(self, value: Any, default: bool) -> bool:
        """Convert a value to bool."""
        if isinstance(value, bool):
            return value

        if isinstance(value, str):
            value = value.lower()
            if value in ('1', 'true', 'yes', 'y', 'on'):
                return True
            if value in ('0', 'false', 'no', 'n', 'off'):
                return False

        return bool(value) if value is not None else default

    def get_int(self, key: str, default: int = None) -> int:
        """
        Get an integer value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Integer value
        """
        schema_default = None
        std_key = self._normalize_key(key)

        if std_key in self.config_schema and self.config_schema[std_key]['type'] == 'int':
            schema_default = self.config_schema[std_key].get('default')

        final_default = default if default is not None else schema_default

        try:
            return int(self.get(key, final_default))
        except (ValueError, TypeError):
            return final_default

    def get_float(self, key: str, default: float = None) -> float:
        """
        Get a float value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Float value
        """
        schema_default = None
        std_key = self._normalize_key(key)

        if std_key in self.config_schema and self.config_schema[std_key]['type'] == 'float':
            schema_default = self.config_schema[std_key].get('default')

        final_default = default if default is not None else schema_default

        try:
            return float(self.get(key, final_default))
        except (ValueError, TypeError):
            return final_default

    def get_list(
        self,
        key: str,
        default: Optional[List[str]] = None,
        separator: str = ','
    ) -> List[str]:
        """
        Get a list value.

        Args:
            key: Configuration key
            default: Default value if not found
            separator: Separator used to split string values

        Returns:
            List value
        """
        schema_default = None
        std_key = self._normalize_key(key)

        if std_key in self.config_schema and self.config_schema[std_key]['type'] == 'list':
            schema_default = self.config_schema[std_key].get('default')

        final_default = default if default is not None else schema_default
        if final_default is None:
            final_default = []

        return self.get(key, final_default, lambda v: self._to_list(v, separator, final_default))

    def _to_list(self, value: Any, separator: str, default: List[str]) -> List[str]:
        """Convert a value to list."""
        if isinstance(value, (list, tuple, set, frozenset)):
            return list(value)

        if isinstance(value, str):
            if value in ('[]', '""', "''", ''):
                return []
            return [item.strip() for item in value.split(separator) if item.strip()]

        return default

    def get_path(
        self,
        key: str,
        default: Optional[Union[str, Path]] = None,
        create: bool = False
    ) -> Path:
        """
        Get a path, expanding variables and creating the directory if requested.

        Args:
            key: Configuration key
            default: Default value if not found
            create: Whether to create the directory

        Returns:
            Path
        """
        schema_default = None
        std_key = self._normalize_key(key)

        if std_key in self.config_schema and self.config_schema[std_key]['type'] == 'path':
            schema_default = self.config_schema[std_key].get('default')

        final_default = default if default is not None else schema_default

        path = self.get(key, final_default, lambda v: Path(os.path.expandvars(str(v))).expanduser())

        if create and path:
            try:
                os.makedirs(path, exist_ok=True)
                if self.debug_mode:
                    self.logger.debug(f"Directory created: {path}")
            except Exception as e:
                self.logger.error(f"Error creating directory {path}: {e}")

        return path

    def get_wcag_tags(self, preset: Optional[str] = None) -> List[str]:
        """
        Resolve the rule-engine tag filter.

        A known preset name expands to its tag list; any other value is
        treated as a comma separated tag list.
        """
        if preset:
            if preset in WCAG_PRESETS:
                return list(WCAG_PRESETS[preset])
            return self._to_list(preset, ',', [])
        return self.get_list("AXE_WCAG_TAGS")

    def get_run_config(self) -> Dict[str, Any]:
        """Settings consumed by the run coordinator and evidence capturer."""
        max_evidence = self.get_int("EVIDENCE_MAX_PER_VIOLATION")
        return {
            "wcag_tags": self.get_wcag_tags(),
            "page_timeout": self.get_float("AXE_PAGE_TIMEOUT"),
            "sleep_time": self.get_float("AXE_SLEEP_TIME"),
            "headless": self.get_bool("AXE_HEADLESS"),
            "capture_evidence": self.get_bool("AXE_CAPTURE_EVIDENCE"),
            "continue_on_failure": self.get_bool("CONTINUE_ON_FAILURE"),
            "evidence_padding": self.get_int("EVIDENCE_PADDING"),
            "evidence_settle_delay": self.get_float("EVIDENCE_SETTLE_DELAY"),
            "max_evidence_per_violation": max_evidence if max_evidence and max_evidence > 0 else None,
            "registry_max_runs": self.get_int("REGISTRY_MAX_RUNS"),
        }

    def get_report_config(self) -> Dict[str, Any]:
        """Settings consumed by the report consolidator."""
        return {
            "max_examples": self.get_int("REPORT_MAX_EXAMPLES"),
            "markup_limit": self.get_int("REPORT_MARKUP_LIMIT"),
        }

    def get_ci_config(self) -> Dict[str, Any]:
        """Settings consumed by the CI verdict."""
        return {
            "max_violations": self.get_int("CI_MAX_VIOLATIONS"),
            "fail_on_violations": self.get_bool("CI_FAIL_ON_VIOLATIONS"),
        }

    def get_logging_config(self) -> Dict[str, Any]:
        """
        Get the logging configuration.

        Returns:
            Logging configuration with per-component levels
        """
        output_root = self.get_path("OUTPUT_DIR")
        log_dir = self.get_path("LOG_DIR", output_root / "logs")
        level = self.get("LOG_LEVEL", "INFO")

        components = {}
        for component in ("pipeline", "run_coordinator", "evidence", "report_consolidator", "exporters"):
            components[component] = {
                "level": self.get(f"{component.upper()}_LOG_LEVEL", level),
                "log_file": f"{component}.log",
                "log_dir": str(log_dir),
            }

        return {
            "level": level,
            "format": self.get("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            "date_format": self.get("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S"),
            "log_dir": str(log_dir),
            "console_output": self.get_bool("LOG_CONSOLE", True),
            "rotating_logs": self.get_bool("LOG_ROTATING", True),
            "components": components,
        }

    def set_debug_mode(self, enabled: bool = True) -> None:
        """
        Enable or disable debug mode.

        Args:
            enabled: Whether debug mode is on
        """
        self.debug_mode = enabled
        if enabled:
            self.logger.setLevel(logging.DEBUG)
            self.logger.debug("Debug mode enabled")
        else:
            self.logger.setLevel(logging.INFO)
            self.logger.info("Debug mode disabled")

    def dump_config(self) -> Dict[str, Any]:
        """
        Export the whole configuration as a dictionary.

        Returns:
            Dictionary with sources and computed values
        """
        config = {
            "cli_args": self.cli_args,
            "file_config": self._file_config,
            "computed": {}
        }

        config["computed"]["output_dir"] = str(self.get_path("OUTPUT_DIR"))
        config["computed"]["run"] = self.get_run_config()
        config["computed"]["report"] = self.get_report_config()
        config["computed"]["ci"] = self.get_ci_config()

        for key in self.config_schema.keys():
            value = self.get(key)
            config["computed"][key] = str(value) if isinstance(value, Path) else value

        return config

    def log_config_summary(self) -> None:
        """Log a configuration summary."""
        run_config = self.get_run_config()
        self.logger.info("=== Configuration summary ===")
        self.logger.info(f"Configuration file: {self.config_file}")
        self.logger.info(f"Output directory: {self.get_path('OUTPUT_DIR')}")
        self.logger.info(f"WCAG tags: {', '.join(run_config['wcag_tags'])}")
        self.logger.info(f"Page timeout: {run_config['page_timeout']}s")
        self.logger.info(f"Continue on failure: {run_config['continue_on_failure']}")
        self.logger.info(f"Capture evidence: {run_config['capture_evidence']}")
        self.logger.info(f"CI max violations: {self.get_int('CI_MAX_VIOLATIONS')}")
