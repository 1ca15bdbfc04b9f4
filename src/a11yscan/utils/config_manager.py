# src/a11yscan/utils/config_manager.py
import os
import json
import yaml
import logging
import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, TypeVar, Callable

from .config_schema_additions import CONFIG_SCHEMA_ADDITIONS

T = TypeVar('T')
_CONFIG_MANAGER_INSTANCE = None
_INITIALIZING = False  # Flag to prevent recursion


def get_config_manager(project_name="a11yscan", config_file=None, cli_args=None):
    global _CONFIG_MANAGER_INSTANCE, _INITIALIZING
    if _CONFIG_MANAGER_INSTANCE is None and not _INITIALIZING:
        _INITIALIZING = True
        try:
            _CONFIG_MANAGER_INSTANCE = ConfigurationManager(project_name, config_file, cli_args=cli_args)
        finally:
            _INITIALIZING = False
    return _CONFIG_MANAGER_INSTANCE


def reset_config_manager() -> None:
    """Drop the process-wide instance (used by the CLI on re-entry and by tests)."""
    global _CONFIG_MANAGER_INSTANCE
    _CONFIG_MANAGER_INSTANCE = None


DEVICE_CHOICES = ["desktop", "mobile", "tablet"]

DEFAULT_CONFIG_SCHEMA = {
    # Crawler
    "CRAWLER_MAX_PAGES": {
        "type": "int",
        "default": 10,
        "description": "Maximum number of pages scanned per crawl",
        "aliases": ["max_pages", "max_urls"]
    },
    "CRAWLER_USE_SITEMAP": {
        "type": "bool",
        "default": False,
        "description": "Seed the frontier with same-host sitemap.xml entries",
        "aliases": ["use_sitemap"]
    },
    "CRAWLER_SITEMAP_KEYWORDS": {
        "type": "list",
        "default": ["contact", "about", "login", "register", "search", "cart", "checkout", "account"],
        "description": "Sitemap URLs containing these keywords are scanned first"
    },

    # Scan
    "SCAN_DEVICE": {
        "type": "str",
        "default": "desktop",
        "description": "Device profile applied before measurement",
        "aliases": ["device"],
        "allowed_values": DEVICE_CHOICES
    },
    "SCAN_HEADLESS": {
        "type": "bool",
        "default": True,
        "description": "Run Chrome in headless mode",
        "aliases": ["headless"]
    },
    "SCAN_CAPTURE_SCREENSHOT": {
        "type": "bool",
        "default": True,
        "description": "Capture a full-page screenshot",
        "aliases": ["screenshot"]
    },
    "SCAN_CAPTURE_HTML": {
        "type": "bool",
        "default": False,
        "description": "Keep an HTML snapshot of the scanned page",
        "aliases": ["capture_html"]
    },
    "SCAN_DISMISS_CONSENT": {
        "type": "bool",
        "default": True,
        "description": "Try to dismiss cookie consent banners",
        "aliases": ["dismiss_consent"]
    },
    "SCAN_COLLECT_PERFORMANCE": {
        "type": "bool",
        "default": True,
        "description": "Collect navigation and paint timings"
    },
    "SCAN_ANALYZE_HEADINGS": {
        "type": "bool",
        "default": True,
        "description": "Build the heading structure sub-report"
    },
    "SCAN_SETTLE_TIME": {
        "type": "float",
        "default": 1.0,
        "description": "Seconds to wait after navigation before auditing",
        "aliases": ["sleep_time"]
    },

    # Timeouts (seconds)
    "NAVIGATION_TIMEOUT": {
        "type": "float",
        "default": 30.0,
        "description": "Page load timeout",
        "aliases": ["navigation_timeout"]
    },
    "AUDIT_ENGINE_TIMEOUT": {
        "type": "float",
        "default": 25.0,
        "description": "Timeout for injecting and running the audit engine"
    },
    "SCREENSHOT_TIMEOUT": {
        "type": "float",
        "default": 10.0,
        "description": "Timeout for screenshot and HTML capture"
    },
    "CONSENT_TIMEOUT": {
        "type": "float",
        "default": 5.0,
        "description": "Timeout for consent banner dismissal"
    },

    # General
    "OUTPUT_DIR": {
        "type": "path",
        "default": "~/a11yscan/output",
        "description": "Base output directory"
    },
    "LOG_LEVEL": {
        "type": "str",
        "default": "INFO",
        "description": "Default log level",
        "aliases": ["log_level"],
        "allowed_values": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    },
}


class ConfigurationManager:
    """
    Centralized configuration combining several sources:
    - command line arguments (highest priority)
    - configuration file (.json, .yaml, key=value)
    - schema defaults (lowest priority)
    """

    def __init__(
        self,
        project_name: str = "a11yscan",
        config_file: Optional[Union[str, Path]] = None,
        config_schema: Optional[Dict[str, Dict[str, Any]]] = None,
        cli_args: Optional[Dict[str, Any]] = None
    ):
        self.project_name = project_name
        self.config_file = self._find_config_file(config_file)
        self.cli_args = {k: v for k, v in (cli_args or {}).items() if v is not None}

        base_schema = DEFAULT_CONFIG_SCHEMA.copy()
        base_schema.update(CONFIG_SCHEMA_ADDITIONS)
        self.config_schema = config_schema or base_schema

        self.aliases = self._build_alias_mapping()

        # Plain logger: get_logger() itself reads this manager
        self.logger = logging.getLogger(f"{project_name}.config")
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)
            self.logger.propagate = False

        self.init_time = datetime.datetime.now()
        self._file_config: Dict[str, Any] = {}
        self._config_cache: Dict[str, Any] = {}
        self.debug_mode = False

        self.reload_config()
        self.logger.debug(f"ConfigurationManager initialized: {project_name} (file: {self.config_file})")

    def _build_alias_mapping(self) -> Dict[str, str]:
        aliases = {}
        for key, config in self.config_schema.items():
            for alias in config.get("aliases", []):
                aliases[alias] = key
        return aliases

    def _find_config_file(self, config_file: Optional[Union[str, Path]]) -> Optional[Path]:
        if config_file:
            return Path(config_file)
        search_paths = [
            Path.cwd() / 'a11yscan.json',
            Path.cwd() / 'a11yscan.yaml',
            Path.cwd() / 'a11yscan.yml',
            Path.home() / '.a11yscan' / 'config.yaml',
        ]
        for path in search_paths:
            if path.exists():
                return path
        return None

    def reload_config(self) -> bool:
        """Reload the configuration file and clear the cache."""
        self._config_cache = {}
        self._load_file_config()
        return True

    def _load_file_config(self) -> Dict[str, Any]:
        self._file_config = {}
        if not self.config_file or not self.config_file.exists():
            return {}
        try:
            with open(self.config_file, 'r') as f:
                suffix = self.config_file.suffix.lower()
                if suffix == '.json':
                    self._file_config = json.load(f) or {}
                elif suffix in ('.yaml', '.yml'):
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
            self.logger.debug(f"Loaded configuration from file: {self.config_file}")
            return self._file_config
        except (OSError, ValueError, yaml.YAMLError) as e:
            self.logger.error(f"Error loading configuration file {self.config_file}: {e}")
            return {}

    def _normalize_key(self, key: str) -> str:
        if key in self.config_schema:
            return key
        return self.aliases.get(key, key)

    def _lookup_file_value(self, std_key: str, key: str) -> Any:
        if '.' in std_key:
            config = self._file_config
            for part in std_key.split('.'):
                if not isinstance(config, dict) or part not in config:
                    return None
                config = config[part]
            return config
        if std_key in self._file_config:
            return self._file_config[std_key]
        if key in self._file_config:
            return self._file_config[key]
        for alias in self.config_schema.get(std_key, {}).get("aliases", []):
            if alias in self._file_config:
                return self._file_config[alias]
        return None

    def get(
        self,
        key: str,
        default: Optional[T] = None,
        transform: Optional[Callable[[Any], T]] = None,
        use_cache: bool = True
    ) -> T:
        """
        Get a configuration value.

        Priority:
        1. Command line arguments
        2. Configuration file
        3. Default passed by the caller
        4. Schema default
        """
        std_key = self._normalize_key(key)

        cache_key = f"{std_key}_{key}"
        if use_cache and cache_key in self._config_cache:
            return self._config_cache[cache_key]

        schema_default = None
        if std_key in self.config_schema:
            schema_default = self.config_schema[std_key].get('default')
        final_default = default if default is not None else schema_default

        if std_key in self.cli_args:
            value, source = self.cli_args[std_key], "CLI args (std key)"
        elif key in self.cli_args:
            value, source = self.cli_args[key], "CLI args (alias)"
        else:
            file_value = self._lookup_file_value(std_key, key)
            if file_value is not None:
                value, source = file_value, "config file"
            else:
                value, source = final_default, "default value"

        if transform and value is not None:
            try:
                value = transform(value)
            except (ValueError, TypeError) as e:
                self.logger.warning(f"Error transforming value for {key}: {e}")
                value = final_default

        if std_key in self.config_schema:
            value = self._validate(std_key, value)

        if self.debug_mode:
            self.logger.debug(f"Config get: {key} ({std_key}) = {value} (from {source})")

        self._config_cache[cache_key] = value
        return value

    def _validate(self, std_key: str, value: Any) -> Any:
        schema = self.config_schema[std_key]
        expected_type = schema.get('type')
        if expected_type == 'int' and not isinstance(value, int):
            try:
                value = int(value)
            except (ValueError, TypeError):
                self.logger.warning(f"Invalid value for {std_key} (expected int): {value}")
                value = schema.get('default')
        elif expected_type == 'bool' and not isinstance(value, bool):
            value = self._to_bool(value, schema.get('default'))
        elif expected_type == 'float' and not isinstance(value, float):
            try:
                value = float(value)
            except (ValueError, TypeError):
                self.logger.warning(f"Invalid value for {std_key} (expected float): {value}")
                value = schema.get('default')
        elif expected_type == 'dict' and not isinstance(value, dict):
            self.logger.warning(f"Invalid value for {std_key} (expected mapping): {value}")
            value = schema.get('default')

        allowed_values = schema.get('allowed_values')
        if allowed_values and value not in allowed_values:
            self.logger.warning(f"Invalid value for {std_key}: {value}. Allowed values: {allowed_values}")
            value = schema.get('default')
        return value

    def _typed_default(self, key: str, type_name: str, default: Any) -> Any:
        if default is not None:
            return default
        std_key = self._normalize_key(key)
        schema = self.config_schema.get(std_key)
        if schema and schema.get('type') == type_name:
            return schema.get('default')
        return None

    def get_bool(self, key: str, default: bool = None) -> bool:
        final_default = self._typed_default(key, 'bool', default)
        return self.get(key, final_default, lambda v: self._to_bool(v, final_default))

    def _to_bool(self, value: Any, default: bool) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in ('1', 'true', 'yes', 'y', 'on'):
                return True
            if lowered in ('0', 'false', 'no', 'n', 'off'):
                return False
            return default
        return bool(value) if value is not None else default

    def get_int(self, key: str, default: int = None) -> int:
        final_default = self._typed_default(key, 'int', default)
        try:
            return int(self.get(key, final_default))
        except (ValueError, TypeError):
            return final_default

    def get_float(self, key: str, default: float = None) -> float:
        final_default = self._typed_default(key, 'float', default)
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
        final_default = self._typed_default(key, 'list', default)
        if final_default is None:
            final_default = []
        return self.get(key, final_default, lambda v: self._to_list(v, separator, final_default))

    def _to_list(self, value: Any, separator: str, default: List[str]) -> List[str]:
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            if value in ('[]', '""', "''", ''):
                return []
            return [item.strip() for item in value.split(separator) if item.strip()]
        return default

    def get_dict(self, key: str, default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        final_default = self._typed_default(key, 'dict', default)
        value = self.get(key, final_default)
        return value if isinstance(value, dict) else (final_default or {})

    def get_path(
        self,
        key: str,
        default: Optional[Union[str, Path]] = None,
        create: bool = False
    ) -> Path:
        final_default = self._typed_default(key, 'path', default)
        path = self.get(key, final_default, lambda v: Path(os.path.expandvars(str(v))).expanduser())

        if create and path:
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                self.logger.error(f"Error creating directory {path}: {e}")
        return path

    def get_nested(self, key_path: str, default: Optional[T] = None) -> T:
        """Nested lookup using dot notation (e.g. "heuristics.skip-link.severity")."""
        return self.get(key_path, default)

    def get_scan_config(self) -> Dict[str, Any]:
        return {
            "device": self.get("SCAN_DEVICE"),
            "headless": self.get_bool("SCAN_HEADLESS"),
            "capture_screenshot": self.get_bool("SCAN_CAPTURE_SCREENSHOT"),
            "capture_html": self.get_bool("SCAN_CAPTURE_HTML"),
            "dismiss_consent": self.get_bool("SCAN_DISMISS_CONSENT"),
            "collect_performance": self.get_bool("SCAN_COLLECT_PERFORMANCE"),
            "analyze_headings": self.get_bool("SCAN_ANALYZE_HEADINGS"),
            "check_links": self.get_bool("LINK_CHECK_ENABLED"),
            "settle_time": self.get_float("SCAN_SETTLE_TIME"),
            "timeouts": {
                "navigation": self.get_float("NAVIGATION_TIMEOUT"),
                "audit_engine": self.get_float("AUDIT_ENGINE_TIMEOUT"),
                "heuristic_test": self.get_float("HEURISTIC_TEST_TIMEOUT"),
                "heuristic_step": self.get_float("HEURISTIC_STEP_TIMEOUT"),
                "screenshot": self.get_float("SCREENSHOT_TIMEOUT"),
                "consent": self.get_float("CONSENT_TIMEOUT"),
                "link_probe": self.get_float("LINK_PROBE_TIMEOUT"),
            },
        }

    def get_focus_config(self) -> Dict[str, Any]:
        return {
            "max_steps": self.get_int("FOCUS_MAX_STEPS"),
            "trap_lookback": self.get_int("FOCUS_TRAP_LOOKBACK"),
            "jump_threshold": self.get_int("FOCUS_JUMP_THRESHOLD_PX"),
            "timeout": self.get_float("FOCUS_TEST_TIMEOUT"),
        }

    def get_scoring_config(self) -> Dict[str, float]:
        return {
            "critical": self.get_float("SCORE_WEIGHT_CRITICAL"),
            "serious": self.get_float("SCORE_WEIGHT_SERIOUS"),
            "moderate": self.get_float("SCORE_WEIGHT_MODERATE"),
            "minor": self.get_float("SCORE_WEIGHT_MINOR"),
        }

    def get_crawler_config(self) -> Dict[str, Any]:
        return {
            "max_pages": self.get_int("CRAWLER_MAX_PAGES"),
            "use_sitemap": self.get_bool("CRAWLER_USE_SITEMAP"),
            "sitemap_keywords": self.get_list("CRAWLER_SITEMAP_KEYWORDS"),
        }

    def get_link_check_config(self) -> Dict[str, Any]:
        return {
            "enabled": self.get_bool("LINK_CHECK_ENABLED"),
            "max_links": self.get_int("LINK_CHECK_MAX_LINKS"),
            "include_external": self.get_bool("LINK_CHECK_INCLUDE_EXTERNAL"),
            "concurrency": self.get_int("LINK_CHECK_CONCURRENCY"),
            "timeout": self.get_float("LINK_PROBE_TIMEOUT"),
        }

    def get_heuristics_config(self) -> Dict[str, Any]:
        """Per-test settings keyed by test id, merged with the disabled list."""
        overrides = self.get_dict("HEURISTICS")
        disabled = set(self.get_list("HEURISTICS_DISABLED"))
        tests: Dict[str, Dict[str, Any]] = {}
        for test_id, settings in overrides.items():
            tests[test_id] = dict(settings or {})
        for test_id in disabled:
            tests.setdefault(test_id, {})["enabled"] = False
        return {
            "default_timeout": self.get_float("HEURISTIC_TEST_TIMEOUT"),
            "step_timeout": self.get_float("HEURISTIC_STEP_TIMEOUT"),
            "autoplay_min_seconds": self.get_float("AUTOPLAY_MIN_SECONDS"),
            "carousel_sample_delay": self.get_float("CAROUSEL_SAMPLE_DELAY"),
            "tests": tests,
        }

    def get_logging_config(self) -> Dict[str, Any]:
        output_root = self.get_path("OUTPUT_DIR")
        log_dir = self.get_path("LOG_DIR", output_root / "logs")
        level = self.get("LOG_LEVEL", "INFO")

        components = {}
        for component in ("pipeline", "browser", "audit_engine", "heuristics", "aggregator",
                          "crawler", "link_checker", "storage", "cli"):
            components[component] = {
                "level": self.get(f"{component.upper()}_LOG_LEVEL", level),
                "log_file": f"{component}.log",
            }

        return {
            "level": level,
            "format": self.get("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            "date_format": self.get("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S"),
            "log_dir": str(log_dir),
            "console_output": self.get_bool("LOG_CONSOLE", True),
            "rotating_logs": self.get_bool("LOG_ROTATING", True),
            "max_bytes": self.get_int("LOG_MAX_BYTES", 10 * 1024 * 1024),  # 10 MB
            "backup_count": self.get_int("LOG_BACKUP_COUNT", 5),
            "components": components,
        }

    def set_debug_mode(self, enabled: bool = True) -> None:
        self.debug_mode = enabled
        self.logger.setLevel(logging.DEBUG if enabled else logging.INFO)

    def dump_config(self) -> Dict[str, Any]:
        """Export every resolved value as a dictionary."""
        config = {
            "cli_args": self.cli_args,
            "file_config": self._file_config,
            "computed": {
                "scan": self.get_scan_config(),
                "focus": self.get_focus_config(),
                "scoring": self.get_scoring_config(),
                "crawler": self.get_crawler_config(),
                "links": self.get_link_check_config(),
            }
        }
        for key in self.config_schema.keys():
            value = self.get(key)
            config["computed"][key] = str(value) if isinstance(value, Path) else value
        return config

    def log_config_summary(self) -> None:
        self.logger.info("=== Configuration summary ===")
        self.logger.info(f"Config file: {self.config_file}")
        self.logger.info(f"Output directory: {self.get_path('OUTPUT_DIR')}")
        self.logger.info(f"Device: {self.get('SCAN_DEVICE')}")
        self.logger.info(f"Max pages: {self.get_int('CRAWLER_MAX_PAGES')}")
        self.logger.info(f"Navigation timeout: {self.get_float('NAVIGATION_TIMEOUT')}s")
        self.logger.info(f"Score weights: {self.get_scoring_config()}")
