import json
from pathlib import Path

from a11yscan.heuristics.registry import default_registry
from a11yscan.scanner.pipeline import ScanOptions
from a11yscan.utils.config_manager import ConfigurationManager

YAML_CONFIG = """
max_pages: 25
device: mobile
sleep_time: 0.5
SCORE_WEIGHT_CRITICAL: 8
disabled_tests:
  - carousel-autoplay
heuristics:
  landmarks:
    severity: minor
  skip-link:
    timeout: 4
"""


def manager(tmp_path, content=None, name="a11yscan.yaml", cli_args=None):
    path = tmp_path / name
    if content is not None:
        path.write_text(content, encoding="utf-8")
    return ConfigurationManager(config_file=path, cli_args=cli_args)


def test_schema_defaults(tmp_path):
    config = manager(tmp_path)
    assert config.get_int("CRAWLER_MAX_PAGES") == 10
    assert config.get("SCAN_DEVICE") == "desktop"
    assert config.get_bool("CRAWLER_USE_SITEMAP") is False
    assert config.get_scoring_config() == {"critical": 5.0, "serious": 3.0, "moderate": 1.0, "minor": 0.5}
    assert config.get_focus_config()["trap_lookback"] == 5


def test_yaml_file_with_aliases(tmp_path):
    config = manager(tmp_path, YAML_CONFIG)
    assert config.get_crawler_config()["max_pages"] == 25
    assert config.get_scan_config()["device"] == "mobile"
    assert config.get_scan_config()["settle_time"] == 0.5
    assert config.get_scoring_config()["critical"] == 8.0


def test_cli_args_win_over_file(tmp_path):
    config = manager(tmp_path, YAML_CONFIG, cli_args={"CRAWLER_MAX_PAGES": 3, "SCAN_DEVICE": None})
    assert config.get_int("CRAWLER_MAX_PAGES") == 3
    # None values are not overrides
    assert config.get("SCAN_DEVICE") == "mobile"


def test_invalid_values_fall_back_to_defaults(tmp_path):
    config = manager(tmp_path, "device: smartwatch\nmax_pages: lots\n")
    assert config.get("SCAN_DEVICE") == "desktop"
    assert config.get_int("CRAWLER_MAX_PAGES") == 10


def test_key_value_file(tmp_path):
    config = manager(tmp_path, "# local overrides\nSCAN_HEADLESS=no\nCRAWLER_SITEMAP_KEYWORDS=contact, about\n",
                     name="a11yscan.cfg")
    assert config.get_bool("SCAN_HEADLESS") is False
    assert config.get_list("CRAWLER_SITEMAP_KEYWORDS") == ["contact", "about"]


def test_json_file(tmp_path):
    config = manager(tmp_path, json.dumps({"LINK_CHECK_MAX_LINKS": 5, "check_links": False}), name="a11yscan.json")
    links = config.get_link_check_config()
    assert links["max_links"] == 5
    assert links["enabled"] is False
    assert config.get_scan_config()["check_links"] is False


def test_heuristics_overrides_feed_the_registry(tmp_path):
    config = manager(tmp_path, YAML_CONFIG)
    heuristics = config.get_heuristics_config()
    assert heuristics["tests"]["carousel-autoplay"] == {"enabled": False}
    assert heuristics["tests"]["landmarks"] == {"severity": "minor"}
    assert heuristics["default_timeout"] == 20.0

    registry = default_registry(heuristics, config.get_focus_config())
    assert "carousel-autoplay" not in registry.ids()
    assert registry.get("landmarks").severity == "minor"
    assert registry.get("skip-link").timeout == 4


def test_nested_lookup(tmp_path):
    config = manager(tmp_path, YAML_CONFIG)
    assert config.get_nested("heuristics.landmarks.severity") == "minor"
    assert config.get_nested("heuristics.unknown.severity", "moderate") == "moderate"


def test_scan_options_from_file(tmp_path):
    options = ScanOptions.from_config(manager(tmp_path, YAML_CONFIG))
    assert options.device == "mobile"
    assert options.settle_time == 0.5
    assert options.navigation_timeout == 30.0


def test_logging_config_under_output_dir(tmp_path):
    config = manager(tmp_path, cli_args={"OUTPUT_DIR": str(tmp_path / "out"), "LOG_LEVEL": "DEBUG"})
    logging_config = config.get_logging_config()
    assert Path(logging_config["log_dir"]) == tmp_path / "out" / "logs"
    assert logging_config["level"] == "DEBUG"
    assert logging_config["components"]["crawler"]["log_file"] == "crawler.log"


def test_reload_picks_up_changes(tmp_path):
    config = manager(tmp_path, "max_pages: 4\n")
    assert config.get_int("CRAWLER_MAX_PAGES") == 4
    (tmp_path / "a11yscan.yaml").write_text("max_pages: 6\n", encoding="utf-8")
    config.reload_config()
    assert config.get_int("CRAWLER_MAX_PAGES") == 6
