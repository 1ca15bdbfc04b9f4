# src/a11yscan/utils/config_schema_additions.py

# Focus-order simulation
FOCUS_CONFIG_SCHEMA = {
    "FOCUS_MAX_STEPS": {
        "type": "int",
        "default": 200,
        "description": "Maximum number of Tab presses during focus-order simulation",
        "aliases": ["focus_max_steps", "max_focus_steps"]
    },
    "FOCUS_TRAP_LOOKBACK": {
        "type": "int",
        "default": 5,
        "description": "Revisiting an element within this many steps confirms a keyboard trap",
        "aliases": ["trap_lookback"]
    },
    "FOCUS_JUMP_THRESHOLD_PX": {
        "type": "int",
        "default": 100,
        "description": "Upward focus movement (px) reported as a visual focus jump",
        "aliases": ["focus_jump_threshold"]
    },
    "FOCUS_TEST_TIMEOUT": {
        "type": "float",
        "default": 25.0,
        "description": "Timeout (s) for the whole focus-order simulation"
    },
}

# Score policy
SCORING_CONFIG_SCHEMA = {
    "SCORE_WEIGHT_CRITICAL": {
        "type": "float",
        "default": 5.0,
        "description": "Score penalty per affected node of a critical violation"
    },
    "SCORE_WEIGHT_SERIOUS": {
        "type": "float",
        "default": 3.0,
        "description": "Score penalty per affected node of a serious violation"
    },
    "SCORE_WEIGHT_MODERATE": {
        "type": "float",
        "default": 1.0,
        "description": "Score penalty per affected node of a moderate violation"
    },
    "SCORE_WEIGHT_MINOR": {
        "type": "float",
        "default": 0.5,
        "description": "Score penalty per affected node of a minor violation"
    },
}

# Heuristic suite
HEURISTICS_CONFIG_SCHEMA = {
    "HEURISTIC_TEST_TIMEOUT": {
        "type": "float",
        "default": 20.0,
        "description": "Default timeout (s) for a single heuristic test",
        "aliases": ["test_timeout"]
    },
    "HEURISTIC_STEP_TIMEOUT": {
        "type": "float",
        "default": 3.0,
        "description": "Timeout (s) for a single in-page evaluation or key press",
        "aliases": ["step_timeout"]
    },
    "HEURISTICS_DISABLED": {
        "type": "list",
        "default": [],
        "description": "Heuristic test ids to skip",
        "aliases": ["disabled_tests"]
    },
    "HEURISTICS": {
        "type": "dict",
        "default": {},
        "description": "Per-test overrides: {test_id: {enabled, severity, timeout}}",
        "aliases": ["heuristics"]
    },
    "AUTOPLAY_MIN_SECONDS": {
        "type": "float",
        "default": 3.0,
        "description": "Unmuted media playing longer than this is reported"
    },
    "CAROUSEL_SAMPLE_DELAY": {
        "type": "float",
        "default": 3.5,
        "description": "Seconds between the two carousel snapshots"
    },
}

# Broken link probing
LINK_CHECK_CONFIG_SCHEMA = {
    "LINK_CHECK_ENABLED": {
        "type": "bool",
        "default": True,
        "description": "Probe links found on each page",
        "aliases": ["check_links"]
    },
    "LINK_CHECK_MAX_LINKS": {
        "type": "int",
        "default": 40,
        "description": "Maximum number of links probed per page",
        "aliases": ["max_links_per_page"]
    },
    "LINK_CHECK_INCLUDE_EXTERNAL": {
        "type": "bool",
        "default": True,
        "description": "Also probe links pointing to other hosts"
    },
    "LINK_CHECK_CONCURRENCY": {
        "type": "int",
        "default": 8,
        "description": "Concurrent link probes"
    },
    "LINK_PROBE_TIMEOUT": {
        "type": "float",
        "default": 5.0,
        "description": "Timeout (s) for a single HEAD/GET probe"
    },
}

CONFIG_SCHEMA_ADDITIONS = {
    **FOCUS_CONFIG_SCHEMA,
    **SCORING_CONFIG_SCHEMA,
    **HEURISTICS_CONFIG_SCHEMA,
    **LINK_CHECK_CONFIG_SCHEMA,
}
