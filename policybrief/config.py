import os
from pathlib import Path

import yaml


CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

GNEWS_DEFAULTS = {
    "lang": "en",
    "country": "us",
    "general_max": 20,
    "politics_max": 6,
    "timeout": 15,
    "request_delay": 1.0,
    "query": None,
}


def load_config(path: Path = CONFIG_PATH) -> dict:
    """Load config.yaml, with env var overrides and defaults filled in."""
    with open(path) as f:
        cfg = yaml.safe_load(f) or {}

    # Env vars take precedence for API keys
    env_key = os.environ.get("ANTHROPIC_API_KEY")
    if env_key:
        cfg["anthropic_api_key"] = env_key
    gnews_key = os.environ.get("GNEWS_API_KEY")
    if gnews_key:
        cfg["gnews_api_key"] = gnews_key

    # Resolve db_path relative to project root
    project_root = Path(__file__).parent.parent
    cfg["db_path"] = str(project_root / cfg.get("db_path", "data/policybrief.db"))

    # Defaults
    cfg.setdefault("anthropic_api_key", "")
    cfg.setdefault("gnews_api_key", "")
    cfg.setdefault("model", "claude-sonnet-4-5-20250929")
    cfg.setdefault("max_candidates", 20)
    cfg.setdefault("num_analyzed", 6)
    cfg.setdefault("max_retries", 3)
    cfg.setdefault("retry_delay", 1.5)
    cfg.setdefault("dedup_threshold", 0.75)
    cfg.setdefault("min_words", 100)
    cfg.setdefault("max_words", 250)
    cfg.setdefault("year_lookback", 5)
    cfg.setdefault("max_tokens", 600)
    cfg.setdefault("temperature", 0.4)
    cfg.setdefault("feeds", [])
    cfg.setdefault("feed_timeout", 15)
    cfg.setdefault("max_items_per_feed", 20)
    cfg["rss_output_path"] = str(project_root / cfg.get("rss_output_path", "data/edition.xml"))
    cfg.setdefault("track_trends", True)

    gnews = dict(GNEWS_DEFAULTS)
    gnews.update(cfg.get("gnews") or {})
    cfg["gnews"] = gnews

    return cfg


def save_config(cfg: dict, path: Path = CONFIG_PATH):
    """Write config dict back to config.yaml."""
    to_save = dict(cfg)
    # Secrets come from the environment, never the file
    for key in ("anthropic_api_key", "gnews_api_key"):
        to_save.pop(key, None)
    project_root = Path(__file__).parent.parent
    for key in ("db_path", "rss_output_path"):
        try:
            to_save[key] = str(Path(to_save[key]).relative_to(project_root))
        except (ValueError, KeyError):
            pass
    with open(path, "w") as f:
        yaml.dump(to_save, f, default_flow_style=False, sort_keys=False)
