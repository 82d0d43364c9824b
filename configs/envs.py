from pathlib import Path

from tclogger import OSEnver

configs_root = Path(__file__).parents[1] / "configs"
envs_path = configs_root / "envs.json"
ENVS_ENVER = OSEnver(envs_path)
FEED_APP_ENVS = ENVS_ENVER["feed_app"]

# Overrides of ranks.weights.RankingWeights; empty means built-in defaults
RANKING_ENVS = ENVS_ENVER["ranking"] or {}
