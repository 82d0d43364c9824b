import argparse
import sys

from copy import deepcopy
from tclogger import logger, dict_to_str


class ArgParser(argparse.ArgumentParser):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.add_argument("-s", "--host", type=str, help="Host of feed app")
        self.add_argument("-p", "--port", type=int, help="Port of feed app")
        self.add_argument(
            "-m",
            "--mode",
            type=str,
            default="prod",
            help="Running mode of feed app: prod or dev",
        )
        self.add_argument(
            "-w",
            "--max-workers",
            type=int,
            help="Threads used to score large candidate sets",
        )
        self.add_argument(
            "-t",
            "--cache-ttl",
            type=float,
            help="Seconds a ranked page stays cached",
        )

        self.args, self.unknown_args = self.parse_known_args(sys.argv[1:])

    def update_app_envs(self, app_envs: dict) -> dict:
        """Resolve per-mode values (e.g. {"port": {"prod": ..}}) and CLI overrides."""
        new_app_envs = deepcopy(app_envs)
        mode = self.args.mode
        new_app_envs["mode"] = mode
        for key, val in app_envs.items():
            if isinstance(val, dict) and mode in val.keys():
                new_app_envs[key] = val[mode]

        overrides = {
            "host": self.args.host,
            "port": self.args.port,
            "max_workers": self.args.max_workers,
            "cache_ttl": self.args.cache_ttl,
        }
        for key, val in overrides.items():
            if val is not None:
                new_app_envs[key] = val

        self.new_app_envs = new_app_envs

        logger.note("App Envs:")
        logger.mesg(dict_to_str(new_app_envs), indent=4)

        return new_app_envs
