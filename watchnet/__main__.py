"""진입점: python -m watchnet"""

from __future__ import annotations

import argparse
import asyncio

import yaml


def main() -> None:
    """watchnet CLI 진입점. 설정을 로드하고 감시 루프를 실행한다."""
    parser = argparse.ArgumentParser(
        prog="watchnet",
        description="watchnet - Cloud NAT port exhaustion diagnostics",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration YAML file (default: config/default.yaml)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds to wait between cycles (overrides service.interval_seconds)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sample-and-report cycle and exit",
    )
    args = parser.parse_args()

    from watchnet.app import WatchNet
    from watchnet.sampler.parser import ParseError
    from watchnet.sampler.ss import SamplerError
    from watchnet.utils.config import Config

    try:
        config = Config.load(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        parser.exit(1, f"watchnet: {exc}\n")

    if args.interval is not None:
        config.section("service")["interval_seconds"] = args.interval

    try:
        app = WatchNet(config)
        asyncio.run(app.run(once=args.once))
    except KeyboardInterrupt:
        pass
    except (SamplerError, ParseError, OSError, ValueError) as exc:
        parser.exit(1, f"watchnet: {exc}\n")


if __name__ == "__main__":
    main()
