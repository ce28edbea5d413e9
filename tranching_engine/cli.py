from __future__ import annotations

import argparse
import logging
import sys

from .config import EngineSettings
from .errors import ConfigurationError
from .runner import run_tranching_pack


def main(argv=None):
    settings = EngineSettings.from_env()

    p = argparse.ArgumentParser(description="CDO/CLO Tranching Waterfall Engine")
    p.add_argument("--input", required=True, help="Input Excel file (Deal, Tranches, Cashflows sheets)")
    p.add_argument("--template", required=True, help="Excel template path (will be created if missing)")
    p.add_argument("--output", required=True, help="Output tranching pack path")
    p.add_argument("--log-level", default=settings.log_level, help="DEBUG, INFO, WARNING or ERROR")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        dfs = run_tranching_pack(args.input, args.template, args.output, settings=settings)
    except ConfigurationError as exc:
        print(f"Invalid deal configuration - {exc}", file=sys.stderr)
        return 2

    n_warn = len(dfs["Warnings"])
    print(f"Wrote tranching pack: {args.output}" + (f" ({n_warn} warnings)" if n_warn else ""))
    return 0


if __name__ == "__main__":
    sys.exit(main())
