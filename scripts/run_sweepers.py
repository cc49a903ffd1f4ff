"""Run the sweeper jobs once (e.g. from cron instead of the in-process scheduler).

Usage: python scripts/run_sweepers.py [no-show|finalize|all]
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for p in (REPO_ROOT, REPO_ROOT / "src" / "room_reservation"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from dotenv import load_dotenv

from config import get_settings_module

from room_reservation.container import build_container
from room_reservation.main import configure_logging
from room_reservation.sweeper.jobs import run_finalize_sweep, run_no_show_sweep


def main(argv: list[str]) -> int:
    which = argv[1] if len(argv) > 1 else "all"
    if which not in {"no-show", "finalize", "all"}:
        print(__doc__)
        return 2

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)

    if which in {"no-show", "all"}:
        print(run_no_show_sweep(container).as_dict())
    if which in {"finalize", "all"}:
        print(run_finalize_sweep(container).as_dict())
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
