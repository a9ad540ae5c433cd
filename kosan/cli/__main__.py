# kosan/cli/__main__.py
from __future__ import annotations

import argparse

from kosan.cli.seed import seed


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m kosan.cli", description="Create tables and seed rooms + an admin.")
    p.add_argument("--rooms", type=int, default=15)
    p.add_argument("--admin-email", default="admin@kosan.local")
    p.add_argument("--admin-name", default="Admin")
    args = p.parse_args()

    out = seed(rooms=args.rooms, admin_email=args.admin_email, admin_name=args.admin_name)
    print(
        {
            "ok": True,
            "admin_email": out.admin_email,
            "rooms_created": out.rooms_created,
            "total_rooms": out.total_rooms,
            "total_beds": out.total_beds,
        }
    )


if __name__ == "__main__":
    main()
